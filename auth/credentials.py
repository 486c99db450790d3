"""
auth/credentials.py -- Registration and password login.

Both operations end by issuing a session token of the same shape; setting
the cookie is the route's job. No email is sent on registration -- mail is
only dispatched by the explicit OTP request operations in
auth/verification.py.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError

from auth.models import Account
from auth.store import AccountStore
from auth.tokens import (
    DUMMY_HASH,
    MAX_PASSWORD_BYTES,
    create_session_token,
    hash_password,
    password_too_long,
    verify_password,
)
from core.errors import AuthError, ConflictError, ValidationError

logger = logging.getLogger("authflow.auth")


class CredentialService:
    """Validates credentials, hashes secrets, and issues session tokens."""

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    def register(self, name: str, email: str, password: str) -> tuple[Account, str]:
        """Create an unverified account and return it with a fresh session token.

        Raises:
            ValidationError: a field is missing, the email is malformed, or the
                             password is longer than bcrypt can hash.
            ConflictError:   an account with this email already exists.
        """
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email or not password:
            raise ValidationError("Missing details")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValidationError("Invalid email address") from exc
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        if self._store.get_by_email(email) is not None:
            raise ConflictError("User already exists")

        account = Account(email=email, name=name, hashed_password=hash_password(password))
        try:
            account.id = self._store.create_account(account)
        except IntegrityError as exc:
            # Concurrent registration won the insert
            raise ConflictError("User already exists") from exc

        logger.info("Registered account id=%s", account.id)
        return account, create_session_token(account.id)

    def login(self, email: str, password: str) -> tuple[Account, str]:
        """Check an email/password pair and return the account with a session token.

        Raises:
            ValidationError: a field is missing or the password is too long.
            AuthError:       unknown email, or the password does not match.
        """
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        account = self._store.get_by_email(email)
        if account is None:
            # Same bcrypt cost as a real comparison
            verify_password(password, DUMMY_HASH)
            logger.info("Login failed: unknown email")
            raise AuthError("Invalid email")
        if not verify_password(password, account.hashed_password):
            logger.info("Login failed: bad password for account id=%s", account.id)
            raise AuthError("Invalid password")

        logger.info("Login succeeded for account id=%s", account.id)
        return account, create_session_token(account.id)
