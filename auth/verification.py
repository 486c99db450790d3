"""
auth/verification.py -- OTP lifecycle for email verification and password reset.

Each account has two independent code slots. A slot goes absent -> pending
when a code is generated and back to absent when the code is used
successfully or is found expired at check time. Requesting a new code
overwrites any pending one.

A successful check is committed through AccountStore.consume_otp, which
only clears the slot if it still holds the same live code; a request that
loses that race gets InvalidCodeError.

The code is written to the store before dispatch. If the mailer fails the
caller gets DeliveryError but the stored code stays valid; retrying means
asking for a new code.

Layer rule: no imports from api/. The mailer is injected and only needs
async send_verify_otp(email, code) / send_reset_otp(email, code) methods.
"""

from __future__ import annotations

import logging

from auth.models import Account
from auth.otp import check_otp, generate_otp
from auth.store import AccountStore
from auth.tokens import MAX_PASSWORD_BYTES, hash_password, password_too_long
from core.clock import Clock, now_ms
from core.config import get_settings
from core.errors import ConflictError, ExpiredCodeError, InvalidCodeError, NotFoundError, ValidationError

logger = logging.getLogger("authflow.auth")


class VerificationService:
    """Generates, stores, dispatches and checks one-time codes."""

    def __init__(
        self,
        store: AccountStore,
        mailer,
        clock: Clock = now_ms,
        verify_ttl_seconds: int | None = None,
        reset_ttl_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._mailer = mailer
        self._clock = clock
        self._verify_ttl_ms = (verify_ttl_seconds or settings.verify_otp_ttl_seconds) * 1000
        self._reset_ttl_ms = (reset_ttl_seconds or settings.reset_otp_ttl_seconds) * 1000

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    async def send_verification_code(self, account_id: int) -> None:
        """Issue a 24h verification code and email it to the account owner.

        Raises:
            NotFoundError:  account does not exist.
            ConflictError:  account is already verified.
            DeliveryError:  the mailer failed; the code remains stored.
        """
        account = self._get_account(account_id)
        if account.is_verified:
            raise ConflictError("Account already verified")

        code = generate_otp()
        self._store.update_account(
            account.id,
            verify_otp=code,
            verify_otp_expires_at=self._clock() + self._verify_ttl_ms,
        )
        logger.info("Verification code issued for account id=%s", account.id)
        await self._mailer.send_verify_otp(account.email, code)

    def verify_account(self, account_id: int, code: str) -> None:
        """Mark the account verified if code matches the pending verification code.

        Raises:
            ValidationError:  code is empty.
            NotFoundError:    account does not exist.
            InvalidCodeError: no pending code, or mismatch.
            ExpiredCodeError: code matched but has expired; the slot is cleared.
        """
        code = (code or "").strip()
        if not code:
            raise ValidationError("OTP is required")
        account = self._get_account(account_id)
        now = self._clock()
        try:
            check_otp(account.verify_otp, account.verify_otp_expires_at, code, now)
        except ExpiredCodeError:
            self._store.update_account(account.id, verify_otp="", verify_otp_expires_at=0)
            raise

        if not self._store.consume_otp(account.id, "verify", code, now, is_verified=True):
            # A concurrent request used the code first
            raise InvalidCodeError("Invalid OTP")
        logger.info("Account id=%s verified", account.id)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str) -> None:
        """Issue a 15 minute reset code for the account with this email and mail it.

        Raises:
            ValidationError: email is empty.
            NotFoundError:   no account has this email.
            DeliveryError:   the mailer failed; the code remains stored.
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")
        account = self._get_account_by_email(email)

        code = generate_otp()
        self._store.update_account(
            account.id,
            reset_otp=code,
            reset_otp_expires_at=self._clock() + self._reset_ttl_ms,
        )
        logger.info("Password reset code issued for account id=%s", account.id)
        await self._mailer.send_reset_otp(account.email, code)

    def reset_password(self, email: str, code: str, new_password: str) -> None:
        """Replace the password hash if code matches the pending reset code.

        Raises:
            ValidationError:  a field is missing or the new password is too long.
            NotFoundError:    no account has this email.
            InvalidCodeError: no pending code, or mismatch.
            ExpiredCodeError: code matched but has expired; the slot is cleared.
        """
        email = (email or "").strip()
        code = (code or "").strip()
        if not email or not code or not new_password:
            raise ValidationError("Email, OTP, and new password are required")
        if password_too_long(new_password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        account = self._get_account_by_email(email)
        now = self._clock()
        try:
            check_otp(account.reset_otp, account.reset_otp_expires_at, code, now)
        except ExpiredCodeError:
            self._store.update_account(account.id, reset_otp="", reset_otp_expires_at=0)
            raise

        hashed = hash_password(new_password)
        if not self._store.consume_otp(account.id, "reset", code, now, hashed_password=hashed):
            raise InvalidCodeError("Invalid OTP")
        logger.info("Password reset for account id=%s", account.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_account(self, account_id: int) -> Account:
        account = self._store.get_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def _get_account_by_email(self, email: str) -> Account:
        account = self._store.get_by_email(email)
        if account is None:
            raise NotFoundError("User not found")
        return account
