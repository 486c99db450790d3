"""
auth/tokens.py -- Password hashing, session JWTs, and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       the account id and expiry. Verification returns None on any failure --
       the session dependency turns that into a 401.

  Passwords: bcrypt directly (no passlib wrapper). Its cost factor makes
       brute-force of low-entropy secrets expensive. _DUMMY_HASH lets the
       credential service run a comparison even when the email is unknown so
       response time does not reveal whether an account exists.

  JWT_SECRET: sourced from core.config.get_settings(), which refuses to start
       in production without one and rejects keys shorter than 32 chars.

Layer rule: no imports from api/ or notify/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("authflow.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

SESSION_COOKIE = "token"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


# bcrypt rejects (5.x) or silently truncates (4.x) secrets past this length,
# so the credential services refuse longer passwords up front.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    """True if the UTF-8 encoding of plain exceeds what bcrypt can hash."""
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers must reject passwords for which password_too_long() is true;
    bcrypt raises ValueError on them.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first unknown-email login is not
# measurably slower than later ones.
DUMMY_HASH: str = hash_password("authflow_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_session_token(account_id: int, expire_seconds: int = 0) -> str:
    """Encode a signed session JWT for the given account.

    Args:
        account_id:     Primary key of the account.
        expire_seconds: Lifetime in seconds. 0 (default) uses
                        Settings.session_expire_seconds (7 days).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(account_id),
        "account_id": account_id,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.jwt_secret, algorithm=_ALGORITHM)


def decode_session_token(token: str) -> dict | None:
    """Decode and verify a session JWT. Returns the payload dict or None on any failure.

    python-jose checks the signature and the exp claim; a payload without an
    integer account_id is rejected as malformed.
    """
    try:
        payload = jwt.decode(token, _settings.jwt_secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload.get("account_id"), int):
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the session JWT as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    secure/samesite: with SECURE_COOKIES=true the cookie is HTTPS-only and
        samesite="none" so a frontend on another origin can send it with
        credentialed requests; otherwise samesite="lax" for local dev.
    max_age: matches the JWT expiry so both expire together.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_expire_seconds
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=_settings.secure_cookies,
        samesite="none" if _settings.secure_cookies else "lax",
        max_age=duration,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=_settings.secure_cookies,
        samesite="none" if _settings.secure_cookies else "lax",
    )
