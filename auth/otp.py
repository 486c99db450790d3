"""
auth/otp.py -- One-time code generation and validation.

A code slot is a (code, expires_at) pair on the account. "" / 0 means no
pending code. Expiry is checked lazily, only when a code is submitted; there
is no background sweep.
"""

from __future__ import annotations

import hmac
import secrets

from core.errors import ExpiredCodeError, InvalidCodeError, ValidationError

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a uniformly random 6-digit numeric code, zero-padded."""
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


def check_otp(stored: str, expires_at: int, submitted: str, now: int) -> None:
    """Validate a submitted code against the stored slot.

    Raises:
        ValidationError:  submitted code is empty.
        InvalidCodeError: nothing pending, or the code does not match.
        ExpiredCodeError: the code matches but now >= expires_at.

    The caller clears the slot after ExpiredCodeError or a successful return.
    """
    if not submitted:
        raise ValidationError("OTP is required")
    if not stored or not hmac.compare_digest(stored.encode("utf-8"), submitted.encode("utf-8")):
        raise InvalidCodeError("Invalid OTP")
    if now >= expires_at:
        raise ExpiredCodeError("OTP expired")
