"""
auth/models.py -- Domain dataclass for the account entity.

Pattern: Data class (pure data container, zero logic). The store does the
persistence work; the services own the lifecycle rules.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered identity, keyed by email.

    email is stored exactly as submitted (after whitespace strip) and matched
    case-sensitively.

    The two one-time code slots (verify_otp / reset_otp) are independent. An
    empty code with a zero expiry means "no pending code". Expiry values are
    absolute epoch milliseconds.
    """

    email: str
    name: str
    hashed_password: str
    id: int | None = None
    is_verified: bool = False
    verify_otp: str = ""
    verify_otp_expires_at: int = 0
    reset_otp: str = ""
    reset_otp_expires_at: int = 0
    created_at: str | None = None
