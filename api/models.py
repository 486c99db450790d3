"""
API request and response models for the auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract, one typed model
per endpoint. They are separate from auth/models.py, which owns the internal
Account representation. Route handlers map between the two.

Request fields default to "" rather than being required: a missing field is
reported by the services as a ValidationError ("Missing details"), so the
client sees the same envelope whether a field is absent or blank.

Passwords are never stripped; the services strip names, emails and codes.

Field names follow the JSON the frontend sends (camelCase where it uses it).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Body for POST /api/auth/register."""

    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=128)


class LoginRequest(BaseModel):
    """Body for POST /api/auth/login."""

    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=128)


class VerifyAccountRequest(BaseModel):
    """Body for POST /api/auth/verify-account."""

    model_config = ConfigDict(str_strip_whitespace=True)

    otp: str = Field(default="", max_length=16)


class SendResetOtpRequest(BaseModel):
    """Body for POST /api/auth/send-reset-otp."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(default="", max_length=320)


class ResetPasswordRequest(BaseModel):
    """Body for POST /api/auth/reset-password.

    newPassword is the wire name; new_password is accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(default="", max_length=320)
    otp: str = Field(default="", max_length=16)
    new_password: str = Field(default="", max_length=128, alias="newPassword")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel):
    """Success envelope shared by every auth endpoint."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: Optional[str] = None


class UserData(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    isAccountVerified: bool


class UserDataResponse(BaseModel):
    """Response for GET /api/user/data."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    userData: UserData


class ErrorResponse(BaseModel):
    """Failure envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
