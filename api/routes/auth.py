"""
api/routes/auth.py -- Registration, login, session and OTP endpoints.

Routes:
  POST /api/auth/register         -- create account; sets session cookie
  POST /api/auth/login            -- password login; sets session cookie
  POST /api/auth/logout           -- clears session cookie
  GET  /api/auth/is-auth          -- 200 if the session cookie is valid
  POST /api/auth/send-verify-otp  -- email a verification code (requires auth)
  POST /api/auth/verify-account   -- submit verification code (requires auth)
  POST /api/auth/send-reset-otp   -- email a password reset code
  POST /api/auth/reset-password   -- submit reset code and new password

Failures are raised as core.errors exceptions by the services and rendered
by the AuthServiceError handler in api/main.py; handlers only cover the
success path.

Cache-Control: no-store on every response that sets the session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    ApiResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendResetOtpRequest,
    VerifyAccountRequest,
)
from auth.credentials import CredentialService
from auth.dependencies import get_current_account_id
from auth.tokens import clear_session_cookie, set_session_cookie
from auth.verification import VerificationService

# Auth policy:
# - register, login, logout, send-reset-otp, reset-password: public
# - is-auth, send-verify-otp, verify-account: require a session (get_current_account_id)
router = APIRouter()


def _session_response(message: str, token: str) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=ApiResponse(message=message).model_dump())
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=ApiResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an unverified account and start a session for it.

    No email is sent here. Verification mail goes out only when the client
    calls send-verify-otp.
    """
    credentials: CredentialService = request.app.state.credential_service
    _account, token = credentials.register(body.name, body.email, body.password)
    return _session_response("Registered successfully", token)


@router.post("/auth/login", response_model=ApiResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie."""
    credentials: CredentialService = request.app.state.credential_service
    _account, token = credentials.login(body.email, body.password)
    return _session_response("Logged in successfully", token)


@router.post("/auth/logout", response_model=ApiResponse)
async def logout() -> JSONResponse:
    """Clear the session cookie. Tokens are stateless, so nothing is revoked server-side."""
    resp = JSONResponse(content=ApiResponse(message="Logged out").model_dump())
    clear_session_cookie(resp)
    return resp


@router.get("/auth/is-auth", response_model=ApiResponse)
async def is_authenticated(account_id: int = Depends(get_current_account_id)) -> ApiResponse:
    """Cheap session probe for the frontend. The dependency does all the work."""
    return ApiResponse()


# ---------------------------------------------------------------------------
# Email verification (authenticated)
# ---------------------------------------------------------------------------


@router.post("/auth/send-verify-otp", response_model=ApiResponse)
async def send_verify_otp(
    request: Request,
    account_id: int = Depends(get_current_account_id),
) -> ApiResponse:
    verification: VerificationService = request.app.state.verification_service
    await verification.send_verification_code(account_id)
    return ApiResponse(message="Verification OTP sent to your email")


@router.post("/auth/verify-account", response_model=ApiResponse)
def verify_account(
    request: Request,
    body: VerifyAccountRequest,
    account_id: int = Depends(get_current_account_id),
) -> ApiResponse:
    verification: VerificationService = request.app.state.verification_service
    verification.verify_account(account_id, body.otp)
    return ApiResponse(message="Email verified successfully")


# ---------------------------------------------------------------------------
# Password reset (public)
# ---------------------------------------------------------------------------


@router.post("/auth/send-reset-otp", response_model=ApiResponse)
async def send_reset_otp(request: Request, body: SendResetOtpRequest) -> ApiResponse:
    verification: VerificationService = request.app.state.verification_service
    await verification.request_password_reset(body.email)
    return ApiResponse(message="OTP sent to your email")


@router.post("/auth/reset-password", response_model=ApiResponse)
def reset_password(request: Request, body: ResetPasswordRequest) -> ApiResponse:
    verification: VerificationService = request.app.state.verification_service
    verification.reset_password(body.email, body.otp, body.new_password)
    return ApiResponse(message="Password has been reset successfully")
