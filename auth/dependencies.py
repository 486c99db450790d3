"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Two token carriers are checked in priority order:
  1. Session cookie ("token") -- set by register/login for the browser frontend.
  2. Authorization: Bearer <token> header -- non-browser clients.

try_get_current_account_id() is the soft variant (returns None on failure).
get_current_account_id() wraps it and raises HTTP 401 if unauthenticated,
so protected handlers never run for a missing, malformed, tampered or
expired token.

auth/dependencies.py may import from fastapi because this module is part of
the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.tokens import SESSION_COOKIE, decode_session_token


def try_get_current_account_id(request: Request) -> int | None:
    """Return the account id carried by the request's session token, or None.

    Never raises. On success the id is also stored on request.state.account_id
    for downstream code that only has the Request.
    """
    token: str | None = request.cookies.get(SESSION_COOKIE)

    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        return None

    payload = decode_session_token(token)
    if payload is None:
        return None

    account_id: int = payload["account_id"]
    request.state.account_id = account_id
    return account_id


def get_current_account_id(request: Request) -> int:
    """Require a valid session. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.post("/protected")
        async def route(account_id: int = Depends(get_current_account_id)): ...
    """
    account_id = try_get_current_account_id(request)
    if account_id is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Not authorized. Login again."},
        )
    return account_id
