"""
api/routes/user.py -- Account data for the signed-in user.

Routes:
  GET /api/user/data -- name and verification state (requires auth)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import UserData, UserDataResponse
from auth.dependencies import get_current_account_id
from auth.store import AccountStore
from core.errors import NotFoundError

router = APIRouter()


@router.get("/user/data", response_model=UserDataResponse)
async def user_data(
    request: Request,
    account_id: int = Depends(get_current_account_id),
) -> UserDataResponse:
    """Return the display name and verification flag of the session's account.

    A valid token for an account that no longer exists is a 404, not a 401:
    the signature checked out, the record did not.
    """
    store: AccountStore = request.app.state.account_store
    account = store.get_by_id(account_id)
    if account is None:
        raise NotFoundError("User not found")
    return UserDataResponse(userData=UserData(name=account.name, isAccountVerified=account.is_verified))
