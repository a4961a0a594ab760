"""
Login and current-user lookup.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from socialnet.auth import get_current_user_id
from socialnet.db import DbClient
from socialnet.dependencies import get_db_client
from socialnet.schemas import LoginRequest, TokenResponse, UserResponse
from socialnet.security import create_access_token, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = [{"msg": "Invalid Credentials"}]


@router.get("", response_model=UserResponse)
def get_auth_user(
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    user = db.users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(**user.as_dict())


@router.post("", response_model=TokenResponse, response_model_exclude_none=True)
def login(payload: LoginRequest, db: DbClient = Depends(get_db_client)):
    user = db.users.find_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=400, detail=INVALID_CREDENTIALS)
    return TokenResponse(token=create_access_token(user.id))
