"""
User registration.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from socialnet.db import DbClient, UserRecord
from socialnet.dependencies import get_db_client
from socialnet.schemas import RegisterRequest, TokenResponse
from socialnet.security import create_access_token, get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=TokenResponse, response_model_exclude_none=True)
def register_user(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    if db.users.find_by_email(payload.email):
        raise HTTPException(status_code=400, detail=[{"msg": "User already exists"}])

    user = UserRecord(
        name=payload.name,
        email=payload.email,
        password=get_password_hash(payload.password),
    )
    db.users.add(user)
    logger.info("[%s] Registered user", user.id)
    return TokenResponse(msg="User saved", token=create_access_token(user.id))
