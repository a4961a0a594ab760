"""
Profile routes: upsert, lookups, experience entries and account deletion.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from socialnet.auth import check_object_id, get_current_profile, get_current_user_id
from socialnet.db import DbClient, Experience, ProfileRecord, UserRecord
from socialnet.dependencies import get_db_client
from socialnet.schemas import (
    DeleteAccountRequest,
    ExperienceRequest,
    ExperienceResponse,
    MessageResponse,
    ProfileRequest,
    ProfileResponse,
    UserSummary,
)
from socialnet.security import verify_password
from socialnet.services import AccountDeletionError, delete_account

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])

PROFILE_NOT_FOUND = "Profile not found"
EXPERIENCE_NOT_FOUND = "Experience not found"


def _profile_response(
    profile: ProfileRecord, user: Optional[UserRecord], *, include_email: bool = False
) -> ProfileResponse:
    data = profile.as_dict()
    if user:
        data["user"] = UserSummary(
            id=user.id,
            name=user.name,
            email=user.email if include_email else None,
        )
    return ProfileResponse(**data)


def _public_profile(db: DbClient, profile: Optional[ProfileRecord]) -> ProfileResponse:
    if not profile:
        raise HTTPException(status_code=404, detail=PROFILE_NOT_FOUND)
    return _profile_response(profile, db.users.get(profile.user))


@router.post("", response_model=ProfileResponse, response_model_exclude_none=True)
def upsert_profile(
    payload: ProfileRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    """Create the caller's profile, or update it in place if it exists."""
    user = db.users.get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Are you logged in?")
    profile = db.profiles.upsert_for_user(user_id, payload.profile_fields())
    return _profile_response(profile, user, include_email=True)


@router.get("/me", response_model=ProfileResponse, response_model_exclude_none=True)
def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    profile = db.profiles.find_by_user(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="There is no profile for this user")
    return _profile_response(profile, db.users.get(user_id), include_email=True)


@router.get(
    "", response_model=list[ProfileResponse], response_model_exclude_none=True
)
def list_profiles(
    _: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    return [
        _profile_response(profile, db.users.get(profile.user), include_email=True)
        for profile in db.profiles.list_all()
    ]


@router.get(
    "/user/{user_id}",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(check_object_id("user_id"))],
)
def get_profile_by_user(user_id: str, db: DbClient = Depends(get_db_client)):
    return _public_profile(db, db.profiles.find_by_user(user_id))


@router.get(
    "/name/{username}", response_model=ProfileResponse, response_model_exclude_none=True
)
def get_profile_by_username(username: str, db: DbClient = Depends(get_db_client)):
    return _public_profile(db, db.profiles.find_by_username(username))


@router.delete("", response_model=MessageResponse)
def delete_my_account(
    payload: DeleteAccountRequest,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    """Delete the caller's posts, profile and user after re-checking the password."""
    user = db.users.get(profile.user)
    if not user or not verify_password(payload.password, user.password):
        logger.info("[%s] Account deletion refused: bad password", profile.user)
        raise HTTPException(status_code=400, detail=[{"msg": "Invalid Credentials"}])

    try:
        delete_account(db, user_id=user.id, profile_id=profile.id)
    except AccountDeletionError as exc:
        logger.error("[%s] Account deletion incomplete: %s", user.id, exc.failed_steps)
        raise HTTPException(status_code=500, detail="Server Error")
    return MessageResponse(msg="User deleted")


@router.put(
    "/experience", response_model=ProfileResponse, response_model_exclude_none=True
)
def add_experience(
    payload: ExperienceRequest,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    profile.experience.insert(
        0, Experience(title=payload.title, location=payload.location)
    )
    db.profiles.save(profile)
    return _profile_response(profile, db.users.get(profile.user), include_email=True)


@router.get(
    "/experience/{exp_id}",
    response_model=ExperienceResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(check_object_id("exp_id"))],
)
def get_experience(exp_id: str, profile: ProfileRecord = Depends(get_current_profile)):
    experience = next((e for e in profile.experience if e.id == exp_id), None)
    if not experience:
        raise HTTPException(status_code=404, detail=EXPERIENCE_NOT_FOUND)
    return ExperienceResponse(
        id=experience.id, title=experience.title, location=experience.location
    )


@router.delete(
    "/experience/{exp_id}",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(check_object_id("exp_id"))],
)
def delete_experience(
    exp_id: str,
    profile: ProfileRecord = Depends(get_current_profile),
    db: DbClient = Depends(get_db_client),
):
    remaining = [e for e in profile.experience if e.id != exp_id]
    if len(remaining) == len(profile.experience):
        raise HTTPException(status_code=404, detail=EXPERIENCE_NOT_FOUND)
    profile.experience = remaining
    db.profiles.save(profile)
    return _profile_response(profile, db.users.get(profile.user), include_email=True)


@router.get(
    "/{profile_id}",
    response_model=ProfileResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(check_object_id("profile_id"))],
)
def get_profile_by_id(profile_id: str, db: DbClient = Depends(get_db_client)):
    return _public_profile(db, db.profiles.get(profile_id))
