"""
Request guards: token authentication, profile ownership and id format checks.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from fastapi import Depends, HTTPException, Request

from socialnet.config import get_settings
from socialnet.db import DbClient, ProfileRecord
from socialnet.dependencies import get_db_client
from socialnet.security import verify_token

logger = logging.getLogger(__name__)

AUTH_DENIED = "Authorization denied, try Login"

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def get_current_user_id(request: Request) -> str:
    """Verify the token header and return the user id it carries."""
    settings = get_settings()
    token = request.headers.get(settings.token_header)
    if not token:
        raise HTTPException(status_code=401, detail=AUTH_DENIED)

    try:
        check = verify_token(token, settings)
    except Exception:
        logger.exception("Unexpected error while verifying token")
        raise HTTPException(status_code=500, detail="Server Error")

    if not check.ok:
        logger.debug("Rejected token: %s", check.error)
        raise HTTPException(status_code=401, detail=AUTH_DENIED)
    return check.user_id


def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
) -> ProfileRecord:
    """Require an existing user with a profile; hand the profile to the handler."""
    if db.users.get(user_id) is None:
        raise HTTPException(status_code=401, detail="Are you logged in?")
    profile = db.profiles.find_by_user(user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Create a profile")
    return profile


def check_object_id(param: str) -> Callable[[Request], str]:
    """Build a dependency rejecting a malformed id in path parameter `param`."""

    def dependency(request: Request) -> str:
        value = request.path_params.get(param, "")
        if not OBJECT_ID_PATTERN.match(value):
            raise HTTPException(status_code=400, detail="Invalid ID")
        return value

    return dependency
