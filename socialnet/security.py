"""
Token issuing/verification and password hashing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import jwt
from passlib.context import CryptContext

from socialnet.config import Settings, get_settings


@dataclass(frozen=True)
class TokenCheck:
    """Outcome of verifying a token: either a user id or an error message."""

    user_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.user_id is not None and self.error is None


@lru_cache(maxsize=8)
def _crypt_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def get_password_hash(password: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    return _crypt_context(settings.bcrypt_rounds).hash(password)


def verify_password(
    plain_password: str, hashed_password: str, settings: Settings | None = None
) -> bool:
    settings = settings or get_settings()
    return _crypt_context(settings.bcrypt_rounds).verify(plain_password, hashed_password)


def create_access_token(user_id: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    now = int(time.time())
    payload = {
        "user": {"id": user_id},
        "iat": now,
        "exp": now + settings.token_expires_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings | None = None) -> TokenCheck:
    """
    Verify signature and expiry. Expected failures (bad signature, expired,
    malformed, missing user id) come back as a TokenCheck error; anything
    else raises.
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        return TokenCheck(error="Token expired")
    except jwt.InvalidTokenError:
        return TokenCheck(error="Invalid token")

    user = payload.get("user")
    user_id = user.get("id") if isinstance(user, dict) else None
    if not isinstance(user_id, str) or not user_id:
        return TokenCheck(error="Invalid token")
    return TokenCheck(user_id=user_id)
