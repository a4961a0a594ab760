"""
Configuration and settings for the social network API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    # Database (any SQLAlchemy URL; unset means in-memory)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Tokens
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    token_expires_seconds: int = Field(default=360000, gt=0)
    token_header: str = Field(default="auth-token")

    # Passwords. The minimum length is a business rule; the validation
    # message is built from this value.
    password_min_length: int = Field(default=6, ge=1)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
