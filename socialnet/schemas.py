"""
Pydantic schemas for the social network API.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

from socialnet.config import get_settings
from socialnet.services import normalize_optional_url, normalize_url, parse_skills


def _not_blank(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        return _not_blank(value, "Name is required").strip()

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        try:
            result = validate_email(value, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError("Please include a valid email") from exc
        return result.normalized.lower()

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        min_length = get_settings().password_min_length
        if len(value) < min_length:
            raise ValueError(
                f"Please enter a password with {min_length} or more characters"
            )
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return _not_blank(value, "Please include a valid email").strip().lower()

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        return _not_blank(value, "Password is required")


class TokenResponse(BaseModel):
    msg: Optional[str] = None
    token: str


class MessageResponse(BaseModel):
    msg: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    created_at: str


class ProfileRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str
    birthday: date
    website: Optional[str] = None
    skills: Union[list[str], str, None] = None
    bio: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_required(cls, value: str) -> str:
        return _not_blank(value, "Username is required").strip()

    @field_validator("website")
    @classmethod
    def website_url(cls, value: Optional[str]) -> str:
        return normalize_optional_url(value)

    @field_validator("facebook", "instagram")
    @classmethod
    def social_url(cls, value: Optional[str]) -> Optional[str]:
        return normalize_url(value) if value else value

    @field_validator("skills")
    @classmethod
    def skills_list(cls, value: Union[list[str], str, None]) -> list[str]:
        return parse_skills(value)

    def profile_fields(self) -> dict:
        """Fields to write on upsert; skills and bio are only touched when submitted."""
        fields = {
            "username": self.username,
            "birthday": self.birthday.isoformat(),
            "website": self.website or "",
            "social": {"facebook": self.facebook, "instagram": self.instagram},
        }
        if "skills" in self.model_fields_set:
            fields["skills"] = parse_skills(self.skills)
        if "bio" in self.model_fields_set:
            fields["bio"] = self.bio
        return fields


class ExperienceRequest(BaseModel):
    title: str
    location: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        return _not_blank(value, "Title is required").strip()


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., description="Current password, re-verified before deletion")


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class ExperienceResponse(BaseModel):
    id: str
    title: str
    location: Optional[str] = None


class SocialResponse(BaseModel):
    facebook: Optional[str] = None
    instagram: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    user: Union[UserSummary, str]
    username: str
    birthday: str
    website: str = ""
    skills: list[str] = []
    bio: Optional[str] = None
    experience: list[ExperienceResponse] = []
    social: SocialResponse
    created_at: str
    updated_at: str


class PostCreateRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_required(cls, value: str) -> str:
        return _not_blank(value, "Text is required")


class PostUpdateRequest(BaseModel):
    """Text plus any other fields to merge into the stored post."""

    model_config = ConfigDict(extra="allow")

    text: str = Field(..., min_length=1, max_length=300)


class CommentRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def text_required(cls, value: str) -> str:
        return _not_blank(value, "Text is required")


class LikeResponse(BaseModel):
    id: str
    profile: str


class CommentResponse(BaseModel):
    id: str
    profile: str
    text: str
    date: str


class PostResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    profile: str
    text: str
    likes: list[LikeResponse] = []
    comments: list[CommentResponse] = []
    created_at: str
    updated_at: str
