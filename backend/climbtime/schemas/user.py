"""
ClimbTime Backend - User, Auth and Profile Schemas
====================================================

What:  Request bodies for signup/login and the user shapes returned across
       the API, from the compact author summary embedded in posts to the
       full profile page payload.

Shape ladder (each adds fields to the previous):
    UserSummary      id, name, image                     (post authors, comment authors)
    UserWithFollow   + isFollowing                       (search results)
    UserPublic       + bannerImage, bio, location, website, createdAt
    ProfileResponse  + counts, isFollowing, isCurrentUser, email (own profile only)
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from climbtime.schemas.common import CamelModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
WEBSITE_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*\.[^\s]+$", re.IGNORECASE)

NAME_MAX_LENGTH = 50
BIO_MAX_LENGTH = 160
LOCATION_MAX_LENGTH = 30
WEBSITE_MAX_LENGTH = 100


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════

class SignupRequest(CamelModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    email: str = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class LoginRequest(CamelModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(CamelModel):
    """
    Validated text fields of the multipart profile form.

    None means "leave unchanged". The route turns empty form fields into
    None before building this model, so an empty website clears nothing.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    bio: Optional[str] = Field(default=None, max_length=BIO_MAX_LENGTH)
    location: Optional[str] = Field(default=None, max_length=LOCATION_MAX_LENGTH)
    website: Optional[str] = Field(default=None, max_length=WEBSITE_MAX_LENGTH)
    image: Optional[str] = None
    banner_image: Optional[str] = None

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not WEBSITE_PATTERN.match(v):
            raise ValueError("Please enter a valid URL")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════

class UserSummary(CamelModel):
    id: uuid.UUID
    name: str
    image: Optional[str] = None


class UserWithFollow(UserSummary):
    is_following: bool = False


class SuggestedUser(UserSummary):
    follower_count: int = 0


class SessionUser(UserSummary):
    email: str


class UserPublic(UserSummary):
    banner_image: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    created_at: datetime


class ProfileCounts(CamelModel):
    posts: int = 0
    followers: int = 0
    following: int = 0


class ProfileResponse(UserPublic):
    counts: ProfileCounts
    is_following: bool = False
    is_current_user: bool = False
    email: Optional[str] = Field(default=None, description="Only present on the caller's own profile")


class SignupResponse(CamelModel):
    message: str
    user: SessionUser


class LoginResponse(CamelModel):
    message: str
    token: str
    user: SessionUser


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserPublic
