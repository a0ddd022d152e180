"""
ClimbTime Backend - Post, Like, Comment and Share Schemas
===========================================================

What:  API contract for the feed and post engagement endpoints.

Post payload:
    {
        "id": "...", "content": "Sent my first V5!", "imageUrl": null,
        "createdAt": "...", "updatedAt": "...",
        "user": {"id": "...", "name": "Alex", "image": null},
        "counts": {"likes": 3, "comments": 1, "shares": 0},
        "isLiked": true, "isShared": false
    }
    isLiked / isShared are always false for anonymous callers.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from climbtime.schemas.common import CamelModel
from climbtime.schemas.user import UserSummary

CONTENT_MAX_LENGTH = 500


def _strip(v):
    return v.strip() if isinstance(v, str) else v


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════

class PostCreate(CamelModel):
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)
    # Any string: the client sends data URLs as well as http(s) links
    image_url: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return _strip(v)

    @field_validator("image_url")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class PostTarget(CamelModel):
    """Body of the like and share toggles."""

    post_id: uuid.UUID


class CommentCreate(CamelModel):
    post_id: uuid.UUID
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return _strip(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════

class PostCounts(CamelModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0


class PostResponse(CamelModel):
    id: uuid.UUID
    content: str
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    counts: PostCounts = Field(default_factory=PostCounts)
    is_liked: bool = False
    is_shared: bool = False


class PostCreatedResponse(CamelModel):
    message: str
    post: PostResponse


class LikeToggleResponse(CamelModel):
    message: str
    liked: bool


class LikeStatusResponse(CamelModel):
    like_count: int
    is_liked: bool


class ShareToggleResponse(CamelModel):
    message: str
    shared: bool


class ShareStatusResponse(CamelModel):
    share_count: int
    is_shared: bool


class CommentResponse(CamelModel):
    id: uuid.UUID
    content: str
    post_id: uuid.UUID
    created_at: datetime
    user: UserSummary


class CommentCreatedResponse(CamelModel):
    message: str
    comment: CommentResponse
