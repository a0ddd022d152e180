"""Follow toggle and follow-check schemas."""

import uuid

from pydantic import Field

from climbtime.schemas.common import CamelModel


class FollowRequest(CamelModel):
    target_user_id: uuid.UUID
    action: str = Field(description="'follow' or 'unfollow'")


class FollowResponse(CamelModel):
    message: str
    is_following: bool


class FollowCheckResponse(CamelModel):
    is_following: bool
