"""
ClimbTime Backend - Follow Route Handlers
===========================================

What:  Follow/unfollow a user and check whether the caller follows someone.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user, get_optional_user
from climbtime.exceptions import ValidationError
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.follow import FollowCheckResponse, FollowRequest, FollowResponse
from climbtime.services.follow_service import follow_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/follow", tags=["Follow"])


@router.post(
    "",
    response_model=FollowResponse,
    responses={
        400: {"description": "Invalid action or self-follow", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
        404: {"description": "Target user not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
    description="Idempotent: repeating an action answers 200 with the current state.",
)
async def set_following(
    body: FollowRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowResponse:
    return await follow_service.set_following(db, user.id, body.target_user_id, body.action)


@router.get(
    "/check",
    response_model=FollowCheckResponse,
    summary="Does the caller follow this user?",
    responses={400: {"description": "targetUserId missing", "model": ErrorResponse}},
    description="Anonymous callers always get isFollowing=false, with or without a target.",
)
async def check_following(
    target_user_id: Optional[UUID] = Query(default=None, alias="targetUserId"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowCheckResponse:
    if viewer is None:
        return FollowCheckResponse(is_following=False)
    if target_user_id is None:
        raise ValidationError(message="Target user ID is required", field="targetUserId")
    return FollowCheckResponse(
        is_following=await follow_service.is_following(db, viewer.id, target_user_id)
    )
