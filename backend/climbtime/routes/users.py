"""
ClimbTime Backend - User Discovery Route Handlers
===================================================

What:  User search, follow suggestions, follower / mutual-follower search
       (the message composer's recipient picker) and public profiles.

The /{user_id} route is declared last so it does not shadow the static paths.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user, get_optional_user
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.user import ProfileResponse, SuggestedUser, UserWithFollow
from climbtime.services.follow_service import follow_service
from climbtime.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

_auth_errors = {401: {"description": "Not logged in", "model": ErrorResponse}}


@router.get("/search", response_model=List[UserWithFollow], responses=_auth_errors, summary="Search users")
async def search_users(
    query: str = Query(default=""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserWithFollow]:
    return await user_service.search_users(db, query, user.id)


@router.get(
    "/suggested",
    response_model=List[SuggestedUser],
    responses=_auth_errors,
    summary="Who to follow",
)
async def suggested_users(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SuggestedUser]:
    return await user_service.suggested_users(db, user.id)


@router.get(
    "/followers/search",
    response_model=List[UserWithFollow],
    responses=_auth_errors,
    summary="Search the caller's followers",
)
async def search_followers(
    query: str = Query(default=""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserWithFollow]:
    follower_ids = await follow_service.follower_ids(db, user.id)
    return await user_service.search_among(db, list(follower_ids), query, user.id)


@router.get(
    "/mutual-followers/search",
    response_model=List[UserWithFollow],
    responses=_auth_errors,
    summary="Search users the caller can message",
)
async def search_mutual_followers(
    query: str = Query(default=""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserWithFollow]:
    mutual_ids = await follow_service.mutual_follower_ids(db, user.id)
    return await user_service.search_among(db, list(mutual_ids), query, user.id)


@router.get(
    "/{user_id}",
    response_model=ProfileResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public profile",
)
async def get_user_profile(
    user_id: UUID,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await user_service.get_profile(db, user_id, viewer.id if viewer else None)
