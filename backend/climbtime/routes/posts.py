"""
ClimbTime Backend - Post Route Handlers
=========================================

What:  Feed, post creation/deletion, post search, and the like / comment /
       share endpoints under /api/posts.

Route order matters: the static paths (/search, /like, /comment, /share,
/user/{id}) are declared before DELETE /{post_id}.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user, get_optional_user
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.post import (
    CommentCreate,
    CommentCreatedResponse,
    CommentResponse,
    LikeStatusResponse,
    LikeToggleResponse,
    PostCreate,
    PostCreatedResponse,
    PostResponse,
    PostTarget,
    ShareStatusResponse,
    ShareToggleResponse,
)
from climbtime.services.post_service import FEED_DEFAULT_LIMIT, post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

_auth_errors = {401: {"description": "Not logged in", "model": ErrorResponse}}
_post_errors = {
    **_auth_errors,
    404: {"description": "Post not found", "model": ErrorResponse},
}


# ══════════════════════════════════════════════════════════════════════════
# Posts & Feed
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "",
    response_model=PostCreatedResponse,
    status_code=201,
    responses={**_auth_errors, 400: {"description": "Invalid input", "model": ErrorResponse}},
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostCreatedResponse:
    post = await post_service.create_post(db, user, body)
    return PostCreatedResponse(message="Post created successfully", post=post)


@router.get(
    "",
    response_model=List[PostResponse],
    summary="Home feed",
    description=(
        "Newest posts first. feedType=following limits the feed to followed users "
        "(or your own posts if you follow nobody). The next page cursor, when there "
        "is one, is returned in the X-Next-Cursor header."
    ),
)
async def list_posts(
    response: Response,
    feed_type: Optional[str] = Query(default=None, alias="feedType"),
    limit: int = Query(default=FEED_DEFAULT_LIMIT, ge=1, le=100),
    cursor: Optional[str] = Query(default=None, description="Value of the previous page's X-Next-Cursor header"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    posts, next_cursor = await post_service.list_feed(db, viewer, feed_type, limit, cursor)
    if next_cursor:
        response.headers["X-Next-Cursor"] = next_cursor
    return posts


@router.get(
    "/search",
    response_model=List[PostResponse],
    responses=_auth_errors,
    summary="Search posts by content",
)
async def search_posts(
    query: str = Query(default=""),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.search_posts(db, user, query)


@router.get(
    "/user/{user_id}",
    response_model=List[PostResponse],
    responses={**_auth_errors, 404: {"description": "User not found", "model": ErrorResponse}},
    summary="A user's posts",
)
async def list_user_posts(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    return await post_service.list_user_posts(db, user_id, user)


# ══════════════════════════════════════════════════════════════════════════
# Likes
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/like",
    response_model=LikeToggleResponse,
    responses={**_post_errors, 201: {"description": "Post liked", "model": LikeToggleResponse}},
    summary="Like or unlike a post",
    description="Toggles the caller's like. 201 when a like was added, 200 when it was removed.",
)
async def toggle_like(
    body: PostTarget,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    liked = await post_service.toggle_like(db, user, body.post_id)
    if liked:
        payload = LikeToggleResponse(message="Post liked successfully", liked=True)
        return JSONResponse(status_code=201, content=payload.model_dump(by_alias=True))
    return LikeToggleResponse(message="Post unliked successfully", liked=False)


@router.get("/like", response_model=LikeStatusResponse, summary="Like count and caller's like")
async def like_status(
    post_id: UUID = Query(alias="postId"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeStatusResponse:
    return await post_service.like_status(db, post_id, viewer)


# ══════════════════════════════════════════════════════════════════════════
# Comments
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/comment",
    response_model=CommentCreatedResponse,
    status_code=201,
    responses=_post_errors,
    summary="Comment on a post",
)
async def add_comment(
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentCreatedResponse:
    comment = await post_service.add_comment(db, user, body)
    return CommentCreatedResponse(message="Comment added successfully", comment=comment)


@router.get("/comment", response_model=List[CommentResponse], summary="Comments on a post, oldest first")
async def list_comments(
    post_id: UUID = Query(alias="postId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[CommentResponse]:
    return await post_service.list_comments(db, post_id)


# ══════════════════════════════════════════════════════════════════════════
# Shares
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "/share",
    response_model=ShareToggleResponse,
    responses={**_post_errors, 201: {"description": "Post shared", "model": ShareToggleResponse}},
    summary="Share or unshare a post",
)
async def toggle_share(
    body: PostTarget,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    shared = await post_service.toggle_share(db, user, body.post_id)
    if shared:
        payload = ShareToggleResponse(message="Post shared successfully", shared=True)
        return JSONResponse(status_code=201, content=payload.model_dump(by_alias=True))
    return ShareToggleResponse(message="Share removed successfully", shared=False)


@router.get("/share", response_model=ShareStatusResponse, summary="Share count and caller's share")
async def share_status(
    post_id: UUID = Query(alias="postId"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShareStatusResponse:
    return await post_service.share_status(db, post_id, viewer)


# ══════════════════════════════════════════════════════════════════════════
# Deletion
# ══════════════════════════════════════════════════════════════════════════

@router.delete(
    "/{post_id}",
    status_code=204,
    responses={**_post_errors, 403: {"description": "Not the author", "model": ErrorResponse}},
    summary="Delete your own post",
)
async def delete_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await post_service.delete_post(db, user, post_id)
    return Response(status_code=204)
