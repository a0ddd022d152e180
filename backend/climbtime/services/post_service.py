"""
ClimbTime Backend - Post Service
==================================

What:  Posts, the home feed, post search, likes, shares and comments.
Who:   routes/posts.py.

Query shape:
    Every list endpoint runs one SELECT of (Post, author, like count,
    comment count, share count), with the counts as correlated scalar
    subqueries, plus one small follow-up query for the viewer's own
    likes/shares among the returned post ids.

        SELECT posts.*, users.*,
               (SELECT count(*) FROM likes    WHERE likes.post_id    = posts.id),
               (SELECT count(*) FROM comments WHERE comments.post_id = posts.id),
               (SELECT count(*) FROM shares   WHERE shares.post_id   = posts.id)
        FROM posts JOIN users ON users.id = posts.user_id
        ORDER BY posts.created_at DESC

Feed pagination:
    Cursor-based on (created_at, id), the feed's sort key: fetch limit + 1
    rows, and when the extra row exists return "<created_at ISO>|<post id>"
    of the last row on the page as the next cursor. The id breaks ties
    between posts created at the same instant. A bare ISO timestamp is still
    accepted and means "older than this".
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple, Type, Union
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from climbtime.models.follow import Follow
from climbtime.models.post import Comment, Like, Post, Share
from climbtime.models.user import User
from climbtime.schemas.post import (
    CommentCreate,
    CommentResponse,
    LikeStatusResponse,
    PostCounts,
    PostCreate,
    PostResponse,
    ShareStatusResponse,
)
from climbtime.schemas.user import UserSummary
from climbtime.services.user_service import contains_pattern

logger = logging.getLogger(__name__)

FEED_DEFAULT_LIMIT = 50
CURSOR_SEPARATOR = "|"
SEARCH_LIMIT = 20

Engagement = Union[Type[Like], Type[Share]]


def _count_column(model):
    return (
        select(func.count(model.id))
        .where(model.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def _post_select():
    return (
        select(
            Post,
            User,
            _count_column(Like).label("like_count"),
            _count_column(Comment).label("comment_count"),
            _count_column(Share).label("share_count"),
        )
        .join(User, User.id == Post.user_id)
    )


def format_cursor(post: Post) -> str:
    return f"{post.created_at.isoformat()}{CURSOR_SEPARATOR}{post.id}"


def parse_cursor(cursor: Optional[str]) -> Optional[Tuple[datetime, Optional[UUID]]]:
    """
    Parse a feed cursor into (created_at, post id or None).

    Raises:
        ValidationError: the cursor is present but malformed
    """
    if not cursor:
        return None
    stamp, _, post_id = cursor.partition(CURSOR_SEPARATOR)
    try:
        created_at = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
        return created_at, UUID(post_id) if post_id else None
    except ValueError:
        raise ValidationError(message="Invalid cursor", field="cursor")


class PostService:
    """
    Business logic for posts and engagement.

    Likes and shares have identical semantics (a per-user toggle with a
    per-post count), so both go through _toggle / _status with the model
    class as a parameter.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Posts
    # ══════════════════════════════════════════════════════════════════════

    async def create_post(self, db: AsyncSession, author: User, data: PostCreate) -> PostResponse:
        post = Post(content=data.content, image_url=data.image_url, user_id=author.id)
        db.add(post)
        await db.flush()
        logger.info("Post created: %s by %s", post.id, author.id)
        return self._to_response(post, author, 0, 0, 0)

    async def get_post_or_404(self, db: AsyncSession, post_id: UUID) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def list_feed(
        self,
        db: AsyncSession,
        viewer: Optional[User],
        feed_type: Optional[str] = None,
        limit: int = FEED_DEFAULT_LIMIT,
        cursor: Optional[str] = None,
    ) -> Tuple[List[PostResponse], Optional[str]]:
        """
        The home feed, newest first.

        feed_type="following" with a session: posts by the users the viewer
        follows, or the viewer's own posts when they follow nobody.
        Anything else (or anonymous): every post.

        Returns:
            (posts, next_cursor); next_cursor is None on the last page
        """
        stmt = _post_select()

        if feed_type == "following" and viewer is not None:
            followed = (await db.execute(
                select(Follow.following_id).where(Follow.follower_id == viewer.id)
            )).scalars().all()
            author_ids = list(followed) if followed else [viewer.id]
            stmt = stmt.where(Post.user_id.in_(author_ids))

        position = parse_cursor(cursor)
        if position is not None:
            created_at, post_id = position
            older = Post.created_at < created_at
            if post_id is not None:
                older = or_(older, and_(Post.created_at == created_at, Post.id < post_id))
            stmt = stmt.where(older)

        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit + 1)
        rows = (await db.execute(stmt)).all()

        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = format_cursor(rows[-1][0])

        return await self._build(db, rows, viewer.id if viewer else None), next_cursor

    async def search_posts(
        self,
        db: AsyncSession,
        viewer: User,
        query: str,
        limit: int = SEARCH_LIMIT,
    ) -> List[PostResponse]:
        """Case-insensitive substring search on content. A blank query returns []."""
        query = query.strip()
        if not query:
            return []
        stmt = (
            _post_select()
            .where(Post.content.ilike(contains_pattern(query), escape="\\"))
            .order_by(Post.created_at.desc())
            .limit(limit)
        )
        rows = (await db.execute(stmt)).all()
        return await self._build(db, rows, viewer.id)

    async def list_user_posts(
        self,
        db: AsyncSession,
        user_id: UUID,
        viewer: Optional[User],
    ) -> List[PostResponse]:
        if await db.get(User, user_id) is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        stmt = (
            _post_select()
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc())
        )
        rows = (await db.execute(stmt)).all()
        return await self._build(db, rows, viewer.id if viewer else None)

    async def delete_post(self, db: AsyncSession, user: User, post_id: UUID) -> None:
        """
        Delete a post and everything hanging off it. Author only.

        Engagement rows are removed explicitly so the behaviour does not
        depend on the database enforcing ON DELETE CASCADE (SQLite does not
        by default).
        """
        post = await self.get_post_or_404(db, post_id)
        if post.user_id != user.id:
            raise PermissionDeniedError(message="You can only delete your own posts")

        for model in (Like, Comment, Share):
            await db.execute(delete(model).where(model.post_id == post_id))
        await db.delete(post)
        await db.flush()
        logger.info("Post deleted: %s by %s", post_id, user.id)

    # ══════════════════════════════════════════════════════════════════════
    # Likes & Shares
    # ══════════════════════════════════════════════════════════════════════

    async def toggle_like(self, db: AsyncSession, user: User, post_id: UUID) -> bool:
        """Like the post, or remove the existing like. Returns the new liked state."""
        return await self._toggle(db, Like, user.id, post_id)

    async def like_status(
        self, db: AsyncSession, post_id: UUID, viewer: Optional[User]
    ) -> LikeStatusResponse:
        count, mine = await self._status(db, Like, post_id, viewer)
        return LikeStatusResponse(like_count=count, is_liked=mine)

    async def toggle_share(self, db: AsyncSession, user: User, post_id: UUID) -> bool:
        return await self._toggle(db, Share, user.id, post_id)

    async def share_status(
        self, db: AsyncSession, post_id: UUID, viewer: Optional[User]
    ) -> ShareStatusResponse:
        count, mine = await self._status(db, Share, post_id, viewer)
        return ShareStatusResponse(share_count=count, is_shared=mine)

    async def _toggle(self, db: AsyncSession, model: Engagement, user_id: UUID, post_id: UUID) -> bool:
        await self.get_post_or_404(db, post_id)

        existing = (await db.execute(
            select(model).where(model.user_id == user_id, model.post_id == post_id)
        )).scalar_one_or_none()

        if existing is not None:
            await db.delete(existing)
            await db.flush()
            logger.info("%s removed: post=%s user=%s", model.__name__, post_id, user_id)
            return False

        db.add(model(user_id=user_id, post_id=post_id))
        try:
            await db.flush()
        except IntegrityError:
            # Double-click race: the row exists now, which is the requested state
            await db.rollback()
            return True
        logger.info("%s added: post=%s user=%s", model.__name__, post_id, user_id)
        return True

    async def _status(
        self,
        db: AsyncSession,
        model: Engagement,
        post_id: UUID,
        viewer: Optional[User],
    ) -> Tuple[int, bool]:
        count = (await db.execute(
            select(func.count(model.id)).where(model.post_id == post_id)
        )).scalar_one()

        mine = False
        if viewer is not None:
            mine = (await db.execute(
                select(model.id).where(model.post_id == post_id, model.user_id == viewer.id)
            )).first() is not None
        return count, mine

    # ══════════════════════════════════════════════════════════════════════
    # Comments
    # ══════════════════════════════════════════════════════════════════════

    async def add_comment(self, db: AsyncSession, author: User, data: CommentCreate) -> CommentResponse:
        await self.get_post_or_404(db, data.post_id)
        comment = Comment(content=data.content, user_id=author.id, post_id=data.post_id)
        db.add(comment)
        await db.flush()
        logger.info("Comment %s added to post %s", comment.id, data.post_id)
        return CommentResponse(
            id=comment.id,
            content=comment.content,
            post_id=comment.post_id,
            created_at=comment.created_at,
            user=UserSummary.model_validate(author),
        )

    async def list_comments(self, db: AsyncSession, post_id: UUID) -> List[CommentResponse]:
        """Comments on a post, oldest first."""
        rows = (await db.execute(
            select(Comment, User)
            .join(User, User.id == Comment.user_id)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc())
        )).all()
        return [
            CommentResponse(
                id=comment.id,
                content=comment.content,
                post_id=comment.post_id,
                created_at=comment.created_at,
                user=UserSummary.model_validate(author),
            )
            for comment, author in rows
        ]

    # ══════════════════════════════════════════════════════════════════════
    # Response building
    # ══════════════════════════════════════════════════════════════════════

    async def _build(
        self,
        db: AsyncSession,
        rows: Sequence,
        viewer_id: Optional[UUID],
    ) -> List[PostResponse]:
        post_ids = [row[0].id for row in rows]
        liked = await self._engaged_ids(db, Like, post_ids, viewer_id)
        shared = await self._engaged_ids(db, Share, post_ids, viewer_id)
        return [
            self._to_response(
                post, author, likes, comments, shares,
                is_liked=post.id in liked,
                is_shared=post.id in shared,
            )
            for post, author, likes, comments, shares in rows
        ]

    async def _engaged_ids(
        self,
        db: AsyncSession,
        model: Engagement,
        post_ids: List[UUID],
        viewer_id: Optional[UUID],
    ) -> Set[UUID]:
        if viewer_id is None or not post_ids:
            return set()
        result = await db.execute(
            select(model.post_id).where(model.user_id == viewer_id, model.post_id.in_(post_ids))
        )
        return set(result.scalars().all())

    @staticmethod
    def _to_response(
        post: Post,
        author: User,
        likes: int,
        comments: int,
        shares: int,
        is_liked: bool = False,
        is_shared: bool = False,
    ) -> PostResponse:
        return PostResponse(
            id=post.id,
            content=post.content,
            image_url=post.image_url,
            created_at=post.created_at,
            updated_at=post.updated_at,
            user=UserSummary.model_validate(author),
            counts=PostCounts(likes=likes, comments=comments, shares=shares),
            is_liked=is_liked,
            is_shared=is_shared,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
