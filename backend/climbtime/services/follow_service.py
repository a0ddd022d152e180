"""
ClimbTime Backend - Follow Service
====================================

What:  The social graph: follow/unfollow, follow checks and the
       follower / following / mutual id sets.
Who:   routes/follow.py, routes/users.py, UserService (profile isFollowing),
       MessageService (mutual-follow gate for messaging).

Mutual follow:
    A and B are mutual follows when both edges A→B and B→A exist.
    mutual_follower_ids(user) is the intersection of the ids following the
    user and the ids the user follows.
"""

import logging
from typing import Set
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.exceptions import NotFoundError, ValidationError
from climbtime.models.follow import Follow
from climbtime.models.user import User
from climbtime.schemas.follow import FollowResponse

logger = logging.getLogger(__name__)


class FollowService:

    async def is_following(self, db: AsyncSession, follower_id: UUID, following_id: UUID) -> bool:
        result = await db.execute(
            select(Follow.id).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return result.first() is not None

    async def is_mutual(self, db: AsyncSession, user_a: UUID, user_b: UUID) -> bool:
        """True when both directions of the follow relation exist."""
        result = await db.execute(
            select(func.count(Follow.id)).where(
                or_(
                    and_(Follow.follower_id == user_a, Follow.following_id == user_b),
                    and_(Follow.follower_id == user_b, Follow.following_id == user_a),
                )
            )
        )
        return result.scalar_one() == 2

    async def follower_ids(self, db: AsyncSession, user_id: UUID) -> Set[UUID]:
        result = await db.execute(
            select(Follow.follower_id).where(Follow.following_id == user_id)
        )
        return set(result.scalars().all())

    async def following_ids(self, db: AsyncSession, user_id: UUID) -> Set[UUID]:
        result = await db.execute(
            select(Follow.following_id).where(Follow.follower_id == user_id)
        )
        return set(result.scalars().all())

    async def mutual_follower_ids(self, db: AsyncSession, user_id: UUID) -> Set[UUID]:
        followers = await self.follower_ids(db, user_id)
        following = await self.following_ids(db, user_id)
        return followers & following

    async def set_following(
        self,
        db: AsyncSession,
        follower_id: UUID,
        target_id: UUID,
        action: str,
    ) -> FollowResponse:
        """
        Apply a follow or unfollow action.

        Both actions are idempotent: following an already-followed user or
        unfollowing a non-followed user answers 200 with an explanatory
        message instead of an error.

        Raises:
            ValidationError: self-follow or unknown action (400)
            NotFoundError: target user does not exist (404)
        """
        if action not in ("follow", "unfollow"):
            raise ValidationError(message="Invalid action", field="action")
        if follower_id == target_id:
            raise ValidationError(message="You cannot follow yourself", field="targetUserId")

        if await db.get(User, target_id) is None:
            raise NotFoundError(resource="user", resource_id=str(target_id))

        currently_following = await self.is_following(db, follower_id, target_id)

        if action == "follow":
            if currently_following:
                return FollowResponse(message="Already following this user", is_following=True)
            db.add(Follow(follower_id=follower_id, following_id=target_id))
            try:
                await db.flush()
            except IntegrityError:
                # A parallel request created the same edge first
                await db.rollback()
                return FollowResponse(message="Already following this user", is_following=True)
            logger.info("User %s followed %s", follower_id, target_id)
            return FollowResponse(message="Successfully followed user", is_following=True)

        if not currently_following:
            return FollowResponse(message="Not following this user", is_following=False)
        await db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == target_id,
            )
        )
        logger.info("User %s unfollowed %s", follower_id, target_id)
        return FollowResponse(message="Successfully unfollowed user", is_following=False)


# ── Singleton Instance ────────────────────────────────────────────────────
follow_service = FollowService()
