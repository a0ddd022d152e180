"""
ClimbTime Backend - User Service
==================================

What:  Accounts (signup, login), profile reads/updates and user search.
Who:   routes/auth.py, routes/profile.py, routes/users.py and the session
       dependency in climbtime.dependencies.

Query notes:
    Profile counts (posts, followers, following) come from correlated
    scalar subqueries in the same SELECT as the user row. Search uses
    ILIKE '%q%' on name and email; user-supplied % and _ are escaped.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from climbtime.models.follow import Follow
from climbtime.models.post import Post
from climbtime.models.user import User
from climbtime.schemas.user import (
    ProfileCounts,
    ProfileResponse,
    ProfileUpdate,
    SignupRequest,
    SuggestedUser,
    UserPublic,
    UserWithFollow,
)
from climbtime.security import hash_password, verify_password
from climbtime.services.follow_service import follow_service

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
SUGGESTED_LIMIT = 6


def contains_pattern(query: str) -> str:
    """ILIKE pattern matching `query` anywhere, with wildcards escaped (ESCAPE '\\')."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def follower_count_column(user_column=User.id):
    return (
        select(func.count(Follow.id))
        .where(Follow.following_id == user_column)
        .correlate(User)
        .scalar_subquery()
    )


def following_count_column(user_column=User.id):
    return (
        select(func.count(Follow.id))
        .where(Follow.follower_id == user_column)
        .correlate(User)
        .scalar_subquery()
    )


def post_count_column(user_column=User.id):
    return (
        select(func.count(Post.id))
        .where(Post.user_id == user_column)
        .correlate(User)
        .scalar_subquery()
    )


class UserService:
    """
    Business logic for accounts and profiles.

    Error Handling Strategy:
        Application exceptions (NotFoundError, ConflictError...) propagate
        untouched. Unexpected SQLAlchemy errors are logged and wrapped in
        DatabaseError so the client only ever sees a generic message.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Accounts
    # ══════════════════════════════════════════════════════════════════════

    async def get_user(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_or_404(self, db: AsyncSession, user_id: UUID) -> User:
        user = await self.get_user(db, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create_user(self, db: AsyncSession, data: SignupRequest) -> User:
        """
        Register a new account.

        Raises:
            ConflictError: the (lowercased) email is already registered
        """
        if await self.get_by_email(db, data.email) is not None:
            raise ConflictError(message="User with this email already exists")

        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent signup with the same email won the race
            raise ConflictError(message="User with this email already exists")
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", str(e))
            raise DatabaseError(context={"operation": "create_user"})

        logger.info("User registered: %s", user.id)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> User:
        """
        Verify credentials.

        Unknown email and wrong password produce the same error so the
        endpoint cannot be used to probe which emails are registered.
        """
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthenticationError(message="Invalid email or password")
        return user

    # ══════════════════════════════════════════════════════════════════════
    # Profiles
    # ══════════════════════════════════════════════════════════════════════

    async def get_profile(
        self,
        db: AsyncSession,
        user_id: UUID,
        viewer_id: Optional[UUID] = None,
    ) -> ProfileResponse:
        """
        Profile page payload: public fields, counts and the viewer's relation.

        email is only filled when the viewer is looking at their own profile.
        """
        result = await db.execute(
            select(
                User,
                post_count_column().label("posts"),
                follower_count_column().label("followers"),
                following_count_column().label("following"),
            ).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))

        user, posts, followers, following = row
        is_current_user = viewer_id is not None and viewer_id == user.id
        is_following = False
        if viewer_id is not None and not is_current_user:
            is_following = await follow_service.is_following(db, viewer_id, user.id)

        public = UserPublic.model_validate(user)
        return ProfileResponse(
            **public.model_dump(),
            counts=ProfileCounts(posts=posts, followers=followers, following=following),
            is_following=is_following,
            is_current_user=is_current_user,
            email=user.email if is_current_user else None,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        changes: ProfileUpdate,
    ) -> User:
        """Apply non-None fields of `changes`; None leaves the stored value as-is."""
        updates = changes.model_dump(exclude_none=True)
        for field, value in updates.items():
            setattr(user, field, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update profile %s: %s", user.id, str(e))
            raise DatabaseError(context={"operation": "update_profile", "user_id": str(user.id)})

        logger.info("Profile updated: %s (fields=%s)", user.id, sorted(updates))
        return user

    # ══════════════════════════════════════════════════════════════════════
    # Search & Discovery
    # ══════════════════════════════════════════════════════════════════════

    async def search_users(
        self,
        db: AsyncSession,
        query: str,
        viewer_id: UUID,
        limit: int = SEARCH_LIMIT,
    ) -> List[UserWithFollow]:
        """Case-insensitive name/email search. A blank query returns no results."""
        query = query.strip()
        if not query:
            return []

        pattern = contains_pattern(query)
        result = await db.execute(
            select(User)
            .where(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
            .order_by(User.name)
            .limit(limit)
        )
        users = result.scalars().all()
        return await self._with_follow_flags(db, users, viewer_id)

    async def search_among(
        self,
        db: AsyncSession,
        candidate_ids: Sequence[UUID],
        query: str,
        viewer_id: UUID,
        limit: int = SEARCH_LIMIT,
    ) -> List[UserWithFollow]:
        """
        Name/email search restricted to `candidate_ids`.

        Used by the followers and mutual-followers searches. An empty query
        matches every candidate.
        """
        if not candidate_ids:
            return []

        stmt = select(User).where(User.id.in_(candidate_ids))
        query = query.strip()
        if query:
            pattern = contains_pattern(query)
            stmt = stmt.where(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        result = await db.execute(stmt.order_by(User.name).limit(limit))
        return await self._with_follow_flags(db, result.scalars().all(), viewer_id)

    async def suggested_users(
        self,
        db: AsyncSession,
        viewer_id: UUID,
        limit: int = SUGGESTED_LIMIT,
    ) -> List[SuggestedUser]:
        """Most-followed users the viewer does not follow yet, excluding the viewer."""
        already_following = select(Follow.following_id).where(Follow.follower_id == viewer_id)
        follower_count = follower_count_column().label("follower_count")

        result = await db.execute(
            select(User, follower_count)
            .where(User.id != viewer_id, User.id.not_in(already_following))
            .order_by(follower_count.desc(), User.created_at.desc())
            .limit(limit)
        )
        return [
            SuggestedUser(id=user.id, name=user.name, image=user.image, follower_count=count)
            for user, count in result.all()
        ]

    async def _with_follow_flags(
        self,
        db: AsyncSession,
        users: Sequence[User],
        viewer_id: UUID,
    ) -> List[UserWithFollow]:
        if not users:
            return []
        result = await db.execute(
            select(Follow.following_id).where(
                Follow.follower_id == viewer_id,
                Follow.following_id.in_([u.id for u in users]),
            )
        )
        followed = set(result.scalars().all())
        return [
            UserWithFollow(id=u.id, name=u.name, image=u.image, is_following=u.id in followed)
            for u in users
        ]


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
