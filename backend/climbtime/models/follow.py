"""
ClimbTime Backend - Follow SQLAlchemy Model
=============================================

What:  One directed edge of the social graph: follower_id → following_id.
Why:   Feeds ("following"), suggestions, follower counts and the
       mutual-follow rule for messaging are all queries over this table.

Invariants:
    - UNIQUE (follower_id, following_id): following twice is impossible
    - follower_id != following_id, enforced by FollowService and a CHECK
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from climbtime.database import Base, utcnow


class Follow(Base):
    __tablename__ = "follows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    following_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
    )

    def __repr__(self) -> str:
        return f"<Follow({self.follower_id} -> {self.following_id})>"
