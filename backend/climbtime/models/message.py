"""
ClimbTime Backend - Conversation and Message Models
=====================================================

What:  Direct messaging between two mutually-following users.

Conversation:
    A pair (initiator_id, receiver_id). There is at most one conversation per
    unordered pair of users; MessageService looks the pair up in both
    directions before creating one. last_message_at orders the inbox.

Message:
    Belongs to one conversation. `read` flips to true when the receiver
    opens the conversation; unread counts are WHERE receiver_id = me AND NOT read.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from climbtime.database import Base, utcnow


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    initiator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def participant_ids(self) -> tuple[uuid.UUID, uuid.UUID]:
        return self.initiator_id, self.receiver_id

    def other_participant(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.receiver_id if self.initiator_id == user_id else self.initiator_id

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, {self.initiator_id} <-> {self.receiver_id})>"


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )

    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_messages_conversation_created", conversation_id, created_at),
        Index("idx_messages_receiver_read", receiver_id, read),
    )
