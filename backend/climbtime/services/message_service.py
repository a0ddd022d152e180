"""
ClimbTime Backend - Message Service
=====================================

What:  Conversations and direct messages between mutual follows.
Who:   routes/messages.py.

Rules:
    - Opening a conversation requires a mutual follow with the receiver (403
      otherwise). The existing conversation is reused in either direction.
    - Only the two participants can read or post into a conversation (403).
    - Reading a conversation marks the caller's received messages as read.
    - Sending bumps the conversation's last_message_at, which orders the inbox.

Sending into an existing conversation does not re-check the mutual follow:
an unfollow does not lock users out of history they already share.
"""

import logging
from typing import Dict, List
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import utcnow
from climbtime.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from climbtime.models.message import Conversation, Message
from climbtime.models.user import User
from climbtime.schemas.message import (
    ConversationSummary,
    MessageCreate,
    MessageResponse,
)
from climbtime.schemas.user import UserSummary
from climbtime.services.follow_service import follow_service

logger = logging.getLogger(__name__)

MUTUAL_FOLLOW_REQUIRED = "You can only message users who follow you and whom you follow"


class MessageService:

    async def get_or_create_conversation(
        self,
        db: AsyncSession,
        user: User,
        receiver_id: UUID,
    ) -> Conversation:
        """
        Find the conversation between the caller and `receiver_id`, or start one.

        Raises:
            ValidationError: messaging yourself (400)
            NotFoundError: receiver does not exist (404)
            PermissionDeniedError: not a mutual follow (403)
        """
        if receiver_id == user.id:
            raise ValidationError(message="You cannot message yourself", field="receiverId")

        if await db.get(User, receiver_id) is None:
            raise NotFoundError(resource="user", resource_id=str(receiver_id))

        if not await follow_service.is_mutual(db, user.id, receiver_id):
            raise PermissionDeniedError(message=MUTUAL_FOLLOW_REQUIRED)

        existing = (await db.execute(
            select(Conversation).where(
                or_(
                    and_(Conversation.initiator_id == user.id, Conversation.receiver_id == receiver_id),
                    and_(Conversation.initiator_id == receiver_id, Conversation.receiver_id == user.id),
                )
            ).order_by(Conversation.created_at.asc())
        )).scalars().first()
        if existing is not None:
            return existing

        conversation = Conversation(initiator_id=user.id, receiver_id=receiver_id)
        db.add(conversation)
        await db.flush()
        logger.info("Conversation %s started by %s", conversation.id, user.id)
        return conversation

    async def get_conversation_for(
        self,
        db: AsyncSession,
        user: User,
        conversation_id: UUID,
    ) -> Conversation:
        conversation = await db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError(resource="conversation", resource_id=str(conversation_id))
        if user.id not in conversation.participant_ids():
            logger.warning("User %s denied access to conversation %s", user.id, conversation_id)
            raise PermissionDeniedError(message="You are not a participant in this conversation")
        return conversation

    async def send_message(
        self,
        db: AsyncSession,
        user: User,
        data: MessageCreate,
    ) -> MessageResponse:
        conversation = await self.get_conversation_for(db, user, data.conversation_id)

        if data.receiver_id != conversation.other_participant(user.id):
            raise ValidationError(
                message="Receiver is not the other participant of this conversation",
                field="receiverId",
            )

        message = Message(
            content=data.content,
            sender_id=user.id,
            receiver_id=data.receiver_id,
            conversation_id=conversation.id,
        )
        db.add(message)
        conversation.last_message_at = utcnow()
        await db.flush()

        logger.info("Message %s sent in conversation %s", message.id, conversation.id)
        return MessageResponse.model_validate(message)

    async def read_messages(
        self,
        db: AsyncSession,
        user: User,
        conversation_id: UUID,
    ) -> List[MessageResponse]:
        """Messages oldest first; the caller's unread received messages become read."""
        conversation = await self.get_conversation_for(db, user, conversation_id)

        await db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation.id,
                Message.receiver_id == user.id,
                Message.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )

        messages = (await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.asc())
            .execution_options(populate_existing=True)
        )).scalars().all()
        return [MessageResponse.model_validate(m) for m in messages]

    async def unread_count(self, db: AsyncSession, user: User) -> int:
        return (await db.execute(
            select(func.count(Message.id)).where(
                Message.receiver_id == user.id,
                Message.read.is_(False),
            )
        )).scalar_one()

    async def list_conversations(self, db: AsyncSession, user: User) -> List[ConversationSummary]:
        """
        The caller's inbox, most recently active first.

        Three queries regardless of inbox size: conversations, participants,
        and per-conversation latest message plus unread count.
        """
        conversations = (await db.execute(
            select(Conversation)
            .where(or_(Conversation.initiator_id == user.id, Conversation.receiver_id == user.id))
            .order_by(Conversation.last_message_at.desc())
        )).scalars().all()
        if not conversations:
            return []

        conversation_ids = [c.id for c in conversations]
        participant_ids = {pid for c in conversations for pid in c.participant_ids()}

        users: Dict[UUID, UserSummary] = {
            u.id: UserSummary.model_validate(u)
            for u in (await db.execute(select(User).where(User.id.in_(participant_ids)))).scalars()
        }

        latest: Dict[UUID, Message] = {}
        messages = (await db.execute(
            select(Message)
            .where(Message.conversation_id.in_(conversation_ids))
            .order_by(Message.created_at.asc())
        )).scalars().all()
        unread: Dict[UUID, int] = {}
        for m in messages:
            latest[m.conversation_id] = m
            if m.receiver_id == user.id and not m.read:
                unread[m.conversation_id] = unread.get(m.conversation_id, 0) + 1

        summaries = []
        for c in conversations:
            last = latest.get(c.id)
            summaries.append(ConversationSummary(
                id=c.id,
                initiator=users[c.initiator_id],
                receiver=users[c.receiver_id],
                other_user=users[c.other_participant(user.id)],
                last_message=MessageResponse.model_validate(last) if last else None,
                last_message_at=c.last_message_at,
                unread_count=unread.get(c.id, 0),
            ))
        return summaries


# ── Singleton Instance ────────────────────────────────────────────────────
message_service = MessageService()
