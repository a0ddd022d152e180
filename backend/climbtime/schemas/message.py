"""
ClimbTime Backend - Messaging Schemas
=======================================

What:  Request and response models for conversations and direct messages.
Who:   routes/messages.py; the inbox and conversation views poll
       GET /api/messages/unread/count and GET /api/messages/{id}.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from climbtime.schemas.common import CamelModel
from climbtime.schemas.user import UserSummary

class ConversationCreate(CamelModel):
    receiver_id: uuid.UUID


class ConversationIdResponse(CamelModel):
    conversation_id: uuid.UUID


class MessageCreate(CamelModel):
    conversation_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str = Field(min_length=1)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v):
        return v.strip() if isinstance(v, str) else v


class MessageResponse(CamelModel):
    id: uuid.UUID
    content: str
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    conversation_id: uuid.UUID
    read: bool
    created_at: datetime


class ConversationSummary(CamelModel):
    """
    One inbox row.

    other_user is whichever participant is not the caller, so the client
    does not need to compare ids to decide whose avatar to show.
    """

    id: uuid.UUID
    initiator: UserSummary
    receiver: UserSummary
    other_user: UserSummary
    last_message: Optional[MessageResponse] = None
    last_message_at: datetime
    unread_count: int = 0


class UnreadCountResponse(CamelModel):
    count: int
