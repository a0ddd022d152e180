"""
ClimbTime Backend - Direct Message Route Handlers
===================================================

What:  Conversations and messages between mutually-following users.

Access rules:
    - a conversation can only be started with a mutual follow
    - only the two participants can read or post in a conversation
    - reading a conversation marks the caller's received messages as read
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.message import (
    ConversationCreate,
    ConversationIdResponse,
    ConversationSummary,
    MessageCreate,
    MessageResponse,
    UnreadCountResponse,
)
from climbtime.services.message_service import message_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messages"])

_auth_errors = {401: {"description": "Not logged in", "model": ErrorResponse}}
_conversation_errors = {
    **_auth_errors,
    403: {"description": "Not a participant", "model": ErrorResponse},
    404: {"description": "Conversation not found", "model": ErrorResponse},
}


@router.post(
    "/conversation",
    response_model=ConversationIdResponse,
    responses={
        **_auth_errors,
        400: {"description": "Missing receiver or messaging yourself", "model": ErrorResponse},
        403: {"description": "Not a mutual follow", "model": ErrorResponse},
        404: {"description": "Receiver not found", "model": ErrorResponse},
    },
    summary="Open (or reuse) a conversation",
)
async def open_conversation(
    body: ConversationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ConversationIdResponse:
    conversation = await message_service.get_or_create_conversation(db, user, body.receiver_id)
    return ConversationIdResponse(conversation_id=conversation.id)


@router.get(
    "/conversations",
    response_model=List[ConversationSummary],
    responses=_auth_errors,
    summary="The caller's inbox",
)
async def list_conversations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ConversationSummary]:
    return await message_service.list_conversations(db, user)


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    responses=_auth_errors,
    summary="Unread message count",
)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await message_service.unread_count(db, user))


@router.get(
    "/{conversation_id}",
    response_model=List[MessageResponse],
    responses=_conversation_errors,
    summary="Read a conversation",
)
async def read_conversation(
    conversation_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MessageResponse]:
    return await message_service.read_messages(db, user, conversation_id)


@router.post(
    "",
    response_model=MessageResponse,
    status_code=201,
    responses={
        **_conversation_errors,
        400: {"description": "Invalid message or receiver", "model": ErrorResponse},
    },
    summary="Send a message",
)
async def send_message(
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await message_service.send_message(db, user, body)
