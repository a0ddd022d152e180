"""
ClimbTime Backend - Request Dependencies
==========================================

What:  FastAPI dependencies resolving the caller's identity.
How:   Candidate tokens come from the session cookie, then from an
       `Authorization: Bearer <token>` header (API clients, tests). The first
       one that decodes wins, so a stale cookie does not hide a valid header.
       The token's subject must still exist as a user row.

    get_current_user   → User, or AuthenticationError (401)
    get_optional_user  → User or None; for endpoints that behave differently
                         for anonymous callers (feed, follow check, like counts)
"""

import logging
from typing import List, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.config import settings
from climbtime.database import get_db_session
from climbtime.exceptions import AuthenticationError
from climbtime.models.user import User
from climbtime.security import decode_session_token
from climbtime.services.user_service import user_service

logger = logging.getLogger(__name__)


def _candidate_tokens(request: Request) -> List[str]:
    tokens = []
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        tokens.append(cookie)
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        tokens.append(credentials.strip())
    return tokens


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    user_id = None
    for token in _candidate_tokens(request):
        user_id = decode_session_token(token)
        if user_id is not None:
            break
    if user_id is None:
        return None
    user = await user_service.get_user(db, user_id)
    if user is None:
        logger.info("Session token references missing user %s", user_id)
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    if user is None:
        raise AuthenticationError()
    return user
