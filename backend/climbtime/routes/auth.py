"""
ClimbTime Backend - Auth Route Handlers
=========================================

What:  Signup, login, logout and the current-session lookup.
How:   Login issues a signed session token, returned in the body (API
       clients) and set as an httponly cookie (the browser client).
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.config import settings
from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse, MessageResponse
from climbtime.schemas.user import (
    LoginRequest,
    LoginResponse,
    SessionUser,
    SignupRequest,
    SignupResponse,
)
from climbtime.security import create_session_token
from climbtime.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=201,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SignupResponse:
    user = await user_service.create_user(db, body)
    return SignupResponse(message="User created successfully", user=SessionUser.model_validate(user))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in and start a session",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    user = await user_service.authenticate(db, body.email, body.password)
    token = create_session_token(user.id)

    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )
    logger.info("User logged in: %s", user.id)
    return LoginResponse(message="Logged in", token=token, user=SessionUser.model_validate(user))


@router.post("/logout", response_model=MessageResponse, summary="End the session")
async def logout(response: Response) -> MessageResponse:
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return MessageResponse(message="Logged out")


@router.get(
    "/session",
    response_model=SessionUser,
    responses={401: {"description": "Not logged in", "model": ErrorResponse}},
    summary="Current session user",
)
async def current_session(user: User = Depends(get_current_user)) -> SessionUser:
    return SessionUser.model_validate(user)
