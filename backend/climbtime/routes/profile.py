"""
ClimbTime Backend - Profile Route Handlers
============================================

What:  Read and edit the caller's own profile.
How:   PUT takes a multipart form (the profile editor posts FormData).

Image precedence per slot (profile picture, banner):
    1. *DataUrl string field  → stored on the user row as-is
    2. non-empty file part    → validated, written to storage, public URL stored
    3. neither                → image left unchanged

Text fields follow "empty means unchanged": an empty form value is treated
as if the field was not sent at all.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from climbtime.database import get_db_session
from climbtime.dependencies import get_current_user
from climbtime.exceptions import ValidationError
from climbtime.models.user import User
from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.user import ProfileResponse, ProfileUpdate, ProfileUpdateResponse, UserPublic
from climbtime.services.file_service import file_service
from climbtime.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _build_update(**fields: Optional[str]) -> ProfileUpdate:
    """Validate the text fields, reporting the first failure as a 400."""
    try:
        return ProfileUpdate(**fields)
    except PydanticValidationError as e:
        first = e.errors(include_url=False, include_context=False, include_input=False)[0]
        field = ".".join(str(part) for part in first["loc"])
        message = first["msg"].removeprefix("Value error, ")
        raise ValidationError(message=message, field=field)


async def _store_upload(upload: Optional[UploadFile], category: str, stored: List[str]) -> Optional[str]:
    """Store a non-empty upload; returns its public URL, or None when nothing was sent."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    if not content:
        return None
    absolute_path, url = await file_service.validate_and_store(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type,
        category=category,
    )
    stored.append(absolute_path)
    return url


@router.get(
    "",
    response_model=ProfileResponse,
    responses={401: {"description": "Not logged in", "model": ErrorResponse}},
    summary="The caller's own profile",
)
async def get_own_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await user_service.get_profile(db, user.id, user.id)


@router.put(
    "",
    response_model=ProfileUpdateResponse,
    responses={
        400: {"description": "Invalid field or image", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
    },
    summary="Update the caller's profile",
)
async def update_profile(
    name: Optional[str] = Form(default=None),
    bio: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    website: Optional[str] = Form(default=None),
    profile_picture: Optional[UploadFile] = File(default=None, alias="profilePicture"),
    banner_picture: Optional[UploadFile] = File(default=None, alias="bannerPicture"),
    profile_picture_data_url: Optional[str] = Form(default=None, alias="profilePictureDataUrl"),
    banner_picture_data_url: Optional[str] = Form(default=None, alias="bannerPictureDataUrl"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    changes = _build_update(
        name=_blank_to_none(name),
        bio=_blank_to_none(bio),
        location=_blank_to_none(location),
        website=_blank_to_none(website),
    )

    stored: List[str] = []
    try:
        changes.image = _blank_to_none(profile_picture_data_url) or await _store_upload(
            profile_picture, "profile", stored
        )
        changes.banner_image = _blank_to_none(banner_picture_data_url) or await _store_upload(
            banner_picture, "banner", stored
        )
        updated = await user_service.update_profile(db, user, changes)
    except Exception:
        for path in stored:
            await file_service.cleanup_file(path)
        raise

    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=UserPublic.model_validate(updated),
    )
