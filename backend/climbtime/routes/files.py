"""
ClimbTime Backend - Uploaded File Route
=========================================

What:  Serves stored profile and banner images at /api/files/{path}.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from climbtime.schemas.common import ErrorResponse
from climbtime.services.file_service import file_service

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get(
    "/{file_path:path}",
    response_class=FileResponse,
    responses={
        400: {"description": "Path outside storage", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Download an uploaded image",
)
async def get_file(file_path: str) -> FileResponse:
    return FileResponse(file_service.resolve(file_path))
