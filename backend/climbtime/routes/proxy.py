"""
ClimbTime Backend - Prediction Proxy Route Handlers
=====================================================

What:  Forwards a climbing-wall photo to the route-segmentation service and
       passes its JSON back; plus a health probe of that service.
Who:   The grade page.

Upstream failures are raised as PredictionServiceError and rendered by the
global handler in main.py with the upstream status code.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, File, UploadFile

from climbtime.exceptions import PredictionServiceError, ValidationError
from climbtime.schemas.common import ErrorResponse
from climbtime.services.prediction_service import prediction_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxy", tags=["Prediction"])


@router.post(
    "",
    responses={
        400: {"description": "Missing or empty file", "model": ErrorResponse},
        500: {"description": "Prediction service unreachable", "model": ErrorResponse},
        502: {"description": "Prediction service starting up", "model": ErrorResponse},
    },
    summary="Segment routes in a wall photo",
    description=(
        "Forwards the uploaded image to the prediction service, retrying while it "
        "starts up, and returns the service's JSON unchanged."
    ),
)
async def predict(file: Optional[UploadFile] = File(default=None)) -> Any:
    if file is None:
        raise ValidationError(message="No file provided", field="file")

    content = await file.read()
    if not content:
        raise ValidationError(message="Uploaded file is empty", field="file")

    logger.info("Proxying %s (%d bytes) to the prediction service", file.filename, len(content))
    return await prediction_service.predict(
        filename=file.filename or "upload",
        content=content,
        content_type=file.content_type,
    )


@router.get(
    "",
    responses={503: {"description": "Prediction service unavailable", "model": ErrorResponse}},
    summary="Prediction service health",
)
async def prediction_health() -> dict:
    if not await prediction_service.health_check():
        raise PredictionServiceError(
            message="Service unavailable",
            status_code=503,
            details="The prediction service did not answer its health check",
        )
    return {"status": "ok"}
