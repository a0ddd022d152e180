"""
ClimbTime Backend - Shared Schema Building Blocks
===================================================

What:  The camelCase base model, error envelope and health response used
       by every other schema module.

Wire format:
    The browser client speaks camelCase (postId, imageUrl, isFollowing).
    Python code stays snake_case; CamelModel generates the aliases, accepts
    either spelling on input, and FastAPI serializes responses by alias.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class MessageResponse(CamelModel):
    """A bare acknowledgement, e.g. logout."""

    message: str


class ErrorResponse(BaseModel):
    """
    Error envelope returned by every exception handler in main.py.

    Listed in route `responses=` so the OpenAPI docs show the shape.
    """

    error: str = Field(description="Machine-readable error code, e.g. 'validation_error'")
    message: str = Field(description="Human-readable explanation")
    details: Optional[Any] = Field(default=None, description="Extra context when safe to expose")
    request_id: Optional[str] = Field(default=None, description="Correlates with server logs")


class HealthResponse(CamelModel):
    """
    What:  Aggregate service health.
    status: healthy | degraded (prediction service down) | unhealthy (database down)
    """

    status: str
    version: str
    database: str
    prediction_service: str
    uptime_seconds: float


def error_body(
    error: str,
    message: str,
    request_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    body["request_id"] = request_id
    return body
