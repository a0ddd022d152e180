"""
ClimbTime Backend - Grade Route Handlers
==========================================

What:  Route-file handling for the grade page: load and colour a route file,
       apply Route Zero selection clicks, and export the result.
How:   Stateless. The client sends the routes it holds on every call; all
       logic lives in services/route_service.py.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Response

from climbtime.schemas.common import ErrorResponse
from climbtime.schemas.grade import RouteExport, RouteSet, RouteZeroClick, RouteZeroState
from climbtime.services import route_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/grade", tags=["Grade"])


@router.post(
    "/routes",
    response_model=RouteSet,
    responses={400: {"description": "Malformed route file", "model": ErrorResponse}},
    summary="Load a route file",
    description=(
        "Normalizes route names to 'Route N' and assigns each route a palette colour."
    ),
)
async def load_routes(payload: Any = Body(...)) -> RouteSet:
    return route_service.load_routes(payload)


@router.post(
    "/route-zero",
    response_model=RouteZeroState,
    responses={
        400: {"description": "Box index out of range", "model": ErrorResponse},
        404: {"description": "Unknown route", "model": ErrorResponse},
    },
    summary="Apply a Route Zero selection click",
)
async def click_route_zero(body: RouteZeroClick) -> RouteZeroState:
    selection, first_click = route_service.apply_click(
        body.routes,
        body.route_zero,
        body.route_name,
        body.box_index,
        body.first_click,
    )
    return RouteZeroState(route_zero=selection, first_click=first_click)


@router.post(
    "/export",
    summary="Download the route file with Route Zero",
    response_description="route_data.txt attachment",
)
async def export_routes(body: RouteExport) -> Response:
    export = route_service.build_export(body.routes, body.route_zero)
    return Response(
        content=json.dumps(export, indent=2),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{route_service.EXPORT_FILENAME}"'
        },
    )
