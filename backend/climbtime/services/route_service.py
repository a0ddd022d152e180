"""
ClimbTime Backend - Climbing Route Selection Service
======================================================

What:  Pure functions behind the grade page: loading a route file,
       colouring routes, building the "Route Zero" selection and exporting it.
Who:   routes/grade.py.

Route Zero:
    The climber's own route, assembled by clicking holds (bounding boxes)
    of the segmented routes:
        - the very first click on any route copies every box of that route
          into Route Zero (skipping boxes already there)
        - every later click toggles just the clicked box
        - clicking a box drawn as part of Route Zero removes it
    Two boxes are the same box when their four coordinates are equal.
"""

import logging
from typing import Any, Dict, List, Tuple

from climbtime.exceptions import NotFoundError, ValidationError
from climbtime.schemas.grade import BoundingBox, RouteColor, RouteSet

logger = logging.getLogger(__name__)

ROUTE_ZERO = "Route Zero"
ROUTE_PREFIX = "Route "
EXPORT_FILENAME = "route_data.txt"

ROUTE_COLORS: List[RouteColor] = [
    RouteColor(name="Red", value="#EF4444", text_color="#FFFFFF"),
    RouteColor(name="Blue", value="#3B82F6", text_color="#FFFFFF"),
    RouteColor(name="Green", value="#10B981", text_color="#FFFFFF"),
    RouteColor(name="Yellow", value="#F59E0B", text_color="#000000"),
    RouteColor(name="Purple", value="#8B5CF6", text_color="#FFFFFF"),
    RouteColor(name="Pink", value="#EC4899", text_color="#FFFFFF"),
    RouteColor(name="Orange", value="#F97316", text_color="#FFFFFF"),
    RouteColor(name="Teal", value="#14B8A6", text_color="#FFFFFF"),
    RouteColor(name="Indigo", value="#6366F1", text_color="#FFFFFF"),
    RouteColor(name="Cyan", value="#06B6D4", text_color="#FFFFFF"),
]

Routes = Dict[str, List[BoundingBox]]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_route_file(payload: Any) -> Routes:
    """
    Validate the raw JSON of a route file.

    Raises:
        ValidationError: not an object of lists of {"bbox": [4 numbers]}
    """
    if not isinstance(payload, dict):
        raise ValidationError(message="Invalid route file format: expected an object of routes")

    routes: Routes = {}
    for name, boxes in payload.items():
        if not isinstance(boxes, list):
            raise ValidationError(
                message="Invalid route file format",
                context={"route": name, "reason": "route is not a list"},
            )
        parsed = []
        for box in boxes:
            bbox = box.get("bbox") if isinstance(box, dict) else None
            if not isinstance(bbox, list) or len(bbox) != 4 or not all(_is_number(v) for v in bbox):
                raise ValidationError(
                    message="Invalid route file format",
                    context={"route": name, "reason": "bbox must be a list of 4 numbers"},
                )
            parsed.append(BoundingBox(bbox=bbox))
        routes[str(name)] = parsed
    return routes


def normalize_route_names(routes: Routes) -> Routes:
    """
    Rename keys that do not start with "Route " to "Route {position}".

    Position is 1-based over the file's key order. A generated name that
    collides with a later key is overwritten by it, keeping the file's
    last word for that name.
    """
    renamed: Routes = {}
    for index, (name, boxes) in enumerate(routes.items()):
        new_name = name if name.startswith(ROUTE_PREFIX) else f"{ROUTE_PREFIX}{index + 1}"
        if new_name in renamed:
            logger.warning("Route name collision on '%s'; keeping the later route", new_name)
        renamed[new_name] = boxes
    return renamed


def assign_colors(route_names: List[str]) -> Dict[str, RouteColor]:
    """Palette colour per route, cycling through the ten colours by position."""
    return {
        name: ROUTE_COLORS[index % len(ROUTE_COLORS)]
        for index, name in enumerate(route_names)
    }


def load_routes(payload: Any) -> RouteSet:
    routes = normalize_route_names(parse_route_file(payload))
    logger.info("Route file loaded: %d routes, %d boxes", len(routes), sum(len(b) for b in routes.values()))
    return RouteSet(routes=routes, colors=assign_colors(list(routes)))


def contains_box(boxes: List[BoundingBox], box: BoundingBox) -> bool:
    key = box.key()
    return any(existing.key() == key for existing in boxes)


def apply_click(
    routes: Routes,
    route_zero: List[BoundingBox],
    route_name: str,
    box_index: int,
    first_click: bool,
) -> Tuple[List[BoundingBox], bool]:
    """
    Apply one canvas click to the Route Zero selection.

    Returns:
        (new route_zero, new first_click flag)

    Raises:
        NotFoundError: the clicked route does not exist
        ValidationError: box_index out of range for the clicked route
    """
    selection = list(route_zero)

    if route_name == ROUTE_ZERO:
        if box_index >= len(selection):
            raise ValidationError(message="Box index out of range", field="boxIndex")
        del selection[box_index]
        return selection, first_click

    if route_name not in routes:
        raise NotFoundError(resource="route", resource_id=route_name)
    boxes = routes[route_name]

    if first_click:
        for box in boxes:
            if not contains_box(selection, box):
                selection.append(box)
        return selection, False

    if box_index >= len(boxes):
        raise ValidationError(message="Box index out of range", field="boxIndex")
    box = boxes[box_index]
    if contains_box(selection, box):
        selection = [existing for existing in selection if existing.key() != box.key()]
    else:
        selection.append(box)
    return selection, False


def build_export(routes: Routes, route_zero: List[BoundingBox]) -> Dict[str, Any]:
    """
    The saved file's JSON: Route Zero first, then every segmented route.

    A "Route Zero" key among `routes` is dropped so the current selection
    is what gets saved.
    """
    export: Dict[str, Any] = {ROUTE_ZERO: [box.model_dump() for box in route_zero]}
    for name, boxes in routes.items():
        if name == ROUTE_ZERO:
            continue
        export[name] = [box.model_dump() for box in boxes]
    return export
