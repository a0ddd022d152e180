"""
ClimbTime Backend - Route Grading Schemas
===========================================

What:  Bounding boxes, route colour assignments and the Route Zero
       selection payloads exchanged by the grade page.

Route file format (produced by the segmentation service):
    {
        "Route 1": [{"bbox": [x1, y1, x2, y2]}, ...],
        "crimps":  [{"bbox": [...]}]
    }
"""

from typing import Dict, List, Union

from pydantic import Field, field_validator

from climbtime.schemas.common import CamelModel


class BoundingBox(CamelModel):
    # int and float kept apart so an exported file matches the loaded one
    bbox: List[Union[int, float]] = Field(min_length=4, max_length=4)

    def key(self) -> tuple:
        """Equality key: two boxes are the same box when all four coordinates match."""
        return tuple(self.bbox)


class RouteColor(CamelModel):
    name: str
    value: str
    text_color: str


class RouteSet(CamelModel):
    routes: Dict[str, List[BoundingBox]]
    colors: Dict[str, RouteColor]


class RouteZeroClick(CamelModel):
    """
    One click on the canvas.

    first_click is true until the first box of a non-Route-Zero route has
    been clicked; the client echoes back what the previous response returned.
    """

    routes: Dict[str, List[BoundingBox]]
    route_zero: List[BoundingBox] = Field(default_factory=list)
    route_name: str
    box_index: int = Field(ge=0)
    first_click: bool = True

    @field_validator("route_name")
    @classmethod
    def strip_route_name(cls, v: str) -> str:
        return v.strip()


class RouteZeroState(CamelModel):
    route_zero: List[BoundingBox]
    first_click: bool


class RouteExport(CamelModel):
    routes: Dict[str, List[BoundingBox]]
    route_zero: List[BoundingBox] = Field(default_factory=list)
