"""
ClimbTime Backend - Route Zero Selection Tests
================================================

What:  Route file loading, colour assignment, Route Zero clicks and export,
       both as pure functions and through /api/grade.
"""

import json

import pytest

from climbtime.exceptions import NotFoundError, ValidationError
from climbtime.schemas.grade import BoundingBox
from climbtime.services import route_service
from climbtime.services.route_service import ROUTE_COLORS, ROUTE_ZERO


def _boxes(*coords):
    return [BoundingBox(bbox=list(c)) for c in coords]


ROUTES = {
    "Route 1": _boxes((0, 0, 10, 10), (20, 20, 30, 30)),
    "Route 2": _boxes((20, 20, 30, 30), (40, 40, 50, 50)),
}


class TestRouteFile:

    def test_names_normalized_by_position(self):
        routes = route_service.load_routes({
            "Route 7": [{"bbox": [1, 2, 3, 4]}],
            "crimps": [{"bbox": [5, 6, 7, 8]}],
            "slopers": [],
        }).routes
        assert list(routes) == ["Route 7", "Route 2", "Route 3"]

    def test_later_route_wins_name_collision(self):
        routes = route_service.normalize_route_names({
            "first": _boxes((1, 1, 1, 1)),
            "Route 1": _boxes((2, 2, 2, 2)),
        })
        assert list(routes) == ["Route 1"]
        assert routes["Route 1"][0].bbox == [2, 2, 2, 2]

    def test_colors_cycle_through_palette(self):
        names = [f"Route {i}" for i in range(1, 13)]
        colors = route_service.assign_colors(names)
        assert colors["Route 1"] == ROUTE_COLORS[0]
        assert colors["Route 10"] == ROUTE_COLORS[9]
        assert colors["Route 11"] == ROUTE_COLORS[0]

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"Route 1": {"bbox": [1, 2, 3, 4]}},
            {"Route 1": [{"bbox": [1, 2, 3]}]},
            {"Route 1": [{"bbox": [1, 2, 3, "4"]}]},
            {"Route 1": [{"box": [1, 2, 3, 4]}]},
        ],
    )
    def test_malformed_files_rejected(self, payload):
        with pytest.raises(ValidationError, match="Invalid route file format"):
            route_service.load_routes(payload)


class TestRouteZeroClicks:

    def test_first_click_copies_whole_route(self):
        selection, first_click = route_service.apply_click(ROUTES, [], "Route 1", 1, True)
        assert [b.bbox for b in selection] == [[0, 0, 10, 10], [20, 20, 30, 30]]
        assert first_click is False

    def test_first_click_skips_boxes_already_selected(self):
        existing = _boxes((20, 20, 30, 30))
        selection, _ = route_service.apply_click(ROUTES, existing, "Route 2", 0, True)
        assert [b.bbox for b in selection] == [[20, 20, 30, 30], [40, 40, 50, 50]]

    def test_later_clicks_toggle_single_box(self):
        selection, _ = route_service.apply_click(ROUTES, [], "Route 2", 1, False)
        assert [b.bbox for b in selection] == [[40, 40, 50, 50]]

        selection, _ = route_service.apply_click(ROUTES, selection, "Route 2", 1, False)
        assert selection == []

    def test_shared_box_toggles_by_coordinates(self):
        """A box appearing in two routes is one box for Route Zero."""
        selection, _ = route_service.apply_click(ROUTES, [], "Route 1", 1, False)
        selection, _ = route_service.apply_click(ROUTES, selection, "Route 2", 0, False)
        assert selection == []

    def test_clicking_route_zero_removes_box(self):
        current = _boxes((0, 0, 10, 10), (20, 20, 30, 30))
        selection, first_click = route_service.apply_click(ROUTES, current, ROUTE_ZERO, 0, False)
        assert [b.bbox for b in selection] == [[20, 20, 30, 30]]
        assert first_click is False

    def test_unknown_route(self):
        with pytest.raises(NotFoundError):
            route_service.apply_click(ROUTES, [], "Route 9", 0, False)

    def test_box_index_out_of_range(self):
        with pytest.raises(ValidationError, match="out of range"):
            route_service.apply_click(ROUTES, [], "Route 1", 5, False)
        with pytest.raises(ValidationError, match="out of range"):
            route_service.apply_click(ROUTES, [], ROUTE_ZERO, 0, False)


class TestExport:

    def test_route_zero_first(self):
        export = route_service.build_export(
            {ROUTE_ZERO: _boxes((9, 9, 9, 9)), **ROUTES},
            _boxes((0, 0, 10, 10)),
        )
        assert list(export) == [ROUTE_ZERO, "Route 1", "Route 2"]
        assert export[ROUTE_ZERO] == [{"bbox": [0, 0, 10, 10]}]

    def test_coordinates_keep_their_number_type(self):
        box = BoundingBox(bbox=[1, 2.5, 3, 4])
        export = route_service.build_export({"Route 1": [box]}, [box])
        assert json.dumps(export) == (
            '{"Route Zero": [{"bbox": [1, 2.5, 3, 4]}], "Route 1": [{"bbox": [1, 2.5, 3, 4]}]}'
        )


class TestGradeEndpoints:

    @pytest.mark.asyncio
    async def test_load_routes(self, client):
        response = await client.post(
            "/api/grade/routes",
            json={"holds": [{"bbox": [1, 2, 3, 4]}], "Route 2": [{"bbox": [5, 6, 7, 8]}]},
        )
        assert response.status_code == 200
        body = response.json()
        assert list(body["routes"]) == ["Route 1", "Route 2"]
        assert body["colors"]["Route 1"] == {"name": "Red", "value": "#EF4444", "textColor": "#FFFFFF"}

    @pytest.mark.asyncio
    async def test_load_malformed(self, client):
        response = await client.post("/api/grade/routes", json=["not", "an", "object"])
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_click_and_export(self, client):
        routes = {"Route 1": [{"bbox": [0, 0, 10, 10]}, {"bbox": [20, 20, 30, 30]}]}

        click = await client.post(
            "/api/grade/route-zero",
            json={"routes": routes, "routeZero": [], "routeName": "Route 1", "boxIndex": 0, "firstClick": True},
        )
        assert click.status_code == 200
        state = click.json()
        assert len(state["routeZero"]) == 2
        assert state["firstClick"] is False

        export = await client.post("/api/grade/export", json={"routes": routes, "routeZero": state["routeZero"]})
        assert export.status_code == 200
        assert 'filename="route_data.txt"' in export.headers["content-disposition"]
        data = json.loads(export.content)
        assert list(data) == [ROUTE_ZERO, "Route 1"]
        assert len(data[ROUTE_ZERO]) == 2
        assert data["Route 1"][0] == {"bbox": [0, 0, 10, 10]}
        assert b"10.0" not in export.content

    @pytest.mark.asyncio
    async def test_click_unknown_route(self, client):
        response = await client.post(
            "/api/grade/route-zero",
            json={"routes": {}, "routeZero": [], "routeName": "Route 3", "boxIndex": 0},
        )
        assert response.status_code == 404
