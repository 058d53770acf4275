"""Tests for fairness zone generation and its circle fallback."""

import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
import pytest

import config
from errors import InvalidRequestError
from geo import METERS_PER_MILE, Coordinate, TravelMode, haversine
from isochrone import FairnessZoneGenerator, ZoneState, bounding_box, circle_ring

CENTER = Coordinate(41.65, -72.74)

ORS_FEATURES = {
    "type": "FeatureCollection",
    "features": [{
        "type": "Feature",
        "properties": {"value": 600},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[
                [-72.80, 41.60], [-72.68, 41.60], [-72.66, 41.70], [-72.80, 41.71], [-72.80, 41.60],
            ]],
        },
    }],
}


def _generate(handler, minutes=10, mode=TravelMode.DRIVE, api_key="ors-key"):
    calls = []

    def record(request):
        calls.append(request)
        return handler(request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(record)) as client:
            return await FairnessZoneGenerator(client, api_key=api_key).generate(CENTER, minutes, mode)

    return asyncio.run(run()), calls


def _assert_valid_bbox(zone):
    min_lon, min_lat, max_lon, max_lat = zone.bounding_box
    assert min_lon < max_lon and min_lat < max_lat
    for p in zone.polygon_ring:
        assert min_lat <= p.lat <= max_lat
        assert min_lon <= p.lon <= max_lon


def test_provider_polygon_is_used_and_swapped():
    zone, calls = _generate(lambda r: httpx.Response(200, json=ORS_FEATURES))
    assert zone.state is ZoneState.RESOLVED
    assert zone.polygon_ring[0] == Coordinate(41.60, -72.80)
    assert len(zone.polygon_ring) == 5
    assert zone.bounding_box == (-72.80, 41.60, -72.66, 41.71)
    assert zone.minutes == 10 and zone.travel_mode is TravelMode.DRIVE
    assert zone.radius_miles is None

    body = json.loads(calls[0].content)
    assert body["locations"] == [[CENTER.lon, CENTER.lat]]
    assert body["range"] == [600]
    assert calls[0].url.path.endswith("/driving-car")


def test_multipolygon_outer_ring():
    multi = {"features": [{"geometry": {
        "type": "MultiPolygon",
        "coordinates": [ORS_FEATURES["features"][0]["geometry"]["coordinates"]],
    }}]}
    zone, _ = _generate(lambda r: httpx.Response(200, json=multi))
    assert zone.state is ZoneState.RESOLVED
    assert len(zone.polygon_ring) == 5


@pytest.mark.parametrize("handler", [
    lambda r: httpx.Response(500, json={"error": "internal"}),
    lambda r: httpx.Response(200, json={"type": "FeatureCollection", "features": []}),
    lambda r: httpx.Response(200, json={"features": [{"geometry": None}]}),
    lambda r: httpx.Response(200, text="<html>not json</html>"),
    lambda r: httpx.Response(200, json=[]),
    lambda r: httpx.Response(200, json={"features": [None]}),
    lambda r: httpx.Response(200, json={"features": "x"}),
])
def test_degrades_to_circle(handler):
    zone, calls = _generate(handler)
    assert len(calls) == 1
    assert zone.state is ZoneState.DEGRADED
    assert len(zone.polygon_ring) == config.ZONE_CIRCLE_POINTS
    assert zone.radius_miles == pytest.approx(7.5)
    _assert_valid_bbox(zone)


def test_network_failure_degrades():
    def boom(request):
        raise httpx.ConnectError("down")

    zone, _ = _generate(boom)
    assert zone.state is ZoneState.DEGRADED
    assert zone.polygon_ring


def test_missing_api_key_skips_provider():
    zone, calls = _generate(lambda r: httpx.Response(200, json=ORS_FEATURES), api_key="")
    assert calls == []
    assert zone.state is ZoneState.DEGRADED


def test_circle_radius_drive_ten_minutes():
    ring, radius_miles = circle_ring(CENTER, 10, TravelMode.DRIVE)
    expected_m = 0.75 * 10 * METERS_PER_MILE
    assert radius_miles == pytest.approx(7.5)
    for p in ring:
        d = haversine(CENTER.lat, CENTER.lon, p.lat, p.lon)
        assert abs(d - expected_m) / expected_m < 0.01


def test_circle_radius_scales_with_mode():
    _, walk = circle_ring(CENTER, 20, TravelMode.WALK)
    _, bike = circle_ring(CENTER, 20, TravelMode.BICYCLE)
    assert walk == pytest.approx(1.0)
    assert bike == pytest.approx(4.0)


def test_circle_at_pole_does_not_fail():
    ring, _ = circle_ring(Coordinate(90.0, 0.0), 10, TravelMode.DRIVE)
    assert len(ring) == config.ZONE_CIRCLE_POINTS
    assert all(p.lon == 0.0 for p in ring)


def test_bounding_box_scans_ring():
    ring = [Coordinate(1, 5), Coordinate(-2, 3), Coordinate(4, -1)]
    assert bounding_box(ring) == (-1, -2, 5, 4)


@pytest.mark.parametrize("minutes", [0, -5, True, 2.5])
def test_invalid_minutes_rejected(minutes):
    with pytest.raises(InvalidRequestError):
        _generate(lambda r: httpx.Response(200, json=ORS_FEATURES), minutes=minutes)
