"""Tests for POI classification, dedup and ranking."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
import pytest

from geo import Coordinate, haversine, offset_point
from poi import (
    POIClassifier,
    build_overpass_query,
    classify,
    format_address,
    rank_elements,
    requested_categories,
)

CENTER = Coordinate(41.65, -72.74)


def _node(id_, name, dx, dy, **tags):
    lat, lon = offset_point(CENTER.lat, CENTER.lon, dx, dy)
    if name is not None:
        tags["name"] = name
    return {"type": "node", "id": id_, "lat": lat, "lon": lon, "tags": tags}


def test_classify_uses_request_order():
    tags = {"amenity": "restaurant", "tourism": "hotel"}
    assert classify(tags, ["hotel", "restaurant"]) == "hotel"
    assert classify(tags, ["restaurant", "hotel"]) == "restaurant"


def test_classify_matches_any_tag_pair():
    assert classify({"shop": "coffee"}, ["cafe"]) == "cafe"
    assert classify({"amenity": "fast_food"}, ["restaurant"]) == "restaurant"
    assert classify({"amenity": "bank"}, ["restaurant", "cafe"]) is None
    assert classify({"amenity": "cafe"}, ["restaurant"]) is None


def test_requested_categories_filters_unknown_and_duplicates():
    assert requested_categories(["cafe", "spaceport", "park", "cafe"]) == ["cafe", "park"]
    assert requested_categories([]) == []


def test_unnamed_elements_dropped():
    elements = [
        _node(1, None, 10, 10, amenity="cafe"),
        _node(2, "   ", 20, 20, amenity="cafe"),
        _node(3, "Named Cafe", 30, 30, amenity="cafe"),
    ]
    pois = rank_elements(elements, ["cafe"], CENTER)
    assert [p.name for p in pois] == ["Named Cafe"]


def test_dedup_same_name_within_grid_keeps_first():
    a = {"type": "node", "id": 1, "lat": 41.65012, "lon": -72.74021,
         "tags": {"name": "Blue Bottle", "amenity": "cafe"}}
    b = {"type": "way", "id": 2, "center": {"lat": 41.65034, "lon": -72.74041},
         "tags": {"name": "Blue Bottle", "shop": "coffee"}}
    far = _node(3, "Blue Bottle", 800, 0, amenity="cafe")
    other = {"type": "node", "id": 4, "lat": 41.65012, "lon": -72.74021,
             "tags": {"name": "Other Cafe", "amenity": "cafe"}}
    pois = rank_elements([a, b, far, other], ["cafe"], CENTER)
    ids = [p.id for p in pois]
    assert "node/1" in ids
    assert "way/2" not in ids
    assert "node/3" in ids
    assert "node/4" in ids
    assert len(pois) == 3


def test_sorted_by_haversine_distance():
    elements = [
        _node(1, "Far Park", 3000, 0, leisure="park"),
        _node(2, "Near Diner", 100, 0, amenity="restaurant"),
        _node(3, "Mid Motel", 0, 1500, tourism="motel"),
    ]
    pois = rank_elements(elements, ["park", "restaurant", "hotel"], CENTER)
    assert [p.name for p in pois] == ["Near Diner", "Mid Motel", "Far Park"]
    for p in pois:
        assert p.distance_meters >= 0
        assert p.distance_meters == pytest.approx(
            haversine(CENTER.lat, CENTER.lon, p.coordinate.lat, p.coordinate.lon)
        )
    assert pois[1].category == "hotel"


def test_way_centroid_and_missing_coordinates():
    way = {"type": "way", "id": 9, "center": {"lat": 41.66, "lon": -72.73},
           "tags": {"name": "Bushnell Park", "leisure": "park"}}
    nowhere = {"type": "relation", "id": 10, "tags": {"name": "Ghost Park", "leisure": "park"}}
    pois = rank_elements([way, nowhere], ["park"], CENTER)
    assert len(pois) == 1
    assert pois[0].id == "way/9"
    assert pois[0].coordinate == Coordinate(41.66, -72.73)


def test_metadata_and_address():
    el = _node(1, "Shell", 50, 50, amenity="fuel", phone="+1 860 555 0100",
               website="https://example.com", opening_hours="24/7",
               **{"addr:housenumber": "12", "addr:street": "Main St", "addr:city": "Hartford"})
    (p,) = rank_elements([el], ["fuel"], CENTER)
    assert p.address == "12 Main St, Hartford"
    assert p.metadata == {"phone": "+1 860 555 0100", "website": "https://example.com", "opening_hours": "24/7"}


def test_format_address_empty():
    assert format_address({}) is None
    assert format_address({"addr:city": "Hartford", "addr:state": "CT"}) == "Hartford, CT"


def test_overpass_query_covers_categories():
    q = build_overpass_query(CENTER, ["cafe", "kids"], 8000)
    assert '[out:json]' in q
    assert f'nwr["amenity"="cafe"](around:8000,{CENTER.lat},{CENTER.lon});' in q
    assert 'nwr["shop"="coffee"]' in q
    assert 'nwr["leisure"="playground"]' in q
    assert "out center tags;" in q
    assert "around:50000," in build_overpass_query(CENTER, ["cafe"], 120000)


def _search(handler, categories):
    calls = []

    def record(request):
        calls.append(request)
        return handler(request)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(record)) as client:
            return await POIClassifier(client, overpass_url="https://overpass.test/api").search(
                CENTER, categories, 2000
            )

    return asyncio.run(run()), calls


def test_search_end_to_end():
    elements = [
        _node(1, "Cafe A", 400, 0, amenity="cafe"),
        _node(2, "Diner B", 100, 0, amenity="restaurant"),
        _node(3, "Bank", 10, 0, amenity="bank"),
    ]
    pois, calls = _search(lambda r: httpx.Response(200, json={"elements": elements}), ["restaurant", "cafe"])
    assert len(calls) == 1
    assert b"around%3A2000" in calls[0].content or b"around:2000" in calls[0].content
    assert [p.name for p in pois] == ["Diner B", "Cafe A"]


def test_search_empty_categories_makes_no_call():
    pois, calls = _search(lambda r: httpx.Response(200, json={"elements": []}), ["nonsense"])
    assert pois == []
    assert calls == []


def test_search_upstream_failure_returns_empty():
    pois, calls = _search(lambda r: httpx.Response(504, text="Gateway Timeout"), ["cafe"])
    assert pois == []
    assert len(calls) == 1


@pytest.mark.parametrize("body", [[], {"elements": None}, {"elements": "x"}, "just a string"])
def test_search_unexpected_body_returns_empty(body):
    pois, calls = _search(lambda r: httpx.Response(200, json=body), ["cafe"])
    assert pois == []
    assert len(calls) == 1


def test_non_dict_elements_skipped():
    good = _node(1, "Cafe A", 100, 0, amenity="cafe")
    bad_tags = {"type": "node", "id": 2, "lat": 41.65, "lon": -72.74, "tags": "cafe"}
    pois = rank_elements([None, "node/9", 42, bad_tags, good], ["cafe"], CENTER)
    assert [p.id for p in pois] == ["node/1"]
