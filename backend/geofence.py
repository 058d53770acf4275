"""Point-in-polygon membership for fairness zones.

Rings are sequences of points with .lat/.lon (closed or not). Bounding boxes
use the [min_lon, min_lat, max_lon, max_lat] order.

Boundary rule: the crossing test is half-open, so a point lying exactly on a
west or south edge counts as inside and a point on an east or north edge
counts as outside.
"""

from typing import Any, Sequence

from geo import Coordinate


def point_of(item: Any) -> Coordinate | None:
    """Extract a Coordinate from a Coordinate, an object with .coordinate, or a lat/lon mapping."""
    if isinstance(item, Coordinate):
        return item
    coord = getattr(item, "coordinate", None)
    if isinstance(coord, Coordinate):
        return coord
    if isinstance(item, dict):
        lat = item.get("lat")
        lon = item.get("lon", item.get("lng"))
        if lat is not None and lon is not None:
            return Coordinate(lat, lon)
    return None


def in_bounding_box(point: Coordinate, bbox: Sequence[float]) -> bool:
    min_lon, min_lat, max_lon, max_lat = bbox
    return min_lat <= point.lat <= max_lat and min_lon <= point.lon <= max_lon


def _ray_cast(point: Coordinate, ring: Sequence[Coordinate]) -> bool:
    # Even-odd rule, ray cast towards +longitude.
    px, py = point.lon, point.lat
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i].lon, ring[i].lat
        xj, yj = ring[j].lon, ring[j].lat
        if (yi > py) != (yj > py):
            x_cross = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_cross:
                inside = not inside
        j = i
    return inside


def contains(point: Coordinate, ring: Sequence[Coordinate], bbox: Sequence[float] | None = None) -> bool:
    if bbox is not None and not in_bounding_box(point, bbox):
        return False
    if len(ring) < 3:
        return False
    return _ray_cast(point, ring)


def filter_inside(points: list, zone) -> list:
    """Keep the items inside zone. A zone without a ring leaves the list unchanged."""
    ring = getattr(zone, "polygon_ring", None) if zone is not None else None
    if not ring:
        return points
    bbox = getattr(zone, "bounding_box", None)
    kept = []
    for item in points:
        p = point_of(item)
        if p is not None and contains(p, ring, bbox):
            kept.append(item)
    return kept
