"""Fairness zone: the area reachable from a center within N minutes.

Requesting → Resolved when the isochrone provider returns a polygon,
Requesting → Degraded (64-point circle from an average mode speed) on any
provider failure. Provider failures never reach the caller; the zone records
which path produced it.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

import httpx

import config
from errors import DegradedProviderError, InvalidRequestError
from geo import Coordinate, TravelMode, parse_travel_mode, to_coordinate

logger = logging.getLogger(__name__)


class ZoneState(str, Enum):
    REQUESTING = "requesting"
    RESOLVED = "resolved"
    DEGRADED = "degraded"


@dataclass
class FairnessZone:
    polygon_ring: list[Coordinate]
    bounding_box: tuple[float, float, float, float]  # min_lon, min_lat, max_lon, max_lat
    minutes: int
    travel_mode: TravelMode
    state: ZoneState
    radius_miles: float | None = None


def bounding_box(ring: list[Coordinate]) -> tuple[float, float, float, float]:
    lats = [p.lat for p in ring]
    lons = [p.lon for p in ring]
    return min(lons), min(lats), max(lons), max(lats)


def circle_ring(center: Coordinate, minutes: int, mode: TravelMode) -> tuple[list[Coordinate], float]:
    """Circular approximation of the reachable area. Returns (ring, radius_miles)."""
    speed = config.SPEED_MILES_PER_MINUTE.get(mode.value, config.SPEED_MILES_PER_MINUTE["DRIVE"])
    radius_miles = speed * minutes

    lat_deg = radius_miles / config.MILES_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(center.lat))
    # Meridians converge: a mile spans more longitude away from the equator.
    lon_deg = 0.0 if abs(cos_lat) < 1e-10 else radius_miles / (config.MILES_PER_DEGREE_LAT * cos_lat)

    n = config.ZONE_CIRCLE_POINTS
    ring = []
    for i in range(n):
        angle = i / n * 2 * math.pi
        ring.append(Coordinate(
            center.lat + lat_deg * math.sin(angle),
            center.lon + lon_deg * math.cos(angle),
        ))
    return ring, radius_miles


def adapt_isochrone_geojson(data: dict) -> list[Coordinate]:
    """Outer ring of the first polygon in a GeoJSON FeatureCollection, [lon, lat] → Coordinate."""
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        raise DegradedProviderError("Isochrone response is not a FeatureCollection")
    for feature in data["features"]:
        geometry = feature.get("geometry") if isinstance(feature, dict) else None
        if not isinstance(geometry, dict):
            continue
        gtype = geometry.get("type")
        coords = geometry.get("coordinates") or []
        if gtype == "Polygon" and coords:
            outer = coords[0]
        elif gtype == "MultiPolygon" and coords and coords[0]:
            outer = coords[0][0]
        else:
            continue
        ring = [Coordinate(float(pt[1]), float(pt[0])) for pt in outer]
        if len(ring) >= 3:
            return ring
    raise DegradedProviderError("Isochrone response has no polygon geometry")


class FairnessZoneGenerator:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = config.ORS_API_KEY,
        base_url: str = config.ISOCHRONE_URL,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url

    async def _request_polygon(self, center: Coordinate, minutes: int, mode: TravelMode) -> list[Coordinate]:
        if not self.api_key:
            raise DegradedProviderError("Isochrone API key not configured")
        url = f"{self.base_url.rstrip('/')}/{config.ORS_PROFILES[mode.value]}"
        body = {"locations": [[center.lon, center.lat]], "range": [minutes * 60], "range_type": "time"}
        try:
            resp = await self.client.post(url, json=body, headers={"Authorization": self.api_key})
        except httpx.HTTPError as e:
            raise DegradedProviderError(f"Isochrone request failed: {e}") from e
        if not resp.is_success:
            raise DegradedProviderError(f"Isochrone HTTP {resp.status_code}")
        try:
            return adapt_isochrone_geojson(resp.json())
        except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
            raise DegradedProviderError(f"Malformed isochrone response: {e!r}") from e

    async def generate(self, center, minutes: int = config.DEFAULT_ZONE_MINUTES, mode=TravelMode.DRIVE) -> FairnessZone:
        center = to_coordinate(center, "center")
        mode = parse_travel_mode(mode)
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            raise InvalidRequestError(f"minutes must be a positive integer, got {minutes!r}")

        state = ZoneState.REQUESTING
        radius_miles = None
        try:
            ring = await self._request_polygon(center, minutes, mode)
            state = ZoneState.RESOLVED
        except DegradedProviderError as e:
            logger.warning("Isochrone unavailable (%s), using %d-minute circle for %s", e, minutes, mode.value)
            ring, radius_miles = circle_ring(center, minutes, mode)
            state = ZoneState.DEGRADED
        logger.info("Fairness zone %s: %d points, %d min %s", state.value, len(ring), minutes, mode.value)

        return FairnessZone(
            polygon_ring=ring,
            bounding_box=bounding_box(ring),
            minutes=minutes,
            travel_mode=mode,
            state=state,
            radius_miles=radius_miles,
        )
