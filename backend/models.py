"""Pydantic models for API requests and responses.

Wire names are camelCase (``totalDurationSeconds``, ``timeFromStart``); Python
attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import config
from geo import Coordinate, TravelMode


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatLon(ApiModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    @classmethod
    def of(cls, c: Coordinate) -> "LatLon":
        return cls(lat=c.lat, lon=c.lon)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)


# ---------- Routes ----------

class MidpointModel(ApiModel):
    lat: float
    lon: float
    time_from_start: float
    segment_index: int = 0


class RouteSummary(ApiModel):
    index: int
    summary: str
    total_duration: float
    total_distance: float
    midpoint: MidpointModel
    polyline: str | None = None
    warnings: list[str] = []


class RouteResult(ApiModel):
    origin: LatLon = Field(..., alias="from")
    destination: LatLon = Field(..., alias="to")
    waypoints: list[LatLon] = []
    travel_mode: TravelMode
    total_duration_seconds: float
    total_distance_meters: float
    midpoint: MidpointModel
    all_routes: list[RouteSummary]
    polyline: str | None = None
    cached: bool = False


class RouteRequest(ApiModel):
    origin: LatLon = Field(..., alias="from")
    destination: LatLon = Field(..., alias="to")
    waypoints: list[LatLon] = []
    travel_mode: TravelMode = TravelMode.DRIVE


# ---------- Fairness zone ----------

class ZoneRequest(ApiModel):
    center: LatLon
    minutes: int = Field(config.DEFAULT_ZONE_MINUTES, gt=0, le=240)
    travel_mode: TravelMode = TravelMode.DRIVE


class ZoneModel(ApiModel):
    polygon_ring: list[LatLon]
    bounding_box: list[float] = Field(..., min_length=4, max_length=4)


class ZoneResponse(ZoneModel):
    minutes: int
    travel_mode: TravelMode
    state: str
    radius_miles: float | None = None


# ---------- POIs ----------

class POISearchRequest(ApiModel):
    center: LatLon
    categories: list[str] = Field(default_factory=lambda: list(config.DEFAULT_POI_CATEGORIES))
    radius_meters: int = Field(config.POI_SEARCH_RADIUS_M, gt=0)
    zone: ZoneModel | None = None


class POIModel(ApiModel):
    id: str
    name: str
    lat: float
    lon: float
    category: str
    category_label: str
    distance_meters: float
    distance_formatted: str
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    opening_hours: str | None = None


class POISearchResponse(ApiModel):
    count: int
    pois: list[POIModel]


# ---------- Geocoding ----------

class GeocodeResult(ApiModel):
    name: str
    lat: float
    lon: float
    place_id: str | None = None
    type: str = "unknown"
