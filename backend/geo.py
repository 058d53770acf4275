"""Geo math: coordinates, haversine distance, offsets and display formatting."""

import math
from dataclasses import dataclass
from enum import Enum

from errors import InvalidCoordinatesError, InvalidRequestError

R = 6_371_000.0  # mean Earth radius in meters
METERS_PER_MILE = 1609.344


class TravelMode(str, Enum):
    DRIVE = "DRIVE"
    BICYCLE = "BICYCLE"
    WALK = "WALK"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


def parse_travel_mode(mode) -> TravelMode:
    """Accept a TravelMode or its string name; legacy `DRIVING` style names are mapped."""
    if isinstance(mode, TravelMode):
        return mode
    name = str(mode).upper()
    name = {"DRIVING": "DRIVE", "BICYCLING": "BICYCLE", "WALKING": "WALK"}.get(name, name)
    try:
        return TravelMode(name)
    except ValueError:
        raise InvalidRequestError(f"Unsupported travel mode: {mode!r}") from None


def to_coordinate(value, label: str = "coordinate") -> Coordinate:
    """Validate a Coordinate or a {lat, lon|lng} mapping into a Coordinate."""
    if isinstance(value, Coordinate):
        lat, lon = value.lat, value.lon
    elif isinstance(value, dict):
        lat = value.get("lat")
        lon = value.get("lon", value.get("lng"))
    else:
        lat = getattr(value, "lat", None)
        lon = getattr(value, "lon", None)

    if isinstance(lat, bool) or isinstance(lon, bool):
        raise InvalidCoordinatesError(f"Invalid {label}")
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        raise InvalidCoordinatesError(f"Invalid {label}: lat/lon required")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinatesError(f"Invalid {label}: non-finite value")
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise InvalidCoordinatesError(f"Invalid {label}: out of range ({lat}, {lon})")
    return Coordinate(float(lat), float(lon))


def offset_point(lat: float, lon: float, dx: float, dy: float) -> tuple[float, float]:
    """Compute new lat/lon by shifting dx meters east and dy meters north."""
    new_lat = lat + (dy / R) * (180.0 / math.pi)
    new_lon = lon + (dx / (R * math.cos(math.radians(lat)))) * (180.0 / math.pi)
    return new_lat, new_lon


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two lat/lon points (haversine formula)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return 2 * R * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(a: Coordinate, b: Coordinate) -> float:
    return haversine(a.lat, a.lon, b.lat, b.lon)


def format_duration(seconds: float) -> str:
    """3725 -> '1h 2m', 300 -> '5 min'."""
    hours = int(seconds // 3600)
    minutes = round((seconds % 3600) / 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    if hours == 0:
        return f"{minutes} min"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_distance(meters: float) -> str:
    miles = meters / METERS_PER_MILE
    if miles < 0.1:
        return f"{round(meters)} m"
    if miles < 10:
        return f"{miles:.1f} mi"
    return f"{round(miles)} mi"


def format_short_distance(meters: float) -> str:
    """Compact label for POI lists."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / METERS_PER_MILE:.1f} mi"
