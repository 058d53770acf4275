"""Time-based route midpoint.

The midpoint is the point reached after half of the route's total travel time.
With per-segment durations the route is walked segment by segment; without
them (or with a length mismatch) each segment gets a synthetic duration
proportional to its haversine length.
"""

import logging
from dataclasses import dataclass

from errors import InvalidCoordinatesError
from geo import Coordinate, distance_between

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Midpoint:
    coordinate: Coordinate
    segment_index: int
    time_from_start: float


def _interpolate(a: Coordinate, b: Coordinate, fraction: float) -> Coordinate:
    return Coordinate(
        a.lat + fraction * (b.lat - a.lat),
        a.lon + fraction * (b.lon - a.lon),
    )


def synthetic_durations(coords: list[Coordinate], total_duration: float) -> list[float]:
    """Split total_duration across segments in proportion to segment length."""
    seg_dists = [distance_between(coords[i], coords[i + 1]) for i in range(len(coords) - 1)]
    total_dist = sum(seg_dists)
    if total_dist <= 0:
        # Degenerate geometry (all points identical): spread time evenly.
        return [total_duration / len(seg_dists)] * len(seg_dists)
    return [d / total_dist * total_duration for d in seg_dists]


def _walk(coords: list[Coordinate], durations: list[float], half_time: float) -> Midpoint:
    accumulated = 0.0
    for i, seg in enumerate(durations):
        if accumulated + seg >= half_time:
            fraction = (half_time - accumulated) / seg if seg > 0 else 0.0
            return Midpoint(_interpolate(coords[i], coords[i + 1], fraction), i, half_time)
        accumulated += seg
    # Rounding left us short of half_time: end of route.
    return Midpoint(coords[-1], len(durations) - 1, accumulated)


def locate_midpoint(
    coords: list[Coordinate],
    total_duration: float,
    segment_durations: list[float] | None = None,
) -> Midpoint:
    """Return the coordinate reached at total_duration / 2 along coords."""
    if not coords:
        raise InvalidCoordinatesError("Route geometry is empty")
    if total_duration <= 0 or len(coords) == 1:
        return Midpoint(coords[0], 0, 0.0)

    if segment_durations is not None and len(segment_durations) != len(coords) - 1:
        logger.debug(
            "Segment durations length %d != %d segments, using distance-proportional fallback",
            len(segment_durations), len(coords) - 1,
        )
        segment_durations = None
    elif segment_durations is not None and sum(segment_durations) <= 0:
        logger.debug("Segment durations carry no time, using distance-proportional fallback")
        segment_durations = None
    if segment_durations is None:
        segment_durations = synthetic_durations(coords, total_duration)

    return _walk(coords, segment_durations, total_duration / 2)
