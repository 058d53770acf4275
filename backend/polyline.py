"""Encoded polyline codec (Google format: 1e-5 precision, zig-zag deltas, 5-bit chunks + 63)."""

import math

from geo import Coordinate

PRECISION = 1e5


def _round(value: float) -> int:
    # Half away from zero, as the reference encoder does.
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _encode_value(delta: int) -> str:
    v = ~(delta << 1) if delta < 0 else delta << 1
    chunks = []
    while v >= 0x20:
        chunks.append(chr((0x20 | (v & 0x1F)) + 63))
        v >>= 5
    chunks.append(chr(v + 63))
    return "".join(chunks)


def encode(coords: list[Coordinate]) -> str:
    out = []
    prev_lat = prev_lon = 0
    for c in coords:
        lat, lon = _round(c.lat * PRECISION), _round(c.lon * PRECISION)
        out.append(_encode_value(lat - prev_lat))
        out.append(_encode_value(lon - prev_lon))
        prev_lat, prev_lon = lat, lon
    return "".join(out)


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    shift = result = 0
    while True:
        if index >= len(encoded):
            raise ValueError("Truncated polyline")
        b = ord(encoded[index]) - 63
        index += 1
        if b < 0 or b > 0x3F:
            raise ValueError(f"Invalid polyline character at {index - 1}")
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode(encoded: str | None) -> list[Coordinate]:
    if not encoded:
        return []
    points = []
    index = lat = lon = 0
    while index < len(encoded):
        dlat, index = _decode_value(encoded, index)
        dlon, index = _decode_value(encoded, index)
        lat += dlat
        lon += dlon
        points.append(Coordinate(lat / PRECISION, lon / PRECISION))
    return points
