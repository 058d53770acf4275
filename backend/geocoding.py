"""Nominatim geocoding behind a shared rate limiter.

Nominatim's usage policy allows at most one request per second per client.
All callers share one RateLimiter, whose acquire() is serialized by a lock so
concurrent requests queue up instead of racing on the last-call timestamp.
Geocoding is best-effort: failures return None / [] and are only logged.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

import httpx

import config
from errors import DegradedProviderError
from geo import Coordinate, to_coordinate

logger = logging.getLogger(__name__)


class RateLimiter:
    """Minimum spacing between calls, shared by every caller of one instance."""

    def __init__(
        self,
        min_interval: float = config.GEOCODE_MIN_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_call is not None:
                wait = self._last_call + self.min_interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_call = self._clock()


def _locality_label(address: dict) -> str | None:
    """'Hartford, CT' style label from a Nominatim address block."""
    city = (
        address.get("city") or address.get("town") or address.get("village")
        or address.get("hamlet") or address.get("suburb") or address.get("county")
    )
    state = address.get("state")
    iso = address.get("ISO3166-2-lvl4", "")
    state_short = iso.split("-", 1)[1] if "-" in iso else state
    if city:
        return f"{city}, {state_short}" if state_short else city
    return state


class Geocoder:
    def __init__(
        self,
        client: httpx.AsyncClient,
        rate_limiter: RateLimiter | None = None,
        base_url: str = config.NOMINATIM_URL,
        user_agent: str = config.NOMINATIM_USER_AGENT,
    ):
        self.client = client
        self.rate_limiter = rate_limiter or RateLimiter()
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": user_agent}

    async def _get(self, path: str, params: dict):
        await self.rate_limiter.acquire()
        try:
            resp = await self.client.get(f"{self.base_url}/{path}", params=params, headers=self.headers)
        except httpx.HTTPError as e:
            raise DegradedProviderError(f"Nominatim request failed: {e}") from e
        if resp.status_code != 200:
            raise DegradedProviderError(f"Nominatim HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise DegradedProviderError("Nominatim returned invalid JSON") from e

    async def reverse(self, point) -> str | None:
        """City/state label for a coordinate, or None."""
        c: Coordinate = to_coordinate(point)
        params = {"format": "jsonv2", "lat": c.lat, "lon": c.lon, "zoom": 10, "addressdetails": 1}
        try:
            data = await self._get("reverse", params)
        except DegradedProviderError as e:
            logger.warning("Reverse geocode failed for %s,%s: %s", c.lat, c.lon, e)
            return None
        if not isinstance(data, dict) or "error" in data:
            return None
        return _locality_label(data.get("address") or {})

    async def search(self, query: str) -> list[dict]:
        if not query or len(query.strip()) < 2:
            return []
        params = {"q": query.strip(), "format": "jsonv2", "limit": config.GEOCODE_MAX_RESULTS}
        try:
            data = await self._get("search", params)
        except DegradedProviderError as e:
            logger.warning("Geocode failed for %r: %s", query, e)
            return []
        if not isinstance(data, list):
            logger.warning("Geocode for %r returned %s, expected a list", query, type(data).__name__)
            return []
        results = []
        for item in data[: config.GEOCODE_MAX_RESULTS]:
            try:
                results.append({
                    "name": item["display_name"],
                    "lat": float(item["lat"]),
                    "lon": float(item["lon"]),
                    "place_id": str(item.get("place_id")) if item.get("place_id") is not None else None,
                    "type": item.get("type") or "unknown",
                })
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed geocode result: %r", item)
        return results
