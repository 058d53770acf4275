"""Fingerprinted, TTL-based route cache.

Keys round coordinates to 4 decimals (~11 m) so near-duplicate queries share
an entry. Entries expire lazily on read; there is no background sweep.
Caching is best-effort: store failures are logged and the caller recomputes.

No locking or request coalescing: two concurrent misses on the same key both
call the provider and both upsert. Results for identical inputs are
deterministic, so this only costs a duplicate upstream call.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import ValidationError

import config
import db
from errors import CacheStoreError
from geo import Coordinate, parse_travel_mode
from models import RouteResult

logger = logging.getLogger(__name__)


def _fmt(c: Coordinate) -> str:
    d = config.CACHE_KEY_DECIMALS
    return f"{c.lat:.{d}f},{c.lon:.{d}f}"


def generate_key(origin: Coordinate, destination: Coordinate, mode, waypoints: tuple = ()) -> str:
    """'lat,lon|lat,lon|MODE', waypoints (if any) between origin and destination."""
    points = [origin, *waypoints, destination]
    return "|".join([*(_fmt(p) for p in points), parse_travel_mode(mode).value])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RouteCache:
    """Route cache over a row store exposing get/delete/upsert_route_cache (see db.py)."""

    def __init__(
        self,
        store=db,
        ttl: timedelta = timedelta(hours=config.ROUTE_CACHE_TTL_HOURS),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        return {"hits": self.hits, "misses": self.misses}

    async def _call(self, fn, *args):
        # Store calls are blocking libsql I/O; run them off the event loop.
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            raise CacheStoreError(f"{fn.__name__}: {e}") from e

    async def get(self, key: str) -> RouteResult | None:
        try:
            row = await self._call(self.store.get_route_cache, key)
        except CacheStoreError as e:
            logger.warning("Cache read error: %s", e)
            self.misses += 1
            return None

        if not row:
            self.misses += 1
            logger.info("Cache MISS %s", key)
            return None

        try:
            expires_at = datetime.fromisoformat(row["expires_at"])
            expired = self.clock() >= expires_at
            result = None if expired else RouteResult.model_validate_json(row["route_data"])
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning("Unreadable cache entry %s: %s", key, e)
            self.misses += 1
            return None

        if expired:
            logger.info("Cache EXPIRED %s", key)
            try:
                await self._call(self.store.delete_route_cache, key)
            except CacheStoreError as e:
                logger.warning("Cache delete error: %s", e)
            self.misses += 1
            return None

        self.hits += 1
        logger.info("Cache HIT %s", key)
        return result.model_copy(update={"cached": True})

    async def put(self, key: str, result: RouteResult) -> bool:
        expires_at = (self.clock() + self.ttl).isoformat()
        payload = result.model_copy(update={"cached": False}).model_dump_json(by_alias=True)
        try:
            await self._call(self.store.upsert_route_cache, key, payload, expires_at)
        except CacheStoreError as e:
            # Don't fail the request if caching fails
            logger.warning("Cache write error: %s", e)
            return False
        return True
