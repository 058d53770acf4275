"""Shared fixtures: an in-memory route cache store."""

import pytest


class FakeStore:
    """Stands in for db.py's route_cache helpers."""

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.deleted: list[str] = []

    def get_route_cache(self, cache_key):
        if self.fail_reads:
            raise RuntimeError("store unavailable")
        return self.rows.get(cache_key)

    def delete_route_cache(self, cache_key):
        self.deleted.append(cache_key)
        self.rows.pop(cache_key, None)

    def upsert_route_cache(self, cache_key, route_data, expires_at):
        if self.fail_writes:
            raise RuntimeError("store unavailable")
        self.rows[cache_key] = {"cache_key": cache_key, "route_data": route_data, "expires_at": expires_at}


@pytest.fixture
def fake_store():
    return FakeStore()
