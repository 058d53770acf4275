"""Database layer for the route cache table.

Supports two modes:
- Remote (Turso): when TURSO_DATABASE_URL is set, connects via libsql with embedded replica.
- Local (dev): when TURSO_DATABASE_URL is empty, uses a local SQLite file via libsql.
"""

import libsql_experimental as libsql

import config

TURSO_DATABASE_URL = config.TURSO_DATABASE_URL
TURSO_AUTH_TOKEN = config.TURSO_AUTH_TOKEN
DB_PATH = config.DB_PATH


def get_conn():
    if TURSO_DATABASE_URL:
        conn = libsql.connect(
            "local.db",
            sync_url=TURSO_DATABASE_URL,
            auth_token=TURSO_AUTH_TOKEN,
        )
        conn.sync()
    else:
        conn = libsql.connect(str(DB_PATH))
    return conn


def _row_to_dict(cursor) -> dict | None:
    """Convert single cursor result to dict."""
    if cursor.description is None:
        return None
    columns = [desc[0] for desc in cursor.description]
    row = cursor.fetchone()
    if row is None:
        return None
    return dict(zip(columns, row))


def _commit(conn) -> None:
    conn.commit()
    if TURSO_DATABASE_URL:
        conn.sync()


def init_db() -> None:
    conn = get_conn()
    conn.execute("""
        CREATE TABLE IF NOT EXISTS route_cache (
            cache_key   TEXT PRIMARY KEY,
            route_data  TEXT NOT NULL,
            expires_at  TEXT NOT NULL
        )
    """)
    _commit(conn)
    conn.close()


# ---- Route cache rows ----

def get_route_cache(cache_key: str) -> dict | None:
    conn = get_conn()
    cursor = conn.execute(
        "SELECT cache_key, route_data, expires_at FROM route_cache WHERE cache_key = ?",
        (cache_key,),
    )
    d = _row_to_dict(cursor)
    conn.close()
    return d


def delete_route_cache(cache_key: str) -> None:
    conn = get_conn()
    conn.execute("DELETE FROM route_cache WHERE cache_key = ?", (cache_key,))
    _commit(conn)
    conn.close()


def upsert_route_cache(cache_key: str, route_data: str, expires_at: str) -> None:
    conn = get_conn()
    conn.execute(
        """INSERT INTO route_cache (cache_key, route_data, expires_at)
           VALUES (?, ?, ?)
           ON CONFLICT(cache_key) DO UPDATE SET
               route_data = excluded.route_data,
               expires_at = excluded.expires_at""",
        (cache_key, route_data, expires_at),
    )
    _commit(conn)
    conn.close()
