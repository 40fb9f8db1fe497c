"""Database helpers for reading listings from the system of record."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2 import extras, pool

from fitsearch.core.config import ConfigError, get_settings
from fitsearch.core.models import ELIGIBLE_STATUSES

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


class SourceReadError(RuntimeError):
    """Raised when the listing store cannot be read."""


class ListingNotFound(LookupError):
    """Raised when a listing id has no row in the listing store."""


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise ConfigError("DATABASE_URL is required for database connections")
        try:
            _connection_pool = pool.SimpleConnectionPool(
                minconn,
                maxconn,
                dsn=settings.database_url,
                connect_timeout=10,
            )
        except psycopg2.Error as exc:
            logger.error("Unable to connect to the listing store: %s", exc)
            raise SourceReadError(f"cannot connect to listing store: {exc}") from exc
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


_LISTING_COLUMNS = """
    id,
    name,
    slug,
    description,
    address,
    city,
    state,
    country,
    postal_code,
    latitude,
    longitude,
    phone,
    email,
    website,
    hours,
    gym_type,
    price_range,
    status,
    subscription_tier,
    created_at,
    updated_at
"""

_SELECT_LISTING = f"""
SELECT {_LISTING_COLUMNS}
FROM fitness_centers
WHERE id = %(listing_id)s;
"""

_COUNT_ELIGIBLE = """
SELECT COUNT(*) AS total
FROM fitness_centers
WHERE status = ANY(%(statuses)s::gym_status[]);
"""

_SELECT_ELIGIBLE_PAGE = f"""
SELECT {_LISTING_COLUMNS}
FROM fitness_centers
WHERE status = ANY(%(statuses)s::gym_status[])
ORDER BY created_at, id
LIMIT %(limit)s OFFSET %(offset)s;
"""

_SELECT_ATTRIBUTES = """
SELECT
    fca.fitness_center_id::text AS listing_id,
    fca.attribute_id::text AS attribute_id,
    a.name,
    a.category::text AS category,
    fca.value,
    fca.quantity
FROM fitness_center_attributes fca
JOIN attributes a ON a.id = fca.attribute_id
WHERE fca.fitness_center_id = ANY(%(listing_ids)s::uuid[])
ORDER BY a.category, a.name;
"""


def _fetch(sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                return [dict(row) for row in cur.fetchall()]
    except psycopg2.Error as exc:
        logger.error("Listing store query failed: %s", exc)
        raise SourceReadError(str(exc)) from exc


class ListingStore:
    """Read contract over the fitness_centers tables."""

    def __init__(self, statuses: Iterable[str] = ELIGIBLE_STATUSES):
        self.statuses = list(statuses)

    def fetch_listing(self, listing_id: str) -> Optional[Dict[str, Any]]:
        rows = _fetch(_SELECT_LISTING, {"listing_id": str(listing_id)})
        if not rows:
            return None
        row = rows[0]
        row["id"] = str(row["id"])
        return row

    def fetch_attributes(self, listing_ids: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Return attribute links for every id, batched into a single query."""
        ids = [str(listing_id) for listing_id in listing_ids]
        grouped: Dict[str, List[Dict[str, Any]]] = {listing_id: [] for listing_id in ids}
        if not ids:
            return grouped
        for row in _fetch(_SELECT_ATTRIBUTES, {"listing_ids": ids}):
            grouped.setdefault(row.pop("listing_id"), []).append(row)
        return grouped

    def count_eligible(self) -> int:
        rows = _fetch(_COUNT_ELIGIBLE, {"statuses": self.statuses})
        return int(rows[0]["total"]) if rows else 0

    def fetch_eligible_page(self, offset: int, limit: int) -> List[Dict[str, Any]]:
        rows = _fetch(
            _SELECT_ELIGIBLE_PAGE,
            {"statuses": self.statuses, "limit": limit, "offset": offset},
        )
        for row in rows:
            row["id"] = str(row["id"])
        return rows
