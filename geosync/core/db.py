"""Database helpers: backlog queries and the only writer of resolution outcomes.

Every update is a single-row statement guarded by the predicate that put the
row into its backlog, so writing the same outcome twice changes nothing and
rows in `manual` status are never touched.
"""

import hashlib
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras, pool

from geosync.core.config import ConfigError, get_settings
from geosync.core.models import (
    GEOCODE_FAILED,
    GEOCODE_SUCCESS,
    ExternalCompanyRecord,
    Facility,
    GeocodeResult,
    MatchResult,
)
from geosync.etl.transform import to_facility
from geosync.matching.normalizer import SUPPORTED_COUNTRIES

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 2) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise ConfigError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
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


def _countries(country: Optional[str]) -> List[str]:
    return [country] if country else list(SUPPORTED_COUNTRIES)


def _fetch_rows(sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        conn.commit()
    return [dict(row) for row in rows]


def _execute(sql: str, params: Dict[str, Any]) -> int:
    with get_connection() as conn:
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                changed = cur.rowcount
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
    return changed


_SYNC_BACKLOG = """
SELECT id, name, country, address, city, postal_code, hubspot_id, geocode_status
FROM asset_map.facilities
WHERE address IS NULL
  AND hubspot_id IS NULL
  AND crm_sync_status IS NULL
  AND country = ANY(%(countries)s)
ORDER BY name
LIMIT %(limit)s;
"""

_GEOCODE_BACKLOG = """
SELECT id, name, country, address, city, postal_code, hubspot_id, geocode_status
FROM asset_map.facilities
WHERE address IS NOT NULL
  AND latitude IS NULL
  AND geocode_status = 'pending'
  AND country = ANY(%(countries)s)
ORDER BY country, name
LIMIT %(limit)s;
"""


def fetch_facilities_for_sync(limit: int, country: Optional[str] = None) -> List[Facility]:
    """Facilities with neither an address nor a CRM link that were never tried."""
    rows = _fetch_rows(_SYNC_BACKLOG, {"countries": _countries(country), "limit": limit})
    return [to_facility(row) for row in rows]


def fetch_facilities_for_geocoding(limit: int, country: Optional[str] = None) -> List[Facility]:
    """Facilities with an address but no coordinates, still pending."""
    rows = _fetch_rows(_GEOCODE_BACKLOG, {"countries": _countries(country), "limit": limit})
    return [to_facility(row) for row in rows]


_UPDATE_FROM_CRM = """
UPDATE asset_map.facilities
SET hubspot_id = %(hubspot_id)s,
    address = %(address)s,
    city = %(city)s,
    postal_code = %(postal_code)s,
    crm_sync_status = 'matched',
    crm_match_type = %(match_type)s,
    crm_match_confidence = %(confidence)s,
    updated_at = NOW()
WHERE id = %(facility_id)s
  AND hubspot_id IS NULL
  AND crm_sync_status IS NULL;
"""

_MARK_CRM_FAILED = """
UPDATE asset_map.facilities
SET crm_sync_status = 'failed',
    crm_match_type = 'none',
    crm_match_confidence = 0,
    updated_at = NOW()
WHERE id = %(facility_id)s
  AND hubspot_id IS NULL
  AND crm_sync_status IS NULL;
"""

_UPDATE_GEOCODE = """
UPDATE asset_map.facilities
SET latitude = %(latitude)s,
    longitude = %(longitude)s,
    geocode_status = %(status)s,
    geocode_confidence = %(confidence)s,
    updated_at = NOW()
WHERE id = %(facility_id)s
  AND geocode_status = 'pending';
"""


def update_facility_from_crm(facility_id: str, company: ExternalCompanyRecord, match_type: str, confidence: float) -> bool:
    changed = _execute(
        _UPDATE_FROM_CRM,
        {
            "facility_id": facility_id,
            "hubspot_id": company.id,
            "address": company.address,
            "city": company.city,
            "postal_code": company.postal_code,
            "match_type": match_type,
            "confidence": round(confidence, 2),
        },
    )
    return changed > 0


def mark_crm_match_failed(facility_id: str) -> bool:
    return _execute(_MARK_CRM_FAILED, {"facility_id": facility_id}) > 0


def update_facility_geocode(facility_id: str, result: GeocodeResult) -> bool:
    changed = _execute(
        _UPDATE_GEOCODE,
        {
            "facility_id": facility_id,
            "latitude": result.latitude,
            "longitude": result.longitude,
            "status": GEOCODE_SUCCESS,
            "confidence": round(result.confidence, 2),
        },
    )
    return changed > 0


def mark_geocode_failed(facility_id: str) -> bool:
    changed = _execute(
        _UPDATE_GEOCODE,
        {"facility_id": facility_id, "latitude": None, "longitude": None, "status": GEOCODE_FAILED, "confidence": None},
    )
    return changed > 0


def persist_match_outcome(match: MatchResult) -> bool:
    """Write a match, or the failure marker that keeps the row out of the backlog."""
    if match.company is None:
        return mark_crm_match_failed(match.facility.id)
    return update_facility_from_crm(match.facility.id, match.company, match.tier, match.confidence)


def persist_geocode_outcome(facility: Facility, result: Optional[GeocodeResult]) -> bool:
    if result is None:
        return mark_geocode_failed(facility.id)
    return update_facility_geocode(facility.id, result)


def address_cache_key(facility: Facility) -> str:
    parts = [facility.address, facility.postal_code, facility.city, facility.country]
    text = "|".join(" ".join((part or "").lower().split()) for part in parts)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _original_address(facility: Facility) -> str:
    return ", ".join(part for part in (facility.address, facility.postal_code, facility.city, facility.country) if part)


_CACHE_LOOKUP = """
SELECT latitude, longitude, provider, confidence
FROM asset_map.geocode_cache
WHERE address_hash = %(address_hash)s
  AND latitude IS NOT NULL
  AND longitude IS NOT NULL;
"""

_CACHE_INSERT = """
INSERT INTO asset_map.geocode_cache (
    address_hash,
    original_address,
    latitude,
    longitude,
    provider,
    confidence,
    raw_response
) VALUES (
    %(address_hash)s,
    %(original_address)s,
    %(latitude)s,
    %(longitude)s,
    %(provider)s,
    %(confidence)s,
    %(raw_response)s
)
ON CONFLICT (address_hash) DO NOTHING;
"""


def get_cached_geocode(facility: Facility) -> Optional[GeocodeResult]:
    rows = _fetch_rows(_CACHE_LOOKUP, {"address_hash": address_cache_key(facility)})
    if not rows:
        return None
    row = rows[0]
    return GeocodeResult(
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        confidence=float(row["confidence"]) if row.get("confidence") is not None else 0.0,
        provider=row.get("provider") or "cache",
        cached=True,
    )


def store_cached_geocode(facility: Facility, result: GeocodeResult) -> None:
    _execute(
        _CACHE_INSERT,
        {
            "address_hash": address_cache_key(facility),
            "original_address": _original_address(facility),
            "latitude": result.latitude,
            "longitude": result.longitude,
            "provider": result.provider,
            "confidence": round(result.confidence, 2),
            "raw_response": extras.Json(result.raw_snapshot or {}),
        },
    )
    logger.debug("Cached geocode for %s", _original_address(facility))


_GEOCODE_STATS = """
SELECT
    COUNT(*) AS total_facilities,
    COUNT(*) FILTER (WHERE latitude IS NOT NULL) AS geocoded,
    COUNT(*) FILTER (WHERE address IS NOT NULL AND latitude IS NULL AND geocode_status = 'pending') AS needs_geocoding,
    COUNT(*) FILTER (WHERE geocode_status = 'failed') AS failed,
    COUNT(*) FILTER (WHERE address IS NULL) AS no_address
FROM asset_map.facilities;
"""

_GEOCODE_NEEDS_BY_COUNTRY = """
SELECT country, COUNT(*) AS needs_geocoding
FROM asset_map.facilities
WHERE address IS NOT NULL
  AND latitude IS NULL
  AND geocode_status = 'pending'
GROUP BY country
ORDER BY needs_geocoding DESC;
"""


def fetch_geocode_stats() -> Dict[str, Any]:
    totals = _fetch_rows(_GEOCODE_STATS, {})
    stats: Dict[str, Any] = {key: int(value or 0) for key, value in (totals[0] if totals else {}).items()}
    stats["by_country"] = {row["country"]: int(row["needs_geocoding"]) for row in _fetch_rows(_GEOCODE_NEEDS_BY_COUNTRY, {})}
    return stats

