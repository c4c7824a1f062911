"""Utilities for turning database rows and vendor payloads into models."""

import logging
from typing import Any, Dict, Optional

from geosync.core.models import GEOCODE_PENDING, AddressCandidate, ExternalCompanyRecord, Facility

logger = logging.getLogger(__name__)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def to_facility(row: Dict[str, Any]) -> Facility:
    return Facility(
        id=str(row["id"]),
        name=(row.get("name") or "").strip(),
        country=row.get("country") or "",
        address=_strip_or_none(row.get("address")),
        city=_strip_or_none(row.get("city")),
        postal_code=_strip_or_none(row.get("postal_code")),
        hubspot_id=_strip_or_none(row.get("hubspot_id")),
        geocode_status=row.get("geocode_status") or GEOCODE_PENDING,
        latitude=_safe_float(row.get("latitude")),
        longitude=_safe_float(row.get("longitude")),
        geocode_confidence=_safe_float(row.get("geocode_confidence")),
    )


def to_company_record(raw: Dict[str, Any]) -> ExternalCompanyRecord:
    properties = raw.get("properties") or {}
    return ExternalCompanyRecord(
        id=str(raw.get("id") or ""),
        name=(properties.get("name") or "").strip(),
        address=_strip_or_none(properties.get("address")),
        city=_strip_or_none(properties.get("city")),
        postal_code=_strip_or_none(properties.get("zip")),
        country=_strip_or_none(properties.get("country")),
        raw_snapshot=raw,
    )


def to_kartverket_candidate(raw: Dict[str, Any]) -> Optional[AddressCandidate]:
    point = raw.get("representasjonspunkt") or {}
    latitude = _safe_float(point.get("lat"))
    longitude = _safe_float(point.get("lon"))
    if latitude is None or longitude is None:
        logger.debug("Skipping Kartverket address without point: %s", raw.get("adressetekst"))
        return None

    label = _strip_or_none(raw.get("adressetekst"))
    poststed = _strip_or_none(raw.get("poststed"))
    if label and poststed:
        label = f"{label}, {poststed}"

    return AddressCandidate(
        latitude=latitude,
        longitude=longitude,
        label=label,
        postal_code=_strip_or_none(raw.get("postnummer")),
        raw_snapshot=raw,
    )


def to_here_candidate(raw: Dict[str, Any]) -> Optional[AddressCandidate]:
    position = raw.get("position") or {}
    latitude = _safe_float(position.get("lat"))
    longitude = _safe_float(position.get("lng"))
    if latitude is None or longitude is None:
        logger.debug("Skipping HERE item without position: %s", raw.get("title"))
        return None

    address = raw.get("address") or {}
    scoring = raw.get("scoring") or {}
    return AddressCandidate(
        latitude=latitude,
        longitude=longitude,
        label=_strip_or_none(address.get("label") or raw.get("title")),
        postal_code=_strip_or_none(address.get("postalCode")),
        score=_safe_float(scoring.get("queryScore")),
        raw_snapshot=raw,
    )
