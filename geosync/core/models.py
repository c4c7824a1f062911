"""Core data models shared by the address resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

GEOCODE_PENDING = "pending"
GEOCODE_SUCCESS = "success"
GEOCODE_FAILED = "failed"
GEOCODE_MANUAL = "manual"
GEOCODE_STATUSES = (GEOCODE_PENDING, GEOCODE_SUCCESS, GEOCODE_FAILED, GEOCODE_MANUAL)

TIER_EXACT = "exact"
TIER_NORMALIZED = "normalized"
TIER_TOKEN = "token"
TIER_NONE = "none"
MATCH_TIERS = (TIER_EXACT, TIER_NORMALIZED, TIER_TOKEN, TIER_NONE)

PROVIDER_KARTVERKET = "kartverket"
PROVIDER_HERE = "here"


@dataclass(slots=True)
class Facility:
    """A physical site with chargers, as stored in `asset_map.facilities`."""

    id: str
    name: str
    country: str
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    hubspot_id: Optional[str] = None
    geocode_status: str = GEOCODE_PENDING
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geocode_confidence: Optional[float] = None


@dataclass(slots=True)
class ExternalCompanyRecord:
    """Read-only snapshot of a CRM company."""

    id: str
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False)


@dataclass(slots=True)
class CompanySearchResult:
    """One page of CRM hits plus the total hit count reported by the CRM."""

    total: int
    records: List[ExternalCompanyRecord] = field(default_factory=list)


@dataclass(slots=True)
class MatchResult:
    facility: Facility
    company: Optional[ExternalCompanyRecord]
    tier: str
    confidence: float

    @property
    def matched(self) -> bool:
        return self.company is not None


@dataclass(slots=True)
class AddressCandidate:
    """A ranked hit from one of the geocoding providers."""

    latitude: float
    longitude: float
    label: Optional[str] = None
    postal_code: Optional[str] = None
    score: Optional[float] = None
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False)


@dataclass(slots=True)
class GeocodeResult:
    latitude: float
    longitude: float
    confidence: float
    provider: str
    label: Optional[str] = None
    cached: bool = False
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False)
