"""Country-based dispatch of facility addresses to a geocoding provider.

One country is served by its free national address registry; every other
country goes to the commercial service, which needs an API key.
"""

import logging
from typing import List, Optional, Protocol

from geosync.core.models import PROVIDER_HERE, PROVIDER_KARTVERKET, AddressCandidate, Facility, GeocodeResult
from geosync.vendors.http import TRANSIENT_ERRORS

logger = logging.getLogger(__name__)

POSTAL_MATCH_CONFIDENCE = 0.95
POSTAL_MISMATCH_CONFIDENCE = 0.75
CITY_FALLBACK_CONFIDENCE = 0.60
DEFAULT_COMMERCIAL_CONFIDENCE = 0.7
REGISTRY_RESULT_LIMIT = 5


class AddressSearch(Protocol):
    def search(self, query: str, limit: int = ...) -> List[AddressCandidate]:
        ...


def _join(parts, separator: str) -> str:
    return separator.join(part.strip() for part in parts if part and part.strip())


def registry_query(facility: Facility) -> str:
    return _join([facility.address, facility.postal_code], " ")


def registry_fallback_query(facility: Facility) -> str:
    return _join([facility.address, facility.city], " ")


def commercial_query(facility: Facility) -> str:
    return _join([facility.address, facility.postal_code, facility.city, facility.country], ", ")


class NationalRegistryGeocoder:
    provider = PROVIDER_KARTVERKET

    def __init__(self, search: AddressSearch, limit: int = REGISTRY_RESULT_LIMIT) -> None:
        self._search = search
        self._limit = limit

    def geocode(self, facility: Facility) -> Optional[GeocodeResult]:
        candidates = self._search.search(registry_query(facility), limit=self._limit)
        if candidates:
            best = candidates[0]
            postal_match = bool(facility.postal_code) and best.postal_code == facility.postal_code
            confidence = POSTAL_MATCH_CONFIDENCE if postal_match else POSTAL_MISMATCH_CONFIDENCE
            return self._result(best, confidence)

        fallback = registry_fallback_query(facility)
        logger.debug("No registry hit for %r; retrying with %r", facility.name, fallback)
        candidates = self._search.search(fallback, limit=self._limit)
        if candidates:
            return self._result(candidates[0], CITY_FALLBACK_CONFIDENCE)
        return None

    def _result(self, candidate: AddressCandidate, confidence: float) -> GeocodeResult:
        return GeocodeResult(
            latitude=candidate.latitude,
            longitude=candidate.longitude,
            confidence=confidence,
            provider=self.provider,
            label=candidate.label,
            raw_snapshot=candidate.raw_snapshot,
        )


class CommercialGeocoder:
    provider = PROVIDER_HERE

    def __init__(self, search: Optional[AddressSearch], default_confidence: float = DEFAULT_COMMERCIAL_CONFIDENCE) -> None:
        self._search = search
        self._default_confidence = default_confidence

    @property
    def configured(self) -> bool:
        return self._search is not None

    def geocode(self, facility: Facility) -> Optional[GeocodeResult]:
        if self._search is None:
            logger.error("HERE_API_KEY not set; cannot geocode %r", facility.name)
            return None

        candidates = self._search.search(commercial_query(facility))
        if not candidates:
            return None
        best = candidates[0]
        # A missing or zero relevance score falls back to the default.
        confidence = best.score or self._default_confidence
        return GeocodeResult(
            latitude=best.latitude,
            longitude=best.longitude,
            confidence=confidence,
            provider=self.provider,
            label=best.label,
            raw_snapshot=best.raw_snapshot,
        )


class GeocodingRouter:
    """Sends each facility to exactly one provider, chosen by its country."""

    def __init__(
        self,
        registry: NationalRegistryGeocoder,
        commercial: CommercialGeocoder,
        registry_country: str = "Norway",
    ) -> None:
        self.registry = registry
        self.commercial = commercial
        self.registry_country = registry_country
        self.error_count = 0

    def uses_registry(self, facility: Facility) -> bool:
        return facility.country == self.registry_country

    def provider_for(self, facility: Facility) -> str:
        return self.registry.provider if self.uses_registry(facility) else self.commercial.provider

    def geocode(self, facility: Facility) -> Optional[GeocodeResult]:
        """Return the provider's best result, or None when it found nothing.

        Provider failures are counted and re-raised so the facility stays pending.
        """
        geocoder = self.registry if self.uses_registry(facility) else self.commercial
        try:
            return geocoder.geocode(facility)
        except TRANSIENT_ERRORS as exc:
            self.error_count += 1
            logger.warning("%s lookup failed for %r: %s", geocoder.provider, facility.name, exc)
            raise
