"""Client utilities for the Kartverket (Geonorge) address search API."""

import logging
from typing import Any, Dict, List

from geosync.core.models import AddressCandidate
from geosync.etl.transform import to_kartverket_candidate
from geosync.vendors.http import REQUEST_TIMEOUT, ProviderError, build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_BASE_URL = "https://ws.geonorge.no/adresser/v1"
WGS84 = "4258"


class KartverketError(ProviderError):
    """Raised when the address API returns an unusable payload."""


def search_addresses(query: str, per_page: int = 5, timeout: float = REQUEST_TIMEOUT) -> Dict[str, Any]:
    params = {"sok": query, "treffPerSide": per_page, "utkoordsys": WGS84}
    response = _SESSION.get(f"{_BASE_URL}/sok", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload.get("adresser", []), list):
        logger.error("search_addresses returned malformed payload keys=%s", list(payload.keys())[:10])
        raise KartverketError("adresser is not a list")
    return payload


class KartverketAddressSearch:
    """National registry search capability."""

    def __init__(self, timeout: float = REQUEST_TIMEOUT) -> None:
        self._timeout = timeout

    def search(self, query: str, limit: int = 5) -> List[AddressCandidate]:
        payload = search_addresses(query, per_page=limit, timeout=self._timeout)
        candidates = []
        for raw in payload.get("adresser") or []:
            candidate = to_kartverket_candidate(raw)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
