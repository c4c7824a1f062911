"""Client utilities for the HERE Geocoding & Search API."""

import logging
from typing import Any, Dict, List

from geosync.core.models import AddressCandidate
from geosync.etl.transform import to_here_candidate
from geosync.vendors.http import REQUEST_TIMEOUT, ProviderError, build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_BASE_URL = "https://geocode.search.hereapi.com/v1"


class HereError(ProviderError):
    """Raised when the geocode endpoint returns an error payload."""


def geocode(query: str, api_key: str, limit: int = 5, timeout: float = REQUEST_TIMEOUT) -> Dict[str, Any]:
    params = {"q": query, "apiKey": api_key, "limit": limit}
    response = _SESSION.get(f"{_BASE_URL}/geocode", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    if "error" in payload or not isinstance(payload.get("items", []), list):
        logger.error("geocode failed: error=%s, description=%s", payload.get("error"), payload.get("error_description"))
        raise HereError(payload.get("error_description") or payload.get("error") or "items is not a list")
    return payload


class HereAddressSearch:
    """Commercial geocoding capability; only built when an API key exists."""

    def __init__(self, api_key: str, timeout: float = REQUEST_TIMEOUT) -> None:
        if not api_key:
            raise ValueError("api_key is required for HERE geocoding")
        self._api_key = api_key
        self._timeout = timeout

    def search(self, query: str, limit: int = 5) -> List[AddressCandidate]:
        payload = geocode(query, self._api_key, limit=limit, timeout=self._timeout)
        candidates = []
        for raw in payload.get("items") or []:
            candidate = to_here_candidate(raw)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
