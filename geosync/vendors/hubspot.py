"""Client utilities for the HubSpot CRM v3 company search API."""

import logging
from typing import Any, Dict, Optional

from geosync.core.models import CompanySearchResult
from geosync.etl.transform import to_company_record
from geosync.vendors.http import REQUEST_TIMEOUT, ProviderError, build_session

logger = logging.getLogger(__name__)
_SESSION = build_session()
_BASE_URL = "https://api.hubapi.com/crm/v3/objects/companies"

COMPANY_PROPERTIES = ["name", "address", "city", "zip", "country"]
OPERATOR_EQ = "EQ"
OPERATOR_CONTAINS_TOKEN = "CONTAINS_TOKEN"


class HubSpotError(ProviderError):
    """Raised when the search endpoint returns a non-successful response."""


def search_companies(
    value: str,
    access_token: str,
    operator: str = OPERATOR_EQ,
    limit: int = 5,
    timeout: float = REQUEST_TIMEOUT,
) -> Dict[str, Any]:
    body = {
        "filterGroups": [{"filters": [{"propertyName": "name", "operator": operator, "value": value}]}],
        "properties": COMPANY_PROPERTIES,
        "limit": limit,
    }
    headers = {"Authorization": f"Bearer {access_token}"}
    response = _SESSION.post(f"{_BASE_URL}/search", json=body, headers=headers, timeout=timeout)
    if response.status_code == 429:
        logger.warning("HubSpot rate limit hit for %s %r", operator, value)
        raise HubSpotError("rate limited")
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload.get("results"), list):
        logger.error("search_companies failed: status=%s, message=%s", payload.get("status"), payload.get("message"))
        raise HubSpotError(payload.get("message") or "response without results")
    return payload


class HubSpotCompanyDirectory:
    """CRM search capability backed by HubSpot."""

    def __init__(self, access_token: str, timeout: float = REQUEST_TIMEOUT) -> None:
        self._access_token = access_token
        self._timeout = timeout

    def search(self, value: str, *, exact: bool, limit: int) -> CompanySearchResult:
        operator = OPERATOR_EQ if exact else OPERATOR_CONTAINS_TOKEN
        payload = search_companies(
            value,
            self._access_token,
            operator=operator,
            limit=limit,
            timeout=self._timeout,
        )
        records = [to_company_record(raw) for raw in payload["results"] if isinstance(raw, dict)]
        total: Optional[int] = payload.get("total")
        return CompanySearchResult(total=int(total) if total is not None else len(records), records=records)
