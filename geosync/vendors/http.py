"""Shared HTTP plumbing for the CRM and geocoding vendors."""

import requests

USER_AGENT = "geosync/0.1 (facility address resolution)"
REQUEST_TIMEOUT = 10


class ProviderError(RuntimeError):
    """Raised when a vendor answers with a payload we cannot use."""


# Network failures and unusable vendor answers; both mean "nothing found
# this time" to the matcher and the router.
TRANSIENT_ERRORS = (requests.RequestException, ProviderError)


def build_session() -> requests.Session:
    # No retry adapter: every vendor call is a single bounded request.
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
    return session
