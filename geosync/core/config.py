"""Application configuration helpers.

Credentials are only ever read from the environment: `HUBSPOT_API_KEY` is a
private-app token with write scopes on the CRM and `HERE_API_KEY` is a
billable key, so neither may be hardcoded.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    database_url: str
    hubspot_api_key: str = ""
    here_api_key: str = ""
    national_registry_country: str = "Norway"
    batch_size: int = 50
    crm_search_delay: float = 0.2
    crm_token_search_delay: float = 0.1
    registry_geocode_delay: float = 0.2
    commercial_geocode_delay: float = 0.25
    match_normalized_threshold: float = 0.65
    match_token_threshold: float = 0.55
    match_token_result_cap: int = 100
    sync_default_limit: int = 5000
    geocode_default_limit: int = 100
    geocode_cache_enabled: bool = True
    request_timeout: float = 10.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    hubspot_api_key = os.getenv("HUBSPOT_API_KEY", "")
    here_api_key = os.getenv("HERE_API_KEY", "")
    national_registry_country = os.getenv("NATIONAL_REGISTRY_COUNTRY", "").strip() or "Norway"
    geocode_cache_enabled = os.getenv("GEOCODE_CACHE_ENABLED", "true").lower() in _TRUTHY

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not hubspot_api_key:
        logger.warning("HUBSPOT_API_KEY is not configured; CRM address sync cannot run.")
    if not here_api_key:
        logger.warning("HERE_API_KEY is not configured; only %s facilities can be geocoded.", national_registry_country)

    return Settings(
        database_url=database_url,
        hubspot_api_key=hubspot_api_key,
        here_api_key=here_api_key,
        national_registry_country=national_registry_country,
        batch_size=max(1, _int_env("RESOLUTION_BATCH_SIZE", 50)),
        crm_search_delay=_float_env("CRM_SEARCH_DELAY", 0.2),
        crm_token_search_delay=_float_env("CRM_TOKEN_SEARCH_DELAY", 0.1),
        registry_geocode_delay=_float_env("REGISTRY_GEOCODE_DELAY", 0.2),
        commercial_geocode_delay=_float_env("COMMERCIAL_GEOCODE_DELAY", 0.25),
        match_normalized_threshold=_float_env("MATCH_NORMALIZED_THRESHOLD", 0.65),
        match_token_threshold=_float_env("MATCH_TOKEN_THRESHOLD", 0.55),
        match_token_result_cap=_int_env("MATCH_TOKEN_RESULT_CAP", 100),
        sync_default_limit=_int_env("SYNC_DEFAULT_LIMIT", 5000),
        geocode_default_limit=_int_env("GEOCODE_DEFAULT_LIMIT", 100),
        geocode_cache_enabled=geocode_cache_enabled,
        request_timeout=_float_env("REQUEST_TIMEOUT", 10.0),
    )


def require(settings: Settings, *fields: str) -> None:
    """Raise ConfigError naming every listed setting that is empty."""
    missing = [name.upper() for name in fields if not getattr(settings, name)]
    if missing:
        raise ConfigError(f"{', '.join(missing)} must be set in the environment.")
