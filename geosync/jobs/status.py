"""CLI job that reports the geocoding backlog."""

import logging
from typing import Any, Dict, List

from geosync.core.config import ConfigError, get_settings, require
from geosync.core.db import fetch_facilities_for_geocoding, fetch_geocode_stats, init_pool
from geosync.core.models import Facility
from geosync.matching.normalizer import SUPPORTED_COUNTRIES

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5


def render_status(stats: Dict[str, Any], samples: List[Facility]) -> str:
    total = stats.get("total_facilities", 0)
    geocoded = stats.get("geocoded", 0)
    share = f"{geocoded / total * 100:.1f}%" if total else "0.0%"
    lines = [
        "Facility geocoding status",
        "-" * 50,
        f"Total facilities:        {total}",
        f"Already geocoded:        {geocoded} ({share})",
        f"Need geocoding:          {stats.get('needs_geocoding', 0)}",
        f"Failed (needs reset):    {stats.get('failed', 0)}",
        f"No address (skip):       {stats.get('no_address', 0)}",
        "",
        "Need geocoding by country:",
    ]
    by_country = stats.get("by_country", {})
    for country in SUPPORTED_COUNTRIES:
        lines.append(f"   {(country + ':').ljust(10)}{by_country.get(country, 0)}")

    lines += ["", "Sample facilities needing geocoding:"]
    for facility in samples:
        lines.append(f"   {facility.name}")
        lines.append(f"      {facility.address}, {facility.postal_code or ''} {facility.city or ''}, {facility.country}")
    return "\n".join(lines)


def run_status_job() -> str:
    settings = get_settings()
    require(settings, "database_url")
    init_pool()
    return render_status(fetch_geocode_stats(), fetch_facilities_for_geocoding(limit=SAMPLE_SIZE))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    try:
        report = run_status_job()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    print(report)


if __name__ == "__main__":
    main()
