"""CLI job that geocodes facility addresses.

Norway goes to the Kartverket address registry; the other countries go to
HERE. Results are cached by address so a repeated address never costs a
second provider call.
"""

import argparse
import logging
from typing import Optional

from geosync.core.config import ConfigError, Settings, get_settings, require
from geosync.core.db import (
    fetch_facilities_for_geocoding,
    get_cached_geocode,
    init_pool,
    persist_geocode_outcome,
    store_cached_geocode,
)
from geosync.core.models import PROVIDER_HERE, PROVIDER_KARTVERKET, Facility
from geosync.core.stats import RunStatistics, render_summary
from geosync.geocoding.router import CommercialGeocoder, GeocodingRouter, NationalRegistryGeocoder
from geosync.jobs import runner
from geosync.matching.normalizer import SUPPORTED_COUNTRIES
from geosync.vendors.here import HereAddressSearch
from geosync.vendors.kartverket import KartverketAddressSearch

logger = logging.getLogger(__name__)


def build_router(settings: Settings) -> GeocodingRouter:
    commercial_search = None
    if settings.here_api_key:
        commercial_search = HereAddressSearch(settings.here_api_key, timeout=settings.request_timeout)
    return GeocodingRouter(
        NationalRegistryGeocoder(KartverketAddressSearch(timeout=settings.request_timeout)),
        CommercialGeocoder(commercial_search),
        registry_country=settings.national_registry_country,
    )


def run_geocode_job(
    *,
    country: Optional[str],
    limit: Optional[int],
    dry_run: bool,
    router: Optional[GeocodingRouter] = None,
) -> RunStatistics:
    settings = get_settings()
    require(settings, "database_url")

    init_pool()

    router = router or build_router(settings)
    if not router.commercial.configured and country != router.registry_country:
        logger.warning("HERE_API_KEY not set - geocoding outside %s will fail", router.registry_country)

    limit = limit or settings.geocode_default_limit
    logger.info("Country filter: %s, limit: %d, dry run: %s", country or "all", limit, dry_run)
    facilities = fetch_facilities_for_geocoding(limit=limit, country=country)
    logger.info("Found %d facilities to geocode", len(facilities))

    stats = RunStatistics()
    if not facilities:
        logger.info("No facilities to geocode")
        return stats

    def process(facility: Facility, progress: str) -> None:
        result = get_cached_geocode(facility) if settings.geocode_cache_enabled else None
        if result is None:
            result = router.geocode(facility)
            if result is not None and settings.geocode_cache_enabled and not dry_run:
                store_cached_geocode(facility, result)

        if result is None:
            stats.record_no_result(router.provider_for(facility) + ":none")
            logger.info("%s %-40s ... no result", progress, facility.name[:40])
        else:
            stats.record_success(facility.country, result.provider)
            logger.info(
                "%s %-40s ... %.5f, %.5f (%s%s, %.0f%%)",
                progress,
                facility.name[:40],
                result.latitude,
                result.longitude,
                result.provider,
                ", cached" if result.cached else "",
                result.confidence * 100,
            )
        if not dry_run:
            stats.record_write(persist_geocode_outcome(facility, result))

    def delay_for(facility: Facility) -> float:
        if router.uses_registry(facility):
            return settings.registry_geocode_delay
        return settings.commercial_geocode_delay

    runner.run_backlog(
        facilities,
        process,
        stats=stats,
        batch_size=settings.batch_size,
        delay_for=delay_for,
    )
    stats.provider_errors = router.error_count
    return stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Geocode facility addresses")
    parser.add_argument("--country", dest="country", help=f"Country filter ({', '.join(SUPPORTED_COUNTRIES)})")
    parser.add_argument("--limit", dest="limit", type=int, help="Maximum number of facilities to geocode")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Geocode without updating the database")
    parser.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Show provider details")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    try:
        stats = run_geocode_job(country=args.country, limit=args.limit, dry_run=args.dry_run)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except Exception as exc:  # pragma: no cover - CLI fallback
        logger.error("Geocoding failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc

    print(
        render_summary(
            stats,
            title="Geocoding",
            success_label="Succeeded",
            outcome_label="Providers",
            outcomes=(PROVIDER_KARTVERKET, PROVIDER_HERE),
            dry_run=args.dry_run,
        )
    )


if __name__ == "__main__":
    main()
