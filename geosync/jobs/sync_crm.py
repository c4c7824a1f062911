"""CLI job that recovers facility addresses from HubSpot companies."""

import argparse
import logging
from typing import Optional

from geosync.core.config import ConfigError, get_settings, require
from geosync.core.db import fetch_facilities_for_sync, init_pool, persist_match_outcome
from geosync.core.models import MATCH_TIERS, Facility
from geosync.core.stats import RunStatistics, render_summary
from geosync.jobs import runner
from geosync.matching.matcher import CandidateMatcher, MatchThresholds
from geosync.matching.normalizer import SUPPORTED_COUNTRIES
from geosync.vendors.hubspot import HubSpotCompanyDirectory

logger = logging.getLogger(__name__)


def run_sync_job(
    *,
    country: Optional[str],
    limit: Optional[int],
    dry_run: bool,
    matcher: Optional[CandidateMatcher] = None,
) -> RunStatistics:
    settings = get_settings()
    require(settings, "hubspot_api_key", "database_url")

    init_pool()

    if matcher is None:
        directory = HubSpotCompanyDirectory(settings.hubspot_api_key, timeout=settings.request_timeout)
        matcher = CandidateMatcher.for_directory(directory, MatchThresholds.from_settings(settings))

    limit = limit or settings.sync_default_limit
    logger.info("Fetching facilities without addresses (country=%s, limit=%d)", country or "all", limit)
    facilities = fetch_facilities_for_sync(limit=limit, country=country)
    logger.info("Found %d facilities to process", len(facilities))

    stats = RunStatistics()
    if not facilities:
        logger.info("All facilities already have addresses")
        return stats

    def process(facility: Facility, progress: str) -> None:
        result = matcher.match(facility)
        if result.company is None:
            stats.record_no_result()
            logger.info("%s %s - no match found", progress, facility.name)
        else:
            stats.record_success(facility.country, result.tier)
            logger.info(
                "%s %s -> %s (%s, %.0f%%) %s, %s",
                progress,
                facility.name,
                result.company.name,
                result.tier,
                result.confidence * 100,
                result.company.address,
                result.company.city or "",
            )
        if not dry_run:
            stats.record_write(persist_match_outcome(result))

    runner.run_backlog(
        facilities,
        process,
        stats=stats,
        batch_size=settings.batch_size,
        delay_for=lambda _facility: settings.crm_search_delay,
    )
    stats.provider_errors = matcher.error_count
    return stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync facility addresses from HubSpot companies")
    parser.add_argument("--country", dest="country", help=f"Country filter ({', '.join(SUPPORTED_COUNTRIES)})")
    parser.add_argument("--limit", dest="limit", type=int, help="Maximum number of facilities to process")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Preview matches without updating the database")
    parser.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Show detailed matching info")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    try:
        stats = run_sync_job(country=args.country, limit=args.limit, dry_run=args.dry_run)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except Exception as exc:  # pragma: no cover - CLI fallback
        logger.error("HubSpot address sync failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc

    print(render_summary(stats, title="HubSpot address sync", outcomes=MATCH_TIERS, dry_run=args.dry_run))


if __name__ == "__main__":
    main()
