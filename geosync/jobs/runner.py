"""Sequential batch loop shared by the resolution jobs."""

import logging
import math
import time
from typing import Callable, Sequence

from geosync.core.models import Facility
from geosync.core.stats import RunStatistics

logger = logging.getLogger(__name__)


def run_backlog(
    facilities: Sequence[Facility],
    process: Callable[[Facility, str], None],
    *,
    stats: RunStatistics,
    batch_size: int,
    delay_for: Callable[[Facility], float],
) -> RunStatistics:
    """Process facilities one at a time, in batches, isolating per-record faults.

    `process` receives the facility and its progress tag ("[3/120]") and is
    responsible for recording the outcome. Anything it raises is logged and
    counted as failed; the loop moves on. The pause from `delay_for` follows
    every record, so provider rate limits hold even after errors.
    """
    total = len(facilities)
    batch_size = max(1, batch_size)
    total_batches = math.ceil(total / batch_size)

    for batch_index, start in enumerate(range(0, total, batch_size), start=1):
        batch = facilities[start:start + batch_size]
        logger.info("Batch %d/%d (%d items)", batch_index, total_batches, len(batch))

        for position, facility in enumerate(batch, start=start + 1):
            progress = f"[{position}/{total}]"
            stats.record_processed(facility.country)
            try:
                process(facility, progress)
            except Exception as exc:  # noqa: BLE001
                stats.record_failure()
                logger.error("%s Error processing %s: %s", progress, facility.name, exc)
            finally:
                time.sleep(delay_for(facility))

        logger.info(
            "Matched: %d/%d (%.1f%%)",
            stats.matched,
            stats.processed,
            stats.match_rate * 100,
        )

    return stats
