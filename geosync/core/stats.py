"""Per-run counters and the end-of-run summary table."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple


@dataclass
class CountryTally:
    matched: int = 0
    total: int = 0


@dataclass
class RunStatistics:
    """Counters for one pipeline run; only the orchestrating loop mutates them."""

    processed: int = 0
    matched: int = 0
    updated: int = 0
    unchanged: int = 0
    no_result: int = 0
    failed: int = 0
    provider_errors: int = 0
    by_outcome: Counter = field(default_factory=Counter)
    by_country: Dict[str, CountryTally] = field(default_factory=dict)

    def record_processed(self, country: str) -> None:
        self.processed += 1
        self.by_country.setdefault(country, CountryTally()).total += 1

    def record_success(self, country: str, outcome: str) -> None:
        self.matched += 1
        self.by_outcome[outcome] += 1
        self.by_country.setdefault(country, CountryTally()).matched += 1

    def record_no_result(self, outcome: str = "none") -> None:
        self.no_result += 1
        self.by_outcome[outcome] += 1

    def record_write(self, changed: bool) -> None:
        if changed:
            self.updated += 1
        else:
            self.unchanged += 1

    def record_failure(self) -> None:
        self.failed += 1

    @property
    def match_rate(self) -> float:
        return self.matched / self.processed if self.processed else 0.0


def _percent(part: int, whole: int) -> str:
    return f"{(part / whole * 100) if whole else 0.0:.1f}%"


def _table(rows: Iterable[Tuple[str, str]], indent: str = "   ") -> List[str]:
    rows = list(rows)
    width = max((len(label) for label, _ in rows), default=0)
    return [f"{indent}{label.ljust(width)}  {value}" for label, value in rows]


def render_summary(
    stats: RunStatistics,
    *,
    title: str,
    success_label: str = "Matched",
    outcome_label: str = "Match types",
    outcomes: Iterable[str] = (),
    dry_run: bool = False,
) -> str:
    rule = "-" * 50
    lines = [rule, title, rule]
    lines += _table(
        [
            ("Processed:", str(stats.processed)),
            (f"{success_label}:", f"{stats.matched} ({_percent(stats.matched, stats.processed)})"),
            ("Updated:", str(stats.updated)),
            ("Unchanged:", str(stats.unchanged)),
            ("No result:", str(stats.no_result)),
            ("Failed:", str(stats.failed)),
            ("Provider errors:", str(stats.provider_errors)),
        ]
    )

    outcomes = list(outcomes)
    names = outcomes + sorted(key for key in stats.by_outcome if key not in outcomes)
    if names:
        lines += ["", f"   {outcome_label}:"]
        lines += _table(((f"{name}:", str(stats.by_outcome.get(name, 0))) for name in names), indent="     ")

    if stats.by_country:
        lines += ["", "   By country:"]
        lines += _table(
            (
                (f"{country}:", f"{tally.matched}/{tally.total} ({_percent(tally.matched, tally.total)})")
                for country, tally in sorted(stats.by_country.items())
            ),
            indent="     ",
        )

    if dry_run:
        lines += ["", "   Dry run - no changes made to database"]
    return "\n".join(lines)
