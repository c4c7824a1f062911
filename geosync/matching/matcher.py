"""Tiered matching of facilities against CRM companies.

A facility is tried against an ordered list of tiers. Each tier issues its
own CRM searches and either accepts a candidate or passes; the first
acceptance wins:

1. exact       - the CRM knows the facility under its raw name
2. normalized  - the canonical names agree closely enough
3. token       - a blend of token overlap and canonical name similarity

A tier whose search fails hands over to the next tier. If no tier accepts and
any of them failed, the failure is raised so the facility stays in the backlog.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from geosync.core.config import Settings
from geosync.core.models import (
    TIER_EXACT,
    TIER_NONE,
    TIER_NORMALIZED,
    TIER_TOKEN,
    CompanySearchResult,
    ExternalCompanyRecord,
    Facility,
    MatchResult,
)
from geosync.matching.normalizer import extract_tokens, normalize_name
from geosync.matching.similarity import similarity, token_overlap
from geosync.vendors.http import TRANSIENT_ERRORS

logger = logging.getLogger(__name__)


class CompanyDirectory(Protocol):
    def search(self, value: str, *, exact: bool, limit: int) -> CompanySearchResult:
        ...


@dataclass(frozen=True)
class MatchThresholds:
    normalized: float = 0.65
    token: float = 0.55
    token_overlap_similarity: float = 0.8
    token_result_cap: int = 100
    token_weight: float = 0.4
    name_weight: float = 0.6
    exact_search_limit: int = 5
    normalized_search_limit: int = 20
    token_search_limit: int = 50
    token_search_delay: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchThresholds":
        return cls(
            normalized=settings.match_normalized_threshold,
            token=settings.match_token_threshold,
            token_result_cap=settings.match_token_result_cap,
            token_search_delay=settings.crm_token_search_delay,
        )


@dataclass
class MatchContext:
    facility: Facility
    canonical: str
    tokens: List[str] = field(default_factory=list)

    @classmethod
    def for_facility(cls, facility: Facility) -> "MatchContext":
        canonical = normalize_name(facility.name, facility.country)
        return cls(facility=facility, canonical=canonical, tokens=extract_tokens(canonical, facility.country))


class MatchTier(ABC):
    name: str

    def __init__(self, directory: CompanyDirectory, thresholds: MatchThresholds) -> None:
        self.directory = directory
        self.thresholds = thresholds

    @abstractmethod
    def attempt(self, context: MatchContext) -> Optional[MatchResult]:
        """Return an accepted match, or None to hand over to the next tier."""

    def _result(self, context: MatchContext, company: ExternalCompanyRecord, confidence: float) -> MatchResult:
        return MatchResult(facility=context.facility, company=company, tier=self.name, confidence=confidence)

    def _canonical(self, company: ExternalCompanyRecord, country: str) -> str:
        return normalize_name(company.name, country).lower()


class ExactNameTier(MatchTier):
    name = TIER_EXACT

    def attempt(self, context: MatchContext) -> Optional[MatchResult]:
        found = self.directory.search(context.facility.name, exact=True, limit=self.thresholds.exact_search_limit)
        for company in found.records:
            if company.address:
                return self._result(context, company, 1.0)
        return None


class NormalizedNameTier(MatchTier):
    name = TIER_NORMALIZED

    def attempt(self, context: MatchContext) -> Optional[MatchResult]:
        if context.canonical == context.facility.name:
            return None
        words = context.canonical.split(" ")
        if not words[0]:
            return None

        found = self.directory.search(words[0], exact=False, limit=self.thresholds.normalized_search_limit)
        target = context.canonical.lower()
        for company in found.records:
            if not company.address:
                continue
            score = similarity(target, self._canonical(company, context.facility.country))
            if score > self.thresholds.normalized:
                return self._result(context, company, score)
        return None


class TokenOverlapTier(MatchTier):
    name = TIER_TOKEN

    def attempt(self, context: MatchContext) -> Optional[MatchResult]:
        if not context.tokens:
            return None

        found = self._search_manageable(context.tokens)
        target = context.canonical.lower()
        country = context.facility.country

        best: Optional[ExternalCompanyRecord] = None
        best_score = 0.0
        for company in found.records:
            if not company.address:
                continue
            company_canonical = self._canonical(company, country)
            overlap = token_overlap(
                context.tokens,
                extract_tokens(company_canonical, country),
                self.thresholds.token_overlap_similarity,
            )
            score = (
                self.thresholds.token_weight * overlap
                + self.thresholds.name_weight * similarity(target, company_canonical)
            )
            if score > best_score and score > self.thresholds.token:
                best, best_score = company, score

        if best is None:
            return None
        return self._result(context, best, best_score)

    def _search_manageable(self, tokens: Sequence[str]) -> CompanySearchResult:
        """Search token by token until one yields fewer hits than the cap."""
        found = CompanySearchResult(total=0)
        for index, token in enumerate(tokens):
            if index:
                time.sleep(self.thresholds.token_search_delay)
            found = self.directory.search(token, exact=False, limit=self.thresholds.token_search_limit)
            logger.debug("  Token %r returned %s results", token, found.total)
            if found.total < self.thresholds.token_result_cap:
                break
        return found


class CandidateMatcher:
    """Runs the tiers in order and reports the first acceptance."""

    def __init__(self, tiers: Sequence[MatchTier]) -> None:
        self.tiers = list(tiers)
        self.error_count = 0

    @classmethod
    def for_directory(cls, directory: CompanyDirectory, thresholds: Optional[MatchThresholds] = None) -> "CandidateMatcher":
        thresholds = thresholds or MatchThresholds()
        return cls(
            [
                ExactNameTier(directory, thresholds),
                NormalizedNameTier(directory, thresholds),
                TokenOverlapTier(directory, thresholds),
            ]
        )

    def match(self, facility: Facility) -> MatchResult:
        context = MatchContext.for_facility(facility)
        logger.debug("  Searching for: %r", facility.name)
        logger.debug("  Normalized: %r", context.canonical)
        logger.debug("  Tokens: %s", ", ".join(context.tokens))

        last_error: Optional[Exception] = None
        for tier in self.tiers:
            try:
                result = tier.attempt(context)
            except TRANSIENT_ERRORS as exc:
                self.error_count += 1
                last_error = exc
                logger.warning("%s search failed for %r: %s", tier.name.capitalize(), facility.name, exc)
                continue
            if result is not None:
                return result

        # Not a real "no match" unless every tier actually searched.
        if last_error is not None:
            raise last_error
        return MatchResult(facility=facility, company=None, tier=TIER_NONE, confidence=0.0)
