"""Facility name normalization for Nordic housing association names.

Facilities are imported under names like "Sameiet Solsiden Borettslag" or
"Brf Ekbacken i Stockholm - Zaptec" while the CRM usually knows the same
association by a different combination of the legal-form affixes. Both
sides are reduced to a canonical form before they are compared.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Pattern, Tuple


@dataclass(frozen=True)
class CountryRules:
    prefixes: Tuple[str, ...]
    suffixes: Tuple[str, ...]
    stopwords: FrozenSet[str] = frozenset()
    locative_cities: Tuple[str, ...] = ()


COUNTRY_RULES: Dict[str, CountryRules] = {
    "Norway": CountryRules(
        prefixes=("Sameiet", "Borettslaget", "Boligsameiet", "AL", "AS", "Andelslaget"),
        suffixes=("Borettslag", "Sameie", "Boligsameie", "Garasjelag", "Garasjesameie", "SA", "AS"),
        stopwords=frozenset({"og", "ved", "på", "av", "til", "for", "nr"}),
    ),
    "Sweden": CountryRules(
        prefixes=(
            "HSB Bostadsrättsförening",
            "Riksbyggen Bostadsrättsförening",
            "Riksbyggens Bostadsrättsförening",
            "Bostadsrättsföreningen",
            "Anläggningssamfälligheten",
            "BRF",
        ),
        suffixes=("Samfällighetsförening", "Bostadsrättsförening", "Samfällighet"),
        stopwords=frozenset({"och", "vid", "på", "av", "till", "för", "nr"}),
        locative_cities=(
            "Stockholm",
            "Göteborg",
            "Uppsala",
            "Malmö",
            "Örebro",
            "Sundbyberg",
            "Sköndal",
            "Lund",
            "Karlstad",
            "Linköping",
            "Bromma",
            "Årsta",
            "Vaxholm",
        ),
    ),
    "Denmark": CountryRules(
        prefixes=("Andelsboligforening", "A/B", "Ejerforening", "E/F"),
        suffixes=("Andelsboligforening", "Ejerforening"),
        stopwords=frozenset({"og", "ved", "på", "af", "til", "for", "nr"}),
    ),
}

DEFAULT_COUNTRY = "Norway"
SUPPORTED_COUNTRIES: Tuple[str, ...] = tuple(COUNTRY_RULES)

# Noise shared by every country: trailing ordinals, charger vendor tags,
# the "- all" export marker and Norwegian co-op annotations.
_NOISE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\s+(I|II|III|IV|V|1|2|3|4|5)\s*$", re.IGNORECASE),
    re.compile(r"\s*-\s*(Zaptec|Easee|laddboxar|all)\b.*$", re.IGNORECASE),
    re.compile(r"\s+A/L\s*$", re.IGNORECASE),
    re.compile(r"\s+\(fellesplass\)\s*$", re.IGNORECASE),
)
_PUNCTUATION = re.compile(r"[,.:;!?]+")
_WHITESPACE = re.compile(r"\s+")
_TOKEN_SPLIT = re.compile(r"[\s\-/()]+")

COMMON_STOPWORDS: FrozenSet[str] = frozenset({"number", "all", "a/l"})
MAX_TOKENS = 4
MIN_TOKEN_LENGTH = 3


def rules_for(country: Optional[str]) -> CountryRules:
    return COUNTRY_RULES.get(country or "", COUNTRY_RULES[DEFAULT_COUNTRY])


def _compile(rules: CountryRules) -> List[Pattern[str]]:
    patterns = [re.compile(rf"^{re.escape(prefix)}\s+", re.IGNORECASE) for prefix in rules.prefixes]
    patterns += [re.compile(rf"\s+{re.escape(suffix)}$", re.IGNORECASE) for suffix in rules.suffixes]
    if rules.locative_cities:
        cities = "|".join(re.escape(city) for city in rules.locative_cities)
        patterns.append(re.compile(rf"\s+i\s+({cities})\s*$", re.IGNORECASE))
    patterns.extend(_NOISE_PATTERNS)
    return patterns


_COMPILED: Dict[str, List[Pattern[str]]] = {country: _compile(rules) for country, rules in COUNTRY_RULES.items()}


def _strip_once(name: str, patterns: List[Pattern[str]]) -> str:
    for pattern in patterns:
        name = pattern.sub("", name)
    name = _PUNCTUATION.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


def normalize_name(name: str, country: Optional[str] = None) -> str:
    """Return the canonical comparison form of a facility or company name.

    Stripping is repeated until nothing changes, so "Alvim Borettslag - all"
    loses both the export marker and the legal-form suffix, and the result is
    stable under another call. A name made entirely of noise is returned
    trimmed instead of empty.
    """
    if not name:
        return ""
    patterns = _COMPILED.get(country or "", _COMPILED[DEFAULT_COUNTRY])

    current = _WHITESPACE.sub(" ", name).strip()
    while True:
        stripped = _strip_once(current, patterns)
        if stripped == current:
            break
        current = stripped

    return current or name.strip()


def stopwords_for(country: Optional[str] = None) -> FrozenSet[str]:
    """Connective words plus the legal-form affixes, which never discriminate."""
    selected = [rules_for(country)] if country else list(COUNTRY_RULES.values())
    words = set(COMMON_STOPWORDS)
    for rules in selected:
        words |= rules.stopwords
        for affix in rules.prefixes + rules.suffixes:
            words.update(part.lower() for part in _TOKEN_SPLIT.split(affix) if part)
    return frozenset(words)


def extract_tokens(name: str, country: Optional[str] = None) -> List[str]:
    """First four discriminative lower-case tokens of a (canonical) name."""
    stopwords = stopwords_for(country)
    tokens = [
        token
        for token in _TOKEN_SPLIT.split(name.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in stopwords
    ]
    return tokens[:MAX_TOKENS]
