"""String similarity used by the CRM matcher."""

from typing import Sequence

from rapidfuzz.distance import Levenshtein


def similarity(a: str, b: str) -> float:
    """Edit-distance similarity normalized by the longer string, in [0, 1].

    Two empty strings are identical. Comparison is case-sensitive; callers
    lower-case canonical names first.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


def tokens_correspond(token: str, other: str, threshold: float = 0.8) -> bool:
    return token in other or other in token or similarity(token, other) > threshold


def token_overlap(tokens: Sequence[str], candidate_tokens: Sequence[str], threshold: float = 0.8) -> float:
    """Fraction of `tokens` that have a corresponding token in `candidate_tokens`."""
    if not tokens:
        return 0.0
    overlap = sum(1 for token in tokens if any(tokens_correspond(token, other, threshold) for other in candidate_tokens))
    return overlap / len(tokens)
