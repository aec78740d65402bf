# core/plagiarism_scorer.py
"""
Maps combined similarity (%) to plagiarism risk (%).

Two independent transforms, applied in order: banding, then the title boost,
then a clamp to [0, 100]. The orchestrator's final pass adds minimum floors on
top (apply_minimum_floors / exact_title_floor).
"""

from util.enums import MatchType


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def band(similarity: float) -> float:
    """Banded, monotonic mapping of similarity to risk."""
    s = similarity
    if s >= 95.0:
        return 100.0
    if s >= 90.0:
        return 95.0 + (s - 90.0)
    if s >= 80.0:
        return 85.0 + (s - 80.0)
    if s >= 70.0:
        return 70.0 + (s - 70.0)
    if s >= 50.0:
        return 50.0 + (s - 50.0)
    return max(5.0, s)


def apply_title_boost(plagiarism: float, title_string_similarity: float) -> float:
    if title_string_similarity >= 95.0:
        plagiarism += 20.0
    elif title_string_similarity >= 85.0:
        plagiarism += 15.0
    elif title_string_similarity >= 75.0:
        plagiarism += 10.0
    return _clamp(plagiarism)


def plagiarism_score(similarity: float, title_string_similarity: float = 0.0) -> float:
    return _clamp(apply_title_boost(band(similarity), title_string_similarity))


def apply_minimum_floors(similarity: float, plagiarism: float) -> float:
    if similarity >= 95.0:
        return max(plagiarism, 95.0)
    if similarity >= 90.0:
        return max(plagiarism, 90.0)
    if similarity >= 80.0:
        return max(plagiarism, 80.0)
    return plagiarism


def exact_title_floor(plagiarism: float, content_similarity: float) -> float:
    # Title collision alone is treated as near-conclusive
    floored = max(plagiarism, 90.0)
    if content_similarity >= 80.0:
        floored = max(floored, 95.0)
    return floored


def determine_match_type(similarity: float) -> MatchType:
    if similarity >= 95.0:
        return MatchType.EXACT_MATCH
    if similarity >= 75.0:
        return MatchType.HIGH_SIMILARITY
    if similarity >= 50.0:
        return MatchType.PARTIAL_MATCH
    return MatchType.NO_MATCH
