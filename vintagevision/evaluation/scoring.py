"""Per-field scorers comparing an AI identification to ground truth.

Every scorer takes ``(expected, actual)`` and returns an integer in
``[0, 100]``. Scorers are total: missing or empty data lowers the score
but never raises, so unattended evaluation runs survive bad records.

String comparisons are case-insensitive substring checks. Blank expected
strings and blank keywords never match, since an empty string is a
substring of everything.

Example:
    >>> from vintagevision.evaluation.scoring import score_name_match
    >>> score_name_match(item.expected, analysis)
    100
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vintagevision.analysis.models import AnalysisResult
    from vintagevision.evaluation.ground_truth import ExpectedAnalysis

YEAR_PATTERN = re.compile(r"\d{4}")

# Score for an era string that contains no parseable year
NO_YEAR_SCORE = 20

# (max years from the expected range, score), checked in order
ERA_DISTANCE_BANDS: tuple[tuple[int, int], ...] = ((10, 80), (25, 50), (50, 25))

# (max relative midpoint error, score) for non-overlapping value ranges
VALUE_DISTANCE_BANDS: tuple[tuple[float, int], ...] = ((0.25, 60), (0.50, 40), (1.00, 20))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into 0-100."""
    return max(0, min(100, round_half_up(value)))


def _norm(text: str | None) -> str:
    return (text or "").strip().lower()


def _contains(haystack: str | None, needle: str | None) -> bool:
    """Case-insensitive containment; a blank needle never matches."""
    n = _norm(needle)
    return bool(n) and n in _norm(haystack)


def _contains_any(haystack: str | None, needles: Iterable[str]) -> bool:
    return any(_contains(haystack, n) for n in needles)


def score_name_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Score the identified name.

    Full expected name contained in the actual name scores 100. Otherwise
    keyword hits score 0/40/70 for 0/1/2 hits, and ``min(90, 40 + 20n)``
    for three or more.
    """
    if _contains(actual.name, expected.name):
        return 100

    hits = sum(1 for kw in expected.name_keywords if _contains(actual.name, kw))
    if hits == 0:
        return 0
    if hits == 1:
        return 40
    if hits == 2:
        return 70
    return min(90, 40 + 20 * hits)


def score_maker_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Score maker attribution.

    When no maker is expected, a blank or "unknown" maker scores 100 and
    any other attribution gets 50. Otherwise the expected maker scores 100,
    an accepted alternative 90, anything else 0.
    """
    if not _norm(expected.maker):
        if not _norm(actual.maker) or "unknown" in _norm(actual.maker):
            return 100
        return 50

    if _contains(actual.maker, expected.maker):
        return 100
    if _contains_any(actual.maker, expected.maker_alternatives):
        return 90
    return 0


def score_era_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Score the dating of an item from the years mentioned in its era.

    All 4-digit runs in the era text are averaged. Inside the expected
    range scores 100; outside, the score steps down with the distance to
    the nearest boundary. Era text without a year scores 20.
    """
    if not _norm(actual.era):
        return 0

    years = [int(y) for y in YEAR_PATTERN.findall(actual.era or "")]
    if not years:
        return NO_YEAR_SCORE

    average = sum(years) / len(years)
    distance = expected.era_range.distance(average)
    if distance == 0:
        return 100
    for max_distance, score in ERA_DISTANCE_BANDS:
        if distance <= max_distance:
            return score
    return 0


def score_style_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Score the style: exact 100, accepted alternative 90, else 0."""
    if not _norm(actual.style):
        return 0
    if _contains(actual.style, expected.style):
        return 100
    if _contains_any(actual.style, expected.style_alternatives):
        return 90
    return 0


def score_category_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    return 100 if actual.product_category == expected.category else 0


def score_domain_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    return 100 if actual.domain_expert == expected.domain_expert else 0


def score_origin_match(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    return 100 if _contains(actual.origin_region, expected.origin_region) else 0


def score_value_accuracy(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Score the value estimate against the expected market range.

    Overlapping ranges score ``60 + 40 * overlap / expected_length``
    (capped at 100). Disjoint ranges score by the relative distance
    between midpoints: 60, 40, 20 or 0.
    """
    if not actual.estimated_value_min and not actual.estimated_value_max:
        return 0

    ai_min = actual.estimated_value_min or 0
    ai_max = actual.estimated_value_max or ai_min
    exp_min, exp_max = expected.value_min, expected.value_max

    if ai_max >= exp_min and ai_min <= exp_max:
        overlap = min(ai_max, exp_max) - max(ai_min, exp_min)
        expected_length = exp_max - exp_min
        ratio = overlap / expected_length if expected_length > 0 else 1.0
        return clamp_score(min(100, 60 + 40 * ratio))

    ai_mid = (ai_min + ai_max) / 2
    exp_mid = (exp_min + exp_max) / 2
    if exp_mid <= 0:
        return 0

    off = abs(ai_mid - exp_mid) / exp_mid
    for max_off, score in VALUE_DISTANCE_BANDS:
        if off <= max_off:
            return score
    return 0


def phrase_found(phrase: str, text: str) -> bool:
    """A phrase is found if it appears verbatim or every word of it appears."""
    p = _norm(phrase)
    if not p:
        return False
    return p in text or all(word in text for word in p.split())


def _coverage(phrases: list[str], text: str) -> int:
    wanted = [p for p in phrases if _norm(p)]
    if not wanted:
        return 100
    found = sum(1 for p in wanted if phrase_found(p, text))
    return clamp_score(found / len(wanted) * 100)


def score_features_identified(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Percentage of must-identify features mentioned by the analysis.

    Searches the description, historical context, supporting evidence and
    name. No expected features means nothing was missed (100).
    """
    text = " ".join(
        [actual.description, actual.historical_context, *actual.evidence_for, actual.name]
    ).lower()
    return _coverage(expected.must_identify_features, text)


def score_authentication_markers(expected: ExpectedAnalysis, actual: AnalysisResult) -> int:
    """Percentage of authentication markers the analysis discusses.

    Searches the description, historical context and both evidence lists.
    No expected markers scores 100.
    """
    text = " ".join(
        [
            actual.description,
            actual.historical_context,
            *actual.evidence_for,
            *actual.evidence_against,
        ]
    ).lower()
    return _coverage(expected.authentication_markers, text)
