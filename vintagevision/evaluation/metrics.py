"""Per-item accuracy metrics built from the field scorers.

This module applies the ten field scorers to one AI output, combines them
with fixed weights into an overall score and buckets each field into
success, partial match or failure for human-readable reports.

Example:
    >>> from vintagevision.evaluation.metrics import score_fields, overall_score
    >>> scores = score_fields(item.expected, analysis)
    >>> overall_score(scores)
    87
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from vintagevision.evaluation.scoring import (
    round_half_up,
    score_authentication_markers,
    score_category_match,
    score_domain_match,
    score_era_match,
    score_features_identified,
    score_maker_match,
    score_name_match,
    score_origin_match,
    score_style_match,
    score_value_accuracy,
)

if TYPE_CHECKING:
    from vintagevision.analysis.models import AnalysisResult
    from vintagevision.evaluation.ground_truth import ExpectedAnalysis, GroundTruthItem

# Weights for the overall score; they sum to 100
FIELD_WEIGHTS: dict[str, int] = {
    "name": 15,
    "maker": 15,
    "era": 10,
    "style": 10,
    "category": 5,
    "domain": 5,
    "origin": 5,
    "value": 20,
    "features": 10,
    "authentication": 5,
}

FIELD_SCORERS: dict[str, Callable[[ExpectedAnalysis, AnalysisResult], int]] = {
    "name": score_name_match,
    "maker": score_maker_match,
    "era": score_era_match,
    "style": score_style_match,
    "category": score_category_match,
    "domain": score_domain_match,
    "origin": score_origin_match,
    "value": score_value_accuracy,
    "features": score_features_identified,
    "authentication": score_authentication_markers,
}

PARTIAL_MATCH_THRESHOLD = 70


class FieldScores(BaseModel):
    """The ten per-field scores for one item, each 0-100."""

    name: int = Field(default=0, ge=0, le=100)
    maker: int = Field(default=0, ge=0, le=100)
    era: int = Field(default=0, ge=0, le=100)
    style: int = Field(default=0, ge=0, le=100)
    category: int = Field(default=0, ge=0, le=100)
    domain: int = Field(default=0, ge=0, le=100)
    origin: int = Field(default=0, ge=0, le=100)
    value: int = Field(default=0, ge=0, le=100)
    features: int = Field(default=0, ge=0, le=100)
    authentication: int = Field(default=0, ge=0, le=100)

    def items(self) -> list[tuple[str, int]]:
        """Field name and score pairs in weight-table order."""
        return [(name, getattr(self, name)) for name in FIELD_WEIGHTS]


@dataclass
class FieldOutcomes:
    """Field scores bucketed for reporting.

    Attributes:
        successes: Fields that scored 100.
        partial_matches: Fields scoring 70-99.
        failures: Fields below 70, including complete misses.
    """

    successes: list[str] = field(default_factory=list)
    partial_matches: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


def score_fields(expected: ExpectedAnalysis, actual: AnalysisResult) -> FieldScores:
    """Run every field scorer over one AI output."""
    return FieldScores(**{name: scorer(expected, actual) for name, scorer in FIELD_SCORERS.items()})


def overall_score(scores: FieldScores, weights: dict[str, int] | None = None) -> int:
    """Weighted mean of the field scores, rounded half up.

    Args:
        scores: Per-field scores.
        weights: Optional weight overrides. Defaults to FIELD_WEIGHTS.

    Returns:
        Overall score 0-100.
    """
    weights = weights or FIELD_WEIGHTS
    total_weight = sum(weights.values())
    if total_weight <= 0:
        return 0
    weighted = sum(getattr(scores, name) * weight for name, weight in weights.items())
    return round_half_up(weighted / total_weight)


def classify_outcomes(scores: FieldScores) -> FieldOutcomes:
    """Bucket each field score into success, partial match or failure.

    Example:
        >>> classify_outcomes(FieldScores(name=100, era=80)).partial_matches
        ['era: 80% match']
    """
    outcomes = FieldOutcomes()
    for name, score in scores.items():
        if score == 100:
            outcomes.successes.append(f"{name}: Perfect match")
        elif score >= PARTIAL_MATCH_THRESHOLD:
            outcomes.partial_matches.append(f"{name}: {score}% match")
        elif score > 0:
            outcomes.failures.append(f"{name}: Only {score}% - needs improvement")
        else:
            outcomes.failures.append(f"{name}: Complete miss")
    return outcomes


def _dollars(cents: int | None) -> str:
    return f"${(cents or 0) / 100:,.0f}"


def improvement_suggestions(
    item: GroundTruthItem,
    actual: AnalysisResult,
    scores: FieldScores,
) -> list[str]:
    """Concrete follow-ups for the weakest fields of one item."""
    expected = item.expected
    suggestions: list[str] = []

    if scores.name < 70:
        suggestions.append(
            f'Name identification failed. AI said "{actual.name}" but expected '
            f'"{expected.name}". Consider adding more training examples for the '
            f"{expected.domain_expert.value} category."
        )
    if scores.maker < 70 and expected.maker:
        suggestions.append(
            f"Maker attribution failed. Consider adding {expected.maker} to the knowledge "
            "base with their distinctive marks and characteristics."
        )
    if scores.value < 60:
        suggestions.append(
            f"Value estimation off. AI: {_dollars(actual.estimated_value_min)}-"
            f"{_dollars(actual.estimated_value_max)}, expected: {_dollars(expected.value_min)}-"
            f"{_dollars(expected.value_max)}. Update market data sources."
        )
    if scores.features < 60:
        suggestions.append(
            "Missing key features. The AI should identify: "
            + ", ".join(expected.must_identify_features)
        )
    return suggestions
