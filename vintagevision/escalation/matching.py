"""Matching expert review requests to human experts.

Scores are purely additive:

- +40 when the expert specializes in the request's item category
- rating x 8 (a 5.0 rating contributes 40)
- an experience bonus from the first matching band in ``EXPERIENCE_BANDS``
- +5 when the expert's average turnaround is within 75% of the tier's

Ranking uses a stable descending sort, so experts with equal scores keep
their pool order and the earliest-listed one wins.

Example:
    >>> match = find_best_expert(request, experts)
    >>> if match is None:
    ...     queue_for_manual_assignment(request)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, NamedTuple

from pydantic import BaseModel, Field, field_validator

from vintagevision.analysis.models import CAMEL_MODEL_CONFIG, DomainExpert
from vintagevision.escalation.tiers import DEFAULT_ESCALATION_CONFIG, EscalationConfig

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vintagevision.escalation.requests import ExpertRequest

logger = logging.getLogger(__name__)

SPECIALIZATION_POINTS = 40
RATING_MULTIPLIER = 8
FAST_TURNAROUND_POINTS = 5
FAST_TURNAROUND_FACTOR = 0.75


class ExperienceBand(NamedTuple):
    """Bonus awarded once an expert has completed ``min_reviews`` reviews."""

    min_reviews: int
    points: int
    reason: str


# Highest threshold first; only the first matching band applies
EXPERIENCE_BANDS: tuple[ExperienceBand, ...] = (
    ExperienceBand(100, 15, "Highly experienced (100+ reviews)"),
    ExperienceBand(50, 10, "Experienced (50+ reviews)"),
)


class Expert(BaseModel):
    """A human appraiser in the review pool.

    Attributes:
        id: Expert identifier.
        name: Display name.
        email: Contact address.
        specializations: Domains the expert covers.
        certifications: Professional credentials.
        rating: Customer rating, 0-5.
        completed_reviews: Number of reviews delivered.
        average_turnaround: Mean turnaround in hours.
        is_active: Whether the expert currently takes requests.
        joined_at: When the expert joined.
    """

    id: str
    name: str
    email: str = ""
    specializations: frozenset[DomainExpert] = frozenset()
    certifications: list[str] = Field(default_factory=list)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    completed_reviews: int = Field(default=0, ge=0)
    average_turnaround: float = Field(default=48.0, ge=0.0)
    is_active: bool = True
    joined_at: datetime | None = None

    model_config = CAMEL_MODEL_CONFIG

    @field_validator("specializations", mode="before")
    @classmethod
    def coerce_specializations(cls, v: Iterable[str] | None) -> frozenset[DomainExpert]:
        """Accept any iterable of tags, dropping ones that name no known domain."""
        if v is None:
            return frozenset()
        specializations = set()
        for tag in v:
            domain = DomainExpert.parse(tag)
            if domain is None:
                logger.warning(f"Ignoring unknown expert specialization {tag!r}")
                continue
            specializations.add(domain)
        return frozenset(specializations)


class ExpertMatch(BaseModel):
    """Score of one expert against one request."""

    expert: Expert
    match_score: float
    reasons: list[str] = Field(default_factory=list)
    estimated_turnaround: float

    model_config = CAMEL_MODEL_CONFIG


def experience_bonus(completed_reviews: int) -> ExperienceBand | None:
    """Return the first experience band the review count reaches."""
    for band in EXPERIENCE_BANDS:
        if completed_reviews >= band.min_reviews:
            return band
    return None


def score_expert(
    expert: Expert,
    request: ExpertRequest,
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
) -> ExpertMatch:
    """Score a single expert for a request, ignoring the active flag."""
    score = 0.0
    reasons: list[str] = []

    if request.item_category in expert.specializations:
        score += SPECIALIZATION_POINTS
        reasons.append(f"Specializes in {request.item_category.value}")

    score += expert.rating * RATING_MULTIPLIER

    band = experience_bonus(expert.completed_reviews)
    if band is not None:
        score += band.points
        reasons.append(band.reason)

    tier_turnaround = config.turnaround_for(request.tier_id)
    if expert.average_turnaround <= tier_turnaround * FAST_TURNAROUND_FACTOR:
        score += FAST_TURNAROUND_POINTS
        reasons.append("Fast turnaround")

    return ExpertMatch(
        expert=expert,
        match_score=score,
        reasons=reasons,
        estimated_turnaround=expert.average_turnaround,
    )


def rank_experts(
    request: ExpertRequest,
    experts: Iterable[Expert],
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
) -> list[ExpertMatch]:
    """Score every active expert and order them best first.

    Ties keep their input order.
    """
    matches = [score_expert(e, request, config) for e in experts if e.is_active]
    return sorted(matches, key=lambda m: m.match_score, reverse=True)


def find_best_expert(
    request: ExpertRequest,
    experts: Iterable[Expert],
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
) -> ExpertMatch | None:
    """Pick the highest-scoring active expert for a request.

    Args:
        request: The request needing an expert.
        experts: Candidate pool.
        config: Config used to look up the tier's nominal turnaround.

    Returns:
        Best ExpertMatch, or None when no active expert is available.
    """
    ranked = rank_experts(request, experts, config)
    if not ranked:
        logger.info(f"No active expert available for request {request.id}")
        return None

    best = ranked[0]
    logger.info(
        f"Matched request {request.id} to expert {best.expert.id} "
        f"(score={best.match_score:.1f}, candidates={len(ranked)})"
    )
    return best
