"""Escalation rules deciding when to offer human expert review.

``evaluate_escalation`` walks a fixed, ordered list of triggers over one
``AnalysisResult``. Each trigger may append a reason, raise the urgency and
pick a service tier. Urgency only ratchets upward within a call.

Tier selection is deliberately asymmetric: the value and authenticity
triggers overwrite any earlier recommendation, while the low-confidence,
referral and wide-range triggers only fill an empty slot.

Example:
    >>> from vintagevision.escalation.evaluator import evaluate_escalation
    >>> evaluation = evaluate_escalation(analysis)
    >>> if evaluation.should_offer:
    ...     print(evaluation.urgency, evaluation.recommended_tier.name)
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, Field

from vintagevision.analysis.models import (
    CAMEL_MODEL_CONFIG,
    HIGH_AUTHENTICITY_RISKS,
    AnalysisResult,
)
from vintagevision.escalation.tiers import (
    DEFAULT_ESCALATION_CONFIG,
    FULL_AUTHENTICATION,
    PREMIUM_APPRAISAL,
    QUICK_REVIEW,
    EscalationConfig,
    ExpertServiceTier,
)

logger = logging.getLogger(__name__)

# Max/min ratio above which a value range signals uncertainty
WIDE_RANGE_RATIO = 3

EXPERT_REVIEW_URL = "/expert-review"


class Urgency(str, Enum):
    """How strongly expert review should be pushed, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _URGENCY_ORDER.index(self)

    def at_least(self, floor: Urgency) -> Urgency:
        """Return the higher of this urgency and ``floor``."""
        return floor if floor.rank > self.rank else self


_URGENCY_ORDER = [Urgency.LOW, Urgency.MEDIUM, Urgency.HIGH, Urgency.CRITICAL]


class ValueRange(BaseModel):
    """Estimated value range in cents."""

    min: int = 0
    max: int = 0

    model_config = {"frozen": True}

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class EscalationEvaluation(BaseModel):
    """Outcome of evaluating one analysis against one config.

    Attributes:
        should_offer: Whether to present the expert review option.
        urgency: How strongly to push it.
        reasons: Human-readable trigger explanations in trigger order.
        recommended_tier: Suggested tier, if any trigger picked one.
        all_available_tiers: Every configured tier, in order.
        estimated_value: The analysed value range.
    """

    should_offer: bool
    urgency: Urgency = Urgency.LOW
    reasons: list[str] = Field(default_factory=list)
    recommended_tier: ExpertServiceTier | None = None
    all_available_tiers: list[ExpertServiceTier] = Field(default_factory=list)
    estimated_value: ValueRange = Field(default_factory=ValueRange)

    model_config = CAMEL_MODEL_CONFIG


class EscalationResponse(BaseModel):
    """Evaluation plus the user-facing message shown alongside it."""

    evaluation: EscalationEvaluation
    message: str
    action_url: str | None = None

    model_config = CAMEL_MODEL_CONFIG


def format_dollars(cents: float) -> str:
    """Format a cent amount as a grouped dollar figure, e.g. 650000 -> "6,500"."""
    dollars = cents / 100
    if dollars == int(dollars):
        return f"{int(dollars):,}"
    return f"{dollars:,.3f}".rstrip("0").rstrip(".")


def evaluate_escalation(
    analysis: AnalysisResult,
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
) -> EscalationEvaluation:
    """Decide whether and how strongly to offer expert review.

    Triggers run in this order:

    1. Midpoint value at or above the premium threshold.
    2. Otherwise, midpoint value at or above the auto-escalate threshold.
    3. Confidence below the low-confidence threshold.
    4. High or very high authenticity risk (forces critical urgency).
    5. The model itself recommended an expert.
    6. Domain in the high-risk category set.
    7. Value range wider than 3x.

    Args:
        analysis: The AI identification to evaluate.
        config: Thresholds and tiers. Defaults to the standard config.

    Returns:
        EscalationEvaluation describing the offer.
    """
    reasons: list[str] = []
    urgency = Urgency.LOW
    tier: ExpertServiceTier | None = None

    value_min = analysis.value_min
    value_max = analysis.value_max
    mid_value = analysis.mid_value

    if mid_value >= config.premium_escalate_value_threshold:
        reasons.append(f"High-value item: ${format_dollars(mid_value)} estimated")
        urgency = urgency.at_least(Urgency.HIGH)
        tier = config.get_tier(PREMIUM_APPRAISAL)
    elif mid_value >= config.auto_escalate_value_threshold:
        reasons.append(f"Notable value: ${format_dollars(mid_value)} estimated")
        urgency = urgency.at_least(Urgency.MEDIUM)
        tier = config.get_tier(FULL_AUTHENTICATION)

    if analysis.confidence < config.low_confidence_threshold:
        reasons.append(f"Low AI confidence: {analysis.confidence * 100:.0f}%")
        urgency = urgency.at_least(Urgency.MEDIUM)
        if tier is None:
            tier = config.get_tier(QUICK_REVIEW)

    if analysis.authenticity_risk in HIGH_AUTHENTICITY_RISKS:
        reasons.append(f"High authenticity risk: {analysis.authenticity_risk.value}")
        urgency = Urgency.CRITICAL
        tier = config.get_tier(FULL_AUTHENTICATION)

    if analysis.expert_referral_recommended:
        detail = analysis.expert_referral_reason or "Verification advised"
        reasons.append(f"AI recommended expert review: {detail}")
        urgency = urgency.at_least(Urgency.MEDIUM)
        if tier is None:
            tier = config.get_tier(QUICK_REVIEW)

    if analysis.domain_expert in config.high_risk_categories:
        reasons.append(f"High-risk category: {analysis.domain_expert.value}")
        urgency = urgency.at_least(Urgency.MEDIUM)

    spread = value_max / max(value_min, 1)
    if spread > WIDE_RANGE_RATIO:
        reasons.append(f"Wide value range: {spread:.1f}x spread indicates uncertainty")
        if tier is None:
            tier = config.get_tier(QUICK_REVIEW)

    should_offer = bool(reasons) or mid_value >= config.auto_escalate_value_threshold

    logger.debug(
        f"Escalation for {analysis.name!r}: offer={should_offer}, urgency={urgency.value}, "
        f"tier={tier.id if tier else None}, reasons={len(reasons)}"
    )

    return EscalationEvaluation(
        should_offer=should_offer,
        urgency=urgency,
        reasons=reasons,
        recommended_tier=tier,
        all_available_tiers=list(config.tiers),
        estimated_value=ValueRange(min=value_min, max=value_max),
    )


_URGENCY_MESSAGES = {
    Urgency.CRITICAL: "⚠️ Expert review strongly recommended due to authenticity concerns.",
    Urgency.HIGH: "📋 Professional appraisal recommended for this high-value item.",
    Urgency.MEDIUM: "💡 Expert verification available to confirm this identification.",
    Urgency.LOW: "Expert review available for additional confidence.",
}

_NOT_OFFERED_MESSAGE = "AI analysis is confident. Expert review optional but available."


def get_escalation_options(
    analysis: AnalysisResult,
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
) -> EscalationResponse:
    """Evaluate an analysis and attach the message shown to the user.

    Args:
        analysis: The AI identification to evaluate.
        config: Thresholds and tiers.

    Returns:
        EscalationResponse with the evaluation, message and action URL.
    """
    evaluation = evaluate_escalation(analysis, config)

    if not evaluation.should_offer:
        return EscalationResponse(evaluation=evaluation, message=_NOT_OFFERED_MESSAGE)

    return EscalationResponse(
        evaluation=evaluation,
        message=_URGENCY_MESSAGES[evaluation.urgency],
        action_url=EXPERT_REVIEW_URL,
    )
