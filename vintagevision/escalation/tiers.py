"""Expert service tiers and the escalation configuration value object.

The configuration is immutable and passed explicitly to every rule that
needs it. ``DEFAULT_ESCALATION_CONFIG`` is the documented default instance,
built once at import.

Example:
    >>> from vintagevision.escalation.tiers import DEFAULT_ESCALATION_CONFIG
    >>> DEFAULT_ESCALATION_CONFIG.require_tier("quick-review").price
    2500
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from vintagevision.analysis.models import CAMEL_MODEL_CONFIG, DomainExpert
from vintagevision.escalation.exceptions import InvalidTierError

QUICK_REVIEW = "quick-review"
FULL_AUTHENTICATION = "full-authentication"
PREMIUM_APPRAISAL = "premium-appraisal"

# Tier ids the escalation rules refer to by name
REFERENCED_TIER_IDS = (QUICK_REVIEW, FULL_AUTHENTICATION, PREMIUM_APPRAISAL)

# Fallback turnaround when a request names a tier the config does not know
DEFAULT_TURNAROUND_HOURS = 48


class ExpertServiceTier(BaseModel):
    """A purchasable level of human review.

    Attributes:
        id: Stable tier identifier.
        name: Display name.
        description: One-line summary.
        price: Price in cents.
        turnaround_hours: Promised turnaround.
        includes: What the service delivers.
        recommended_for: Situations the tier suits.
    """

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    price: int = Field(..., ge=0, description="Price in cents")
    turnaround_hours: int = Field(..., gt=0)
    includes: tuple[str, ...] = ()
    recommended_for: tuple[str, ...] = ()

    model_config = {**CAMEL_MODEL_CONFIG, "frozen": True}


DEFAULT_TIERS: tuple[ExpertServiceTier, ...] = (
    ExpertServiceTier(
        id=QUICK_REVIEW,
        name="Quick Expert Review",
        description="Rapid verification by a certified appraiser",
        price=2_500,
        turnaround_hours=24,
        includes=(
            "Expert verification of AI identification",
            "Confidence validation",
            "Brief authentication notes",
        ),
        recommended_for=(
            "Items valued $100-$500",
            "Common antique categories",
            "Quick buy/sell decisions",
        ),
    ),
    ExpertServiceTier(
        id=FULL_AUTHENTICATION,
        name="Full Authentication",
        description="Comprehensive expert authentication with documentation",
        price=15_000,
        turnaround_hours=48,
        includes=(
            "Detailed authentication report",
            "Maker/period verification",
            "Condition assessment",
            "Market value validation",
            "Written certificate of authenticity",
        ),
        recommended_for=(
            "Items valued $500-$5,000",
            "Pieces requiring authentication",
            "Insurance documentation",
        ),
    ),
    ExpertServiceTier(
        id=PREMIUM_APPRAISAL,
        name="Premium Written Appraisal",
        description="Full USPAP-compliant appraisal by certified appraiser",
        price=50_000,
        turnaround_hours=168,
        includes=(
            "USPAP-compliant written appraisal",
            "Detailed provenance research",
            "Comparable sales analysis",
            "Insurance/estate documentation",
            "Legal-grade authentication",
            "Follow-up consultation",
        ),
        recommended_for=(
            "Items valued $5,000+",
            "Estate planning",
            "Insurance claims",
            "Major auction consignment",
        ),
    ),
)


class EscalationConfig(BaseModel):
    """Thresholds and service tiers consulted by the escalation rules.

    Attributes:
        auto_escalate_value_threshold: Midpoint value (cents) at which review is offered.
        premium_escalate_value_threshold: Midpoint value (cents) that warrants a premium appraisal.
        low_confidence_threshold: AI confidence below which review is offered.
        authentication_concern_threshold: Authentication confidence threshold.
            Carried for host applications; no built-in rule reads it.
        high_risk_categories: Domains that always get a review offer.
        tiers: Ordered service tiers.
    """

    auto_escalate_value_threshold: int = 10_000
    premium_escalate_value_threshold: int = 500_000
    low_confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    authentication_concern_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    high_risk_categories: frozenset[DomainExpert] = frozenset(
        {
            DomainExpert.WATCHES,
            DomainExpert.JEWELRY,
            DomainExpert.SILVER,
            DomainExpert.ART,
            DomainExpert.CERAMICS,
        }
    )
    tiers: tuple[ExpertServiceTier, ...] = DEFAULT_TIERS

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_tiers(self) -> EscalationConfig:
        """Require unique tier ids and every tier the rules reference."""
        ids = [t.id for t in self.tiers]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate tier ids: {', '.join(duplicates)}")

        missing = [tid for tid in REFERENCED_TIER_IDS if tid not in ids]
        if missing:
            raise ValueError(f"Escalation config is missing required tiers: {', '.join(missing)}")
        return self

    @property
    def tier_ids(self) -> list[str]:
        """Tier ids in configured order."""
        return [t.id for t in self.tiers]

    def get_tier(self, tier_id: str) -> ExpertServiceTier | None:
        """Look up a tier by id."""
        for tier in self.tiers:
            if tier.id == tier_id:
                return tier
        return None

    def require_tier(self, tier_id: str) -> ExpertServiceTier:
        """Look up a tier by id, failing fast on unknown ids.

        Raises:
            InvalidTierError: If no tier has that id.
        """
        tier = self.get_tier(tier_id)
        if tier is None:
            raise InvalidTierError(tier_id, available=self.tier_ids)
        return tier

    def turnaround_for(self, tier_id: str) -> int:
        """Nominal turnaround for a tier, falling back to 48 hours."""
        tier = self.get_tier(tier_id)
        return tier.turnaround_hours if tier is not None else DEFAULT_TURNAROUND_HOURS


DEFAULT_ESCALATION_CONFIG = EscalationConfig()
