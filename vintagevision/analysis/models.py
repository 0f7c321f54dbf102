"""Pydantic data models for AI item identification results.

This module contains the closed category enumerations shared by the
escalation rules, expert matching and accuracy scoring, plus the
``AnalysisResult`` snapshot produced by the vision model.

Models use camelCase aliases so the JSON emitted by the vision model and
consumed by the web client validates directly, while Python callers keep
snake_case keyword arguments.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

CAMEL_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class DomainExpert(str, Enum):
    """Item category tag that selects specialist rules and experts."""

    FURNITURE = "furniture"
    CERAMICS = "ceramics"
    GLASS = "glass"
    SILVER = "silver"
    JEWELRY = "jewelry"
    WATCHES = "watches"
    ART = "art"
    TEXTILES = "textiles"
    TOYS = "toys"
    BOOKS = "books"
    TOOLS = "tools"
    LIGHTING = "lighting"
    ELECTRONICS = "electronics"
    VEHICLES = "vehicles"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> DomainExpert | None:
        """Map a free-form tag onto the enumeration, or None for an unknown tag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None

    @classmethod
    def coerce(cls, value: Any) -> DomainExpert:
        """Map a free-form tag onto the enumeration, defaulting to GENERAL."""
        parsed = cls.parse(value)
        return parsed if parsed is not None else cls.GENERAL


class ProductCategory(str, Enum):
    """Broad age/market classification of an item."""

    ANTIQUE = "antique"
    VINTAGE = "vintage"
    MODERN_BRANDED = "modern_branded"
    MODERN_GENERIC = "modern_generic"


class AuthenticityRisk(str, Enum):
    """Likelihood that an item is a reproduction or fake."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


HIGH_AUTHENTICITY_RISKS = frozenset({AuthenticityRisk.HIGH, AuthenticityRisk.VERY_HIGH})


class AnalysisResult(BaseModel):
    """Immutable snapshot of one AI identification of an item.

    Value estimates are integers in minor currency units (cents). Only
    ``name`` is strictly required; everything else degrades to an empty
    or neutral value so partially-filled model output still validates.

    Attributes:
        name: Identified item name.
        maker: Attributed maker or brand, if any.
        era: Free-text period, e.g. "circa 1956" or "1920s".
        style: Design style or movement.
        product_category: Antique/vintage/modern classification.
        domain_expert: Category tag; unknown tags become ``general``.
        origin_region: Country or region of manufacture.
        estimated_value_min: Low end of the value estimate (cents).
        estimated_value_max: High end of the value estimate (cents).
        confidence: Model confidence in the identification (0.0-1.0).
        authenticity_risk: Assessed reproduction/fake risk.
        expert_referral_recommended: Whether the model itself suggests an expert.
        expert_referral_reason: Optional explanation for the referral.
        description: What the model observed about this specific item.
        historical_context: Background on the maker, pattern or period.
        evidence_for: Observations supporting the identification.
        evidence_against: Observations that conflict with it.
    """

    name: str = Field(..., description="Identified item name")
    maker: str | None = None
    era: str | None = None
    style: str | None = None
    product_category: ProductCategory | None = None
    domain_expert: DomainExpert = DomainExpert.GENERAL
    origin_region: str | None = None
    estimated_value_min: int | None = None
    estimated_value_max: int | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    authenticity_risk: AuthenticityRisk = AuthenticityRisk.NONE
    expert_referral_recommended: bool = False
    expert_referral_reason: str | None = None
    description: str = ""
    historical_context: str = ""
    evidence_for: list[str] = Field(default_factory=list)
    evidence_against: list[str] = Field(default_factory=list)

    model_config = {**CAMEL_MODEL_CONFIG, "frozen": True}

    @field_validator("domain_expert", mode="before")
    @classmethod
    def coerce_domain(cls, v: Any) -> DomainExpert:
        """Fall back to the general domain for missing or unknown tags."""
        return DomainExpert.coerce(v)

    @field_validator("product_category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> ProductCategory | None:
        """Drop unrecognised product categories instead of rejecting the result."""
        if v is None or isinstance(v, ProductCategory):
            return v
        try:
            return ProductCategory(str(v).strip().lower())
        except ValueError:
            return None

    @field_validator("authenticity_risk", mode="before")
    @classmethod
    def default_risk(cls, v: Any) -> Any:
        """Treat a missing risk as none."""
        if v is None or v == "":
            return AuthenticityRisk.NONE
        return v

    @field_validator("description", "historical_context", mode="before")
    @classmethod
    def ensure_text(cls, v: Any) -> str:
        """Ensure text fields are never None."""
        return "" if v is None else v

    @field_validator("evidence_for", "evidence_against", mode="before")
    @classmethod
    def ensure_list(cls, v: list[str] | str | None) -> list[str]:
        """Ensure list fields are never None."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v else []
        return v

    @property
    def value_min(self) -> int:
        """Low value estimate with missing treated as zero."""
        return self.estimated_value_min or 0

    @property
    def value_max(self) -> int:
        """High value estimate with missing treated as zero."""
        return self.estimated_value_max or 0

    @property
    def mid_value(self) -> float:
        """Midpoint of the value estimate (cents)."""
        return (self.value_min + self.value_max) / 2
