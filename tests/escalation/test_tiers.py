"""Tests for expert service tiers and the escalation config."""

import pytest
from pydantic import ValidationError

from vintagevision.escalation.exceptions import InvalidTierError
from vintagevision.escalation.tiers import (
    DEFAULT_ESCALATION_CONFIG,
    DEFAULT_TIERS,
    FULL_AUTHENTICATION,
    PREMIUM_APPRAISAL,
    QUICK_REVIEW,
    EscalationConfig,
    ExpertServiceTier,
)


class TestDefaultTiers:
    """Tests for the built-in tier table."""

    def test_order_and_ids(self) -> None:
        assert DEFAULT_ESCALATION_CONFIG.tier_ids == [
            QUICK_REVIEW,
            FULL_AUTHENTICATION,
            PREMIUM_APPRAISAL,
        ]

    @pytest.mark.parametrize(
        ("tier_id", "price", "hours"),
        [(QUICK_REVIEW, 2500, 24), (FULL_AUTHENTICATION, 15000, 48), (PREMIUM_APPRAISAL, 50000, 168)],
    )
    def test_prices_and_turnaround(self, tier_id: str, price: int, hours: int) -> None:
        tier = DEFAULT_ESCALATION_CONFIG.require_tier(tier_id)
        assert tier.price == price
        assert tier.turnaround_hours == hours

    def test_default_thresholds(self) -> None:
        config = EscalationConfig()
        assert config.auto_escalate_value_threshold == 10000
        assert config.premium_escalate_value_threshold == 500000
        assert config.low_confidence_threshold == 0.6
        assert len(config.high_risk_categories) == 5

    def test_config_is_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_ESCALATION_CONFIG.low_confidence_threshold = 0.1


class TestTierLookup:
    def test_get_unknown_tier(self) -> None:
        assert DEFAULT_ESCALATION_CONFIG.get_tier("gold") is None

    def test_require_unknown_tier(self) -> None:
        with pytest.raises(InvalidTierError) as exc_info:
            DEFAULT_ESCALATION_CONFIG.require_tier("gold")

        assert exc_info.value.tier_id == "gold"
        assert "Invalid tier ID: 'gold'" in str(exc_info.value)
        assert QUICK_REVIEW in str(exc_info.value)

    def test_turnaround_fallback(self) -> None:
        assert DEFAULT_ESCALATION_CONFIG.turnaround_for(PREMIUM_APPRAISAL) == 168
        assert DEFAULT_ESCALATION_CONFIG.turnaround_for("gold") == 48


class TestConfigValidation:
    """The rules refer to three tiers by id, so configs must provide them."""

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate tier ids"):
            EscalationConfig(tiers=DEFAULT_TIERS + (DEFAULT_TIERS[0],))

    def test_missing_referenced_tier_rejected(self) -> None:
        with pytest.raises(ValidationError, match=PREMIUM_APPRAISAL):
            EscalationConfig(tiers=DEFAULT_TIERS[:2])

    def test_extra_tier_allowed(self) -> None:
        extra = ExpertServiceTier(id="museum-loan", name="Museum Loan", price=100000, turnaround_hours=336)

        config = EscalationConfig(tiers=DEFAULT_TIERS + (extra,))

        assert config.turnaround_for("museum-loan") == 336

    def test_invalid_tier_values(self) -> None:
        with pytest.raises(ValidationError):
            ExpertServiceTier(id="x", name="X", price=-1, turnaround_hours=24)
        with pytest.raises(ValidationError):
            ExpertServiceTier(id="x", name="X", price=100, turnaround_hours=0)
