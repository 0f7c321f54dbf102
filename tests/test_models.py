"""Tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from vintagevision.analysis.models import (
    AnalysisResult,
    AuthenticityRisk,
    DomainExpert,
    ProductCategory,
)


class TestDomainExpert:
    """Tests for domain tag coercion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("ceramics", DomainExpert.CERAMICS),
            (" Watches ", DomainExpert.WATCHES),
            ("antiquities", DomainExpert.GENERAL),
            (None, DomainExpert.GENERAL),
            (DomainExpert.ART, DomainExpert.ART),
        ],
    )
    def test_coerce(self, value: object, expected: DomainExpert) -> None:
        assert DomainExpert.coerce(value) == expected

    @pytest.mark.parametrize("value", ["antiquities", "", None, 7])
    def test_parse_unknown_is_none(self, value: object) -> None:
        assert DomainExpert.parse(value) is None

    def test_parse_known(self) -> None:
        assert DomainExpert.parse(" Silver") == DomainExpert.SILVER

    def test_fifteen_domains(self) -> None:
        assert len(DomainExpert) == 15


class TestAnalysisResult:
    """Tests for AnalysisResult model."""

    def test_minimal(self) -> None:
        analysis = AnalysisResult(name="Brass Candlestick")

        assert analysis.domain_expert == DomainExpert.GENERAL
        assert analysis.authenticity_risk == AuthenticityRisk.NONE
        assert analysis.confidence == 0.0
        assert analysis.evidence_for == []
        assert analysis.value_min == 0
        assert analysis.mid_value == 0

    def test_camel_case_input(self) -> None:
        analysis = AnalysisResult.model_validate(
            {
                "name": "Rolex Submariner",
                "domainExpert": "watches",
                "productCategory": "vintage",
                "estimatedValueMin": 800000,
                "estimatedValueMax": 1200000,
                "authenticityRisk": "very_high",
                "expertReferralRecommended": True,
            }
        )

        assert analysis.domain_expert == DomainExpert.WATCHES
        assert analysis.product_category == ProductCategory.VINTAGE
        assert analysis.mid_value == 1000000
        assert analysis.expert_referral_recommended is True

    def test_null_fields_degrade(self) -> None:
        analysis = AnalysisResult.model_validate(
            {
                "name": "Quilt",
                "domainExpert": None,
                "productCategory": "heirloom",
                "authenticityRisk": None,
                "description": None,
                "evidenceFor": "Hand stitching",
                "evidenceAgainst": None,
            }
        )

        assert analysis.domain_expert == DomainExpert.GENERAL
        assert analysis.product_category is None
        assert analysis.authenticity_risk == AuthenticityRisk.NONE
        assert analysis.description == ""
        assert analysis.evidence_for == ["Hand stitching"]
        assert analysis.evidence_against == []

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisResult(name="x", confidence=1.5)

    def test_frozen(self) -> None:
        analysis = AnalysisResult(name="x")
        with pytest.raises(ValidationError):
            analysis.name = "y"

    def test_dump_by_alias(self) -> None:
        data = AnalysisResult(name="x", estimated_value_min=100).model_dump(by_alias=True)
        assert data["estimatedValueMin"] == 100
        assert "domainExpert" in data
