"""Tests for per-item accuracy metrics."""

import pytest

from vintagevision.analysis.models import AnalysisResult
from vintagevision.evaluation.ground_truth import load_ground_truth
from vintagevision.evaluation.metrics import (
    FIELD_WEIGHTS,
    FieldScores,
    classify_outcomes,
    improvement_suggestions,
    overall_score,
    score_fields,
)

ALL_FIELDS = list(FIELD_WEIGHTS)


class TestOverallScore:
    """Tests for the weighted overall score."""

    def test_weights_sum_to_100(self) -> None:
        assert sum(FIELD_WEIGHTS.values()) == 100

    def test_perfect(self) -> None:
        assert overall_score(FieldScores(**{f: 100 for f in ALL_FIELDS})) == 100

    def test_zero(self) -> None:
        assert overall_score(FieldScores()) == 0

    @pytest.mark.parametrize(
        ("field", "expected"),
        [("name", 15), ("value", 20), ("era", 10), ("authentication", 5)],
    )
    def test_single_field_contributes_weight(self, field: str, expected: int) -> None:
        assert overall_score(FieldScores(**{field: 100})) == expected

    def test_rounds_half_up(self) -> None:
        # 50 * 5 / 100 = 2.5
        assert overall_score(FieldScores(category=50)) == 3

    def test_custom_weights(self) -> None:
        scores = FieldScores(name=100, maker=0)
        assert overall_score(scores, weights={"name": 1, "maker": 1}) == 50

    def test_zero_total_weight(self) -> None:
        assert overall_score(FieldScores(name=100), weights={"name": 0}) == 0


class TestClassifyOutcomes:
    """Tests for success/partial/failure buckets."""

    def test_buckets(self) -> None:
        scores = FieldScores(name=100, maker=90, era=70, style=69, value=0)

        outcomes = classify_outcomes(scores)

        assert "name: Perfect match" in outcomes.successes
        assert outcomes.partial_matches == ["maker: 90% match", "era: 70% match"]
        assert "style: Only 69% - needs improvement" in outcomes.failures
        assert "value: Complete miss" in outcomes.failures

    def test_every_field_classified_once(self) -> None:
        outcomes = classify_outcomes(FieldScores(name=100, era=80))
        total = len(outcomes.successes) + len(outcomes.partial_matches) + len(outcomes.failures)
        assert total == len(ALL_FIELDS)


class TestScoreFields:
    """Tests for running all scorers over one item."""

    @pytest.fixture
    def item(self):
        return load_ground_truth().get_by_id("furn-001")

    def test_exact_copy_scores_high(self, item) -> None:
        expected = item.expected
        result = AnalysisResult(
            name=expected.name,
            maker=expected.maker,
            era=expected.era,
            style=expected.style,
            product_category=expected.category,
            domain_expert=expected.domain_expert,
            origin_region=expected.origin_region,
            estimated_value_min=expected.value_min,
            estimated_value_max=expected.value_max,
            description=" ".join(expected.must_identify_features),
            evidence_for=list(expected.authentication_markers),
        )

        scores = score_fields(expected, result)

        assert scores.name == 100
        assert scores.maker == 100
        assert scores.value == 100
        assert scores.features == 100
        assert scores.authentication == 100
        assert overall_score(scores) >= 90

    def test_improvement_suggestions(self, item) -> None:
        result = AnalysisResult(name="Office chair", maker="Steelcase")

        suggestions = improvement_suggestions(item, result, score_fields(item.expected, result))

        assert any(s.startswith("Name identification failed") for s in suggestions)
        assert any("Herman Miller" in s for s in suggestions)
        assert any(s.startswith("Value estimation off. AI: $0-$0") for s in suggestions)
        assert any(s.startswith("Missing key features") for s in suggestions)
