"""Tests for ground truth dataset module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from vintagevision.analysis.models import DomainExpert, ProductCategory
from vintagevision.evaluation.ground_truth import (
    Difficulty,
    EraRange,
    ExpectedAnalysis,
    GroundTruthDataset,
    GroundTruthItem,
    load_ground_truth,
    save_ground_truth,
)


def make_expected(**overrides: object) -> ExpectedAnalysis:
    fields: dict[str, object] = {
        "name": "Roseville Pinecone Vase",
        "maker": "Roseville Pottery",
        "era_range": EraRange(start=1931, end=1953),
        "category": ProductCategory.ANTIQUE,
        "domain_expert": DomainExpert.CERAMICS,
        "value_min": 20000,
        "value_max": 60000,
    }
    fields.update(overrides)
    return ExpectedAnalysis(**fields)


class TestEraRange:
    """Tests for EraRange."""

    def test_contains_inclusive(self) -> None:
        era = EraRange(start=1930, end=1950)
        assert era.contains(1930)
        assert era.contains(1950)
        assert not era.contains(1951)

    def test_distance(self) -> None:
        era = EraRange(start=1930, end=1950)
        assert era.distance(1940) == 0
        assert era.distance(1925) == 5
        assert era.distance(1962) == 12

    def test_reversed_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EraRange(start=1950, end=1930)


class TestExpectedAnalysis:
    """Tests for ExpectedAnalysis model."""

    def test_camel_case_input(self) -> None:
        expected = ExpectedAnalysis.model_validate(
            {
                "name": "Tiffany Lamp",
                "makerAlternatives": ["Tiffany Studios"],
                "eraRange": {"start": 1900, "end": 1920},
                "category": "antique",
                "domainExpert": "lighting",
                "valueMin": 100,
                "valueMax": 200,
                "difficulty": "expert",
            }
        )
        assert expected.maker_alternatives == ["Tiffany Studios"]
        assert expected.difficulty == Difficulty.EXPERT

    def test_null_lists_default_empty(self) -> None:
        expected = make_expected(red_flags=None, name_keywords=None)
        assert expected.red_flags == []
        assert expected.name_keywords == []

    def test_value_range_order(self) -> None:
        with pytest.raises(ValidationError):
            make_expected(value_min=500, value_max=100)


class TestGroundTruthDataset:
    """Tests for GroundTruthDataset."""

    @pytest.fixture
    def dataset(self) -> GroundTruthDataset:
        return GroundTruthDataset(
            items=[
                GroundTruthItem(id="ceram-1", image_url="https://x/1.jpg", expected=make_expected()),
                GroundTruthItem(
                    id="watch-1",
                    image_url="https://x/2.jpg",
                    expected=make_expected(
                        domain_expert=DomainExpert.WATCHES,
                        maker=None,
                        difficulty=Difficulty.HARD,
                    ),
                ),
            ]
        )

    def test_get_by_id(self, dataset: GroundTruthDataset) -> None:
        assert dataset.get_by_id("watch-1").expected.domain_expert == DomainExpert.WATCHES
        assert dataset.get_by_id("nope") is None

    def test_filters(self, dataset: GroundTruthDataset) -> None:
        assert [i.id for i in dataset.get_by_domain(DomainExpert.CERAMICS)] == ["ceram-1"]
        assert [i.id for i in dataset.get_by_difficulty(Difficulty.HARD)] == ["watch-1"]

    def test_statistics(self, dataset: GroundTruthDataset) -> None:
        stats = dataset.statistics()
        assert stats["total"] == 2
        assert stats["domains"] == {"ceramics": 1, "watches": 1}
        assert stats["with_maker"] == 1

    def test_empty_statistics(self) -> None:
        assert GroundTruthDataset().statistics() == {"total": 0}

    def test_duplicate_ids_rejected(self) -> None:
        item = GroundTruthItem(id="dup", image_url="https://x/1.jpg", expected=make_expected())
        with pytest.raises(ValidationError, match="Duplicate"):
            GroundTruthDataset(items=[item, item])

    def test_save_and_load(self, dataset: GroundTruthDataset, tmp_path: Path) -> None:
        path = tmp_path / "gt.json"

        save_ground_truth(dataset, path)
        loaded = load_ground_truth(path)

        assert [i.id for i in loaded.items] == ["ceram-1", "watch-1"]
        assert '"imageUrl"' in path.read_text()
        assert loaded.items[0].expected.era_range == EraRange(start=1931, end=1953)


class TestBuiltInDataset:
    """Tests for the bundled dataset."""

    def test_loads(self) -> None:
        dataset = load_ground_truth()
        assert len(dataset.items) == 8
        assert dataset.items[0].id == "furn-001"

    def test_values_are_cents(self) -> None:
        item = load_ground_truth().get_by_id("furn-001")
        assert item.expected.value_min == 450000

    def test_missing_file_returns_empty(self, tmp_path: Path) -> None:
        assert load_ground_truth(tmp_path / "missing.json").items == []
