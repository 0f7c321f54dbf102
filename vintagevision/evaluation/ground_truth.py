"""Ground truth dataset models for identification accuracy evaluation.

Each ground truth item pairs a reference photograph with the analysis a
knowledgeable appraiser would give, plus the alternative spellings and
keywords the scorers accept as partial credit.

Example:
    >>> from vintagevision.evaluation.ground_truth import load_ground_truth
    >>> dataset = load_ground_truth()
    >>> for item in dataset.items:
    ...     print(f"{item.id}: {item.expected.name}")
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from vintagevision.analysis.models import CAMEL_MODEL_CONFIG, DomainExpert, ProductCategory

logger = logging.getLogger(__name__)

# Path to the built-in ground truth dataset
DATASET_PATH = Path(__file__).parent / "datasets" / "ground_truth.json"


class Difficulty(str, Enum):
    """How hard an item is to identify correctly."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class EraRange(BaseModel):
    """Inclusive year range an identification should fall within."""

    start: int
    end: int

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_order(self) -> EraRange:
        if self.end < self.start:
            raise ValueError(f"Era range end {self.end} is before start {self.start}")
        return self

    def contains(self, year: float) -> bool:
        return self.start <= year <= self.end

    def distance(self, year: float) -> float:
        """Years from ``year`` to the nearest boundary (0 when inside)."""
        if self.contains(year):
            return 0.0
        return min(abs(year - self.start), abs(year - self.end))


class ExpectedAnalysis(BaseModel):
    """The reference identification for one ground truth item.

    Attributes:
        name: Canonical item name.
        name_keywords: Distinctive words for partial name credit.
        maker: Expected maker, or None when unattributed.
        maker_alternatives: Accepted alternative maker names.
        era: Period as display text.
        era_range: Acceptable year range.
        style: Expected style.
        style_alternatives: Accepted alternative style names.
        category: Expected product category.
        domain_expert: Expected domain tag.
        origin_region: Expected origin.
        value_min: Low end of the market value (cents).
        value_max: High end of the market value (cents).
        value_source: Where the value range comes from.
        must_identify_features: Features a good analysis mentions.
        red_flags: Signs of reproductions to watch for.
        authentication_markers: Marks or traits that authenticate the piece.
        difficulty: Identification difficulty.
        test_reason: Why the item is in the dataset.
    """

    name: str
    name_keywords: list[str] = Field(default_factory=list)
    maker: str | None = None
    maker_alternatives: list[str] = Field(default_factory=list)
    era: str = ""
    era_range: EraRange
    style: str = ""
    style_alternatives: list[str] = Field(default_factory=list)
    category: ProductCategory
    domain_expert: DomainExpert
    origin_region: str = ""
    value_min: int = 0
    value_max: int = 0
    value_source: str = ""
    must_identify_features: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    authentication_markers: list[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM
    test_reason: str = ""

    model_config = CAMEL_MODEL_CONFIG

    @field_validator(
        "name_keywords",
        "maker_alternatives",
        "style_alternatives",
        "must_identify_features",
        "red_flags",
        "authentication_markers",
        mode="before",
    )
    @classmethod
    def ensure_list(cls, v: list[str] | None) -> list[str]:
        """Ensure list fields are never None."""
        if v is None:
            return []
        return v

    @model_validator(mode="after")
    def check_value_range(self) -> ExpectedAnalysis:
        if self.value_max < self.value_min:
            raise ValueError(
                f"value_max ({self.value_max}) must not be below value_min ({self.value_min})"
            )
        return self


class GroundTruthItem(BaseModel):
    """A reference image with its expected identification.

    Attributes:
        id: Unique item id, e.g. "furn-001".
        image_url: Remote URL or local path of the reference photo.
        image_description: What the photo shows, for humans.
        expected: The reference identification.
    """

    id: str = Field(..., min_length=1)
    image_url: str
    image_description: str = ""
    expected: ExpectedAnalysis

    model_config = CAMEL_MODEL_CONFIG


class GroundTruthDataset(BaseModel):
    """Collection of ground truth items.

    Attributes:
        version: Dataset version string.
        description: Description of the dataset.
        items: Ground truth items.
    """

    version: str = Field(default="1.0.0", description="Dataset version")
    description: str = Field(
        default="Curated ground truth for antique and vintage identification accuracy",
        description="Dataset description",
    )
    items: list[GroundTruthItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self) -> GroundTruthDataset:
        seen: set[str] = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"Duplicate ground truth item id: {item.id}")
            seen.add(item.id)
        return self

    def get_by_id(self, item_id: str) -> GroundTruthItem | None:
        """Get an item by its id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def get_by_domain(self, domain: DomainExpert) -> list[GroundTruthItem]:
        return [i for i in self.items if i.expected.domain_expert == domain]

    def get_by_difficulty(self, difficulty: Difficulty) -> list[GroundTruthItem]:
        return [i for i in self.items if i.expected.difficulty == difficulty]

    def statistics(self) -> dict[str, object]:
        """Get dataset statistics."""
        if not self.items:
            return {"total": 0}

        domains: dict[str, int] = {}
        difficulties: dict[str, int] = {}
        for item in self.items:
            dom = item.expected.domain_expert.value
            diff = item.expected.difficulty.value
            domains[dom] = domains.get(dom, 0) + 1
            difficulties[diff] = difficulties.get(diff, 0) + 1

        return {
            "total": len(self.items),
            "domains": domains,
            "difficulties": difficulties,
            "with_maker": sum(1 for i in self.items if i.expected.maker),
            "with_authentication_markers": sum(
                1 for i in self.items if i.expected.authentication_markers
            ),
        }


def load_ground_truth(path: Path | str | None = None) -> GroundTruthDataset:
    """Load a ground truth dataset from a JSON file.

    Args:
        path: Optional path to the dataset file. Defaults to the
            built-in dataset.

    Returns:
        GroundTruthDataset containing all items. Empty if the file is missing.

    Raises:
        pydantic.ValidationError: If the dataset fails validation.
    """
    dataset_path = Path(path) if path else DATASET_PATH

    if not dataset_path.exists():
        logger.warning(f"Ground truth dataset not found at {dataset_path}")
        return GroundTruthDataset()

    with dataset_path.open() as f:
        data = json.load(f)

    dataset = GroundTruthDataset.model_validate(data)
    logger.debug(f"Loaded {len(dataset.items)} ground truth items from {dataset_path}")
    return dataset


def save_ground_truth(dataset: GroundTruthDataset, path: Path | str | None = None) -> None:
    """Save a ground truth dataset to a JSON file.

    Args:
        dataset: The dataset to save.
        path: Optional output path. Defaults to the built-in dataset location.
    """
    dataset_path = Path(path) if path else DATASET_PATH
    dataset_path.parent.mkdir(parents=True, exist_ok=True)

    with dataset_path.open("w") as f:
        json.dump(dataset.model_dump(mode="json", by_alias=True), f, indent=2)

    logger.info(f"Saved {len(dataset.items)} ground truth items to {dataset_path}")
