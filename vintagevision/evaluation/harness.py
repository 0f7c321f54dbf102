"""Evaluation harness for AI identification accuracy.

This module scores AI outputs against ground truth, aggregates item results
into an ``EvaluationReport`` and runs an analyzer over a dataset.

Report conventions:

- ``median_score`` is ``sorted(scores)[n // 2]``, i.e. the upper-middle
  element for an even number of items.
- ``overall_accuracy`` is the mean score gated at ``PASS_THRESHOLD``: below
  it the accuracy is reported as 0. ``average_score`` is never gated.

Example:
    >>> from vintagevision.evaluation.harness import EvaluationRunner
    >>> from vintagevision.analysis.analyzer import VisionAnalyzer
    >>> runner = EvaluationRunner(VisionAnalyzer())
    >>> report = runner.run(max_items=5)
    >>> print(f"Average: {report.average_score:.1f}")
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from vintagevision.analysis.models import AnalysisResult
from vintagevision.evaluation.ground_truth import (
    GroundTruthDataset,
    GroundTruthItem,
    load_ground_truth,
)
from vintagevision.evaluation.metrics import (
    FieldScores,
    classify_outcomes,
    improvement_suggestions,
    overall_score,
    score_fields,
)
from vintagevision.observability.tracing import trace_context

logger = logging.getLogger(__name__)

# Mean score needed for overall_accuracy to be reported
PASS_THRESHOLD = 70

MAX_FAILURE_PATTERNS = 10


class ItemTestResult(BaseModel):
    """Outcome of testing one ground truth item.

    Attributes:
        item_id: Ground truth item id.
        ground_truth: The item tested.
        ai_output: The AI analysis, or None if it failed.
        error: Failure message when no analysis was produced.
        scores: Per-field scores (all zero on error).
        overall_score: Weighted overall score.
        successes: Fields that matched perfectly.
        partial_matches: Fields that matched partially.
        failures: Fields that missed.
        improvement_suggestions: Follow-ups for the weakest fields.
        latency_ms: Time spent producing the analysis.
    """

    item_id: str
    ground_truth: GroundTruthItem
    ai_output: AnalysisResult | None = None
    error: str | None = None
    scores: FieldScores = Field(default_factory=FieldScores)
    overall_score: int = 0
    successes: list[str] = Field(default_factory=list)
    partial_matches: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)
    latency_ms: float = 0.0

    @property
    def has_error(self) -> bool:
        return self.error is not None


class CategoryScore(BaseModel):
    """Mean overall score for one domain."""

    count: int = 0
    avg_score: float = 0.0


class ScoreDistribution(BaseModel):
    """Item counts per score bucket."""

    excellent: int = 0
    good: int = 0
    acceptable: int = 0
    poor: int = 0
    failed: int = 0

    @classmethod
    def from_scores(cls, scores: list[int]) -> ScoreDistribution:
        return cls(
            excellent=sum(1 for s in scores if s >= 90),
            good=sum(1 for s in scores if 75 <= s < 90),
            acceptable=sum(1 for s in scores if 60 <= s < 75),
            poor=sum(1 for s in scores if 40 <= s < 60),
            failed=sum(1 for s in scores if s < 40),
        )

    @property
    def passing(self) -> int:
        """Items scoring acceptable or better."""
        return self.excellent + self.good + self.acceptable


class FailurePattern(BaseModel):
    """A failure recurring across items."""

    pattern: str
    count: int = 0
    examples: list[str] = Field(default_factory=list)


class EvaluationReport(BaseModel):
    """Aggregated results of one evaluation run.

    Attributes:
        run_id: Unique identifier for this run.
        timestamp: When the run started.
        dataset_path: Dataset used, if loaded from a file.
        total_items: Items selected for the run.
        items_tested: Items actually tested.
        items_skipped: Items selected but not tested.
        overall_accuracy: Mean score if it reaches the pass threshold, else 0.
        average_score: Mean overall score.
        median_score: ``sorted(scores)[n // 2]``.
        category_scores: Mean score per domain.
        score_distribution: Counts per score bucket.
        common_failures: Most frequent failure patterns.
        improvement_priorities: Highest-value areas to improve.
        results: Individual item results in dataset order.
        duration_seconds: Wall-clock duration.
    """

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    dataset_path: str | None = None
    total_items: int = 0
    items_tested: int = 0
    items_skipped: int = 0
    overall_accuracy: float = 0.0
    average_score: float = 0.0
    median_score: float = 0.0
    category_scores: dict[str, CategoryScore] = Field(default_factory=dict)
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    common_failures: list[FailurePattern] = Field(default_factory=list)
    improvement_priorities: list[str] = Field(default_factory=list)
    results: list[ItemTestResult] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return self.average_score >= PASS_THRESHOLD

    @property
    def pass_rate(self) -> float:
        """Share of tested items scoring acceptable or better."""
        if self.items_tested == 0:
            return 0.0
        return self.score_distribution.passing / self.items_tested

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.has_error)

    def get_result(self, item_id: str) -> ItemTestResult | None:
        for result in self.results:
            if result.item_id == item_id:
                return result
        return None

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(indent=indent)

    def save_json(self, path: Path | str) -> None:
        """Save the report to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        logger.info(f"Saved evaluation report to {path}")


def evaluate_item(
    item: GroundTruthItem,
    output: AnalysisResult,
    latency_ms: float = 0.0,
) -> ItemTestResult:
    """Score one AI output against its ground truth item."""
    scores = score_fields(item.expected, output)
    outcomes = classify_outcomes(scores)
    return ItemTestResult(
        item_id=item.id,
        ground_truth=item,
        ai_output=output,
        scores=scores,
        overall_score=overall_score(scores),
        successes=outcomes.successes,
        partial_matches=outcomes.partial_matches,
        failures=outcomes.failures,
        improvement_suggestions=improvement_suggestions(item, output, scores),
        latency_ms=latency_ms,
    )


def error_result(item: GroundTruthItem, error: str, latency_ms: float = 0.0) -> ItemTestResult:
    """Result for an item whose analysis failed; every field scores zero."""
    scores = FieldScores()
    return ItemTestResult(
        item_id=item.id,
        ground_truth=item,
        error=error,
        scores=scores,
        overall_score=0,
        failures=classify_outcomes(scores).failures,
        latency_ms=latency_ms,
    )


def median_score(scores: list[int]) -> float:
    """Element at index ``n // 2`` of the sorted scores (0 when empty).

    Example:
        >>> median_score([40, 10, 30, 20])
        30
    """
    if not scores:
        return 0
    return sorted(scores)[len(scores) // 2]


def _category_scores(results: list[ItemTestResult]) -> dict[str, CategoryScore]:
    totals: dict[str, list[int]] = {}
    for result in results:
        domain = result.ground_truth.expected.domain_expert.value
        totals.setdefault(domain, []).append(result.overall_score)
    return {
        domain: CategoryScore(count=len(scores), avg_score=sum(scores) / len(scores))
        for domain, scores in totals.items()
    }


def analyze_failure_patterns(results: list[ItemTestResult]) -> list[FailurePattern]:
    """Find the most common failures across items.

    Tracks weak name, maker and value scores per domain, weak style scores
    per expected style and low overall scores per difficulty.

    Returns:
        Up to 10 patterns, most frequent first.
    """
    patterns: dict[str, FailurePattern] = {}

    def note(key: str, item_id: str) -> None:
        pattern = patterns.setdefault(key, FailurePattern(pattern=key))
        pattern.count += 1
        pattern.examples.append(item_id)

    for result in results:
        expected = result.ground_truth.expected
        domain = expected.domain_expert.value

        if result.scores.name < 70:
            note(f"Name identification failure in {domain}", result.item_id)
        if result.scores.maker < 70 and expected.maker:
            note(f"Maker attribution failure in {domain}", result.item_id)
        if result.scores.value < 60:
            note(f"Value estimation off in {domain}", result.item_id)
        if result.scores.style < 70:
            note(f"Style identification failure for {expected.style}", result.item_id)
        if result.overall_score < 60:
            note(f'Difficulty level "{expected.difficulty.value}" items failing', result.item_id)

    ranked = sorted(patterns.values(), key=lambda p: p.count, reverse=True)
    return ranked[:MAX_FAILURE_PATTERNS]


def generate_improvement_priorities(results: list[ItemTestResult]) -> list[str]:
    """Suggest where accuracy work would pay off most."""
    if not results:
        return []

    priorities: list[str] = []

    categories = sorted(_category_scores(results).items(), key=lambda kv: kv[1].avg_score)
    weakest, weakest_score = categories[0]
    if weakest_score.avg_score < PASS_THRESHOLD:
        priorities.append(
            f"PRIORITY 1: Improve {weakest} knowledge "
            f"(avg score: {weakest_score.avg_score:.1f}%)"
        )

    avg_value = sum(r.scores.value for r in results) / len(results)
    if avg_value < PASS_THRESHOLD:
        priorities.append(
            f"PRIORITY: Improve value estimation accuracy (current avg: {avg_value:.1f}%). "
            "Consider integrating real-time auction data."
        )

    maker_results = [r for r in results if r.ground_truth.expected.maker]
    if maker_results:
        avg_maker = sum(r.scores.maker for r in maker_results) / len(maker_results)
        if avg_maker < PASS_THRESHOLD:
            priorities.append(
                f"PRIORITY: Improve maker attribution (current avg: {avg_maker:.1f}%). "
                "Build a maker marks database."
            )

    avg_features = sum(r.scores.features for r in results) / len(results)
    if avg_features < PASS_THRESHOLD:
        priorities.append(
            f"PRIORITY: Improve feature identification (current avg: {avg_features:.1f}%). "
            "Enhance visual analysis prompts."
        )

    return priorities


def build_report(
    results: list[ItemTestResult],
    total_items: int | None = None,
    run_id: str | None = None,
    timestamp: datetime | None = None,
    dataset_path: str | None = None,
    duration_seconds: float = 0.0,
) -> EvaluationReport:
    """Aggregate item results into a report.

    Args:
        results: Item results, in the order they should be reported.
        total_items: Items selected for the run; defaults to ``len(results)``.
        run_id: Optional run id.
        timestamp: Optional run start time.
        dataset_path: Dataset the items came from.
        duration_seconds: Wall-clock duration of the run.

    Returns:
        EvaluationReport; every aggregate is 0 for an empty result set.
    """
    scores = [r.overall_score for r in results]
    total = len(results) if total_items is None else total_items
    average = sum(scores) / len(scores) if scores else 0.0

    report = EvaluationReport(
        dataset_path=dataset_path,
        total_items=total,
        items_tested=len(results),
        items_skipped=max(0, total - len(results)),
        overall_accuracy=average if average >= PASS_THRESHOLD else 0.0,
        average_score=average,
        median_score=median_score(scores),
        category_scores=_category_scores(results),
        score_distribution=ScoreDistribution.from_scores(scores),
        common_failures=analyze_failure_patterns(results),
        improvement_priorities=generate_improvement_priorities(results),
        results=list(results),
        duration_seconds=duration_seconds,
    )
    if run_id:
        report.run_id = run_id
    if timestamp:
        report.timestamp = timestamp
    return report


class ItemAnalyzer(Protocol):
    """Anything that can produce an analysis for a ground truth item."""

    def analyze_item(self, item: GroundTruthItem) -> AnalysisResult: ...


@dataclass
class EvaluationProgress:
    """Progress tracking for evaluation runs.

    Attributes:
        total: Number of items to evaluate.
        completed: Items finished so far.
        errors: Items whose analysis failed.
        callback: Optional function called after each item.
    """

    total: int = 0
    completed: int = 0
    errors: int = 0
    callback: Callable[[EvaluationProgress], None] | None = None
    start_time: float = field(default_factory=time.perf_counter)
    last_item_id: str | None = None
    last_score: int | None = None

    def update(self, result: ItemTestResult) -> None:
        self.completed += 1
        if result.has_error:
            self.errors += 1
        self.last_item_id = result.item_id
        self.last_score = result.overall_score
        if self.callback:
            self.callback(self)

    @property
    def progress_pct(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100

    @property
    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self.start_time

    @property
    def eta_seconds(self) -> float | None:
        """Estimate time remaining in seconds."""
        if self.completed == 0:
            return None
        rate = self.completed / max(self.elapsed_seconds, 1e-9)
        return (self.total - self.completed) / rate


class EvaluationRunner:
    """Runs an analyzer over a ground truth dataset and scores the output.

    Analyses run in a thread pool; results are reported in dataset order
    regardless of completion order. A failing analysis becomes an error
    result with zero scores instead of aborting the run.

    Attributes:
        analyzer: Produces an AnalysisResult per item.
        dataset: Ground truth items.
        max_workers: Maximum parallel analyses.
    """

    def __init__(
        self,
        analyzer: ItemAnalyzer,
        dataset: GroundTruthDataset | None = None,
        dataset_path: Path | str | None = None,
        max_workers: int = 4,
    ) -> None:
        """Initialize the runner.

        Args:
            analyzer: Analyzer to evaluate.
            dataset: Dataset to use. Loaded from ``dataset_path`` when omitted.
            dataset_path: Dataset file; defaults to the built-in dataset.
            max_workers: Maximum parallel analyses.
        """
        self.analyzer = analyzer
        self.dataset_path = Path(dataset_path) if dataset_path else None
        self.dataset = dataset if dataset is not None else load_ground_truth(self.dataset_path)
        self.max_workers = max(1, max_workers)

        logger.info(
            f"Initialized EvaluationRunner with {len(self.dataset.items)} items, "
            f"max_workers={self.max_workers}"
        )

    def select_items(
        self,
        item_ids: list[str] | None = None,
        max_items: int | None = None,
        skip_items: list[str] | None = None,
    ) -> tuple[list[GroundTruthItem], list[GroundTruthItem]]:
        """Choose the items for a run.

        Returns:
            (candidates, to_test): items selected by id, and those left after
            applying ``skip_items`` then ``max_items``.
        """
        if item_ids:
            candidates = [i for i in self.dataset.items if i.id in item_ids]
            missing = set(item_ids) - {i.id for i in candidates}
            if missing:
                logger.warning(f"Item IDs not found: {sorted(missing)}")
        else:
            candidates = list(self.dataset.items)

        skip = set(skip_items or [])
        to_test = [i for i in candidates if i.id not in skip]
        if max_items is not None:
            to_test = to_test[:max_items]
        return candidates, to_test

    def run(
        self,
        item_ids: list[str] | None = None,
        max_items: int | None = None,
        skip_items: list[str] | None = None,
        progress_callback: Callable[[EvaluationProgress], None] | None = None,
    ) -> EvaluationReport:
        """Evaluate the dataset or a subset of it.

        Args:
            item_ids: Only evaluate these items.
            max_items: Cap on the number of items tested.
            skip_items: Items to leave out.
            progress_callback: Called after each item.

        Returns:
            EvaluationReport for the run.
        """
        start = time.perf_counter()
        started_at = datetime.now()
        run_id = str(uuid.uuid4())

        candidates, items = self.select_items(item_ids, max_items, skip_items)
        dataset_path = str(self.dataset_path) if self.dataset_path else None

        if not items:
            logger.warning("No items to evaluate")
            return build_report(
                [], total_items=len(candidates), run_id=run_id, dataset_path=dataset_path
            )

        logger.info(f"Starting evaluation run {run_id} with {len(items)} items")
        progress = EvaluationProgress(total=len(items), callback=progress_callback)
        by_id: dict[str, ItemTestResult] = {}

        with trace_context(
            name="evaluation_run",
            tags=["evaluation"],
            metadata={"run_id": run_id, "items": len(items)},
        ) as span:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_item = {executor.submit(self.run_single, item): item for item in items}

                for future in as_completed(future_to_item):
                    item = future_to_item[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.error(f"Failed to evaluate {item.id}: {e}")
                        result = error_result(item, str(e))

                    by_id[item.id] = result
                    progress.update(result)
                    logger.info(
                        f"[{progress.completed}/{progress.total}] {item.id}: "
                        f"Score {result.overall_score}%"
                    )

            ordered = [by_id[item.id] for item in items]
            report = build_report(
                ordered,
                total_items=len(candidates),
                run_id=run_id,
                timestamp=started_at,
                dataset_path=dataset_path,
                duration_seconds=time.perf_counter() - start,
            )
            span.update(
                output={
                    "average_score": report.average_score,
                    "overall_accuracy": report.overall_accuracy,
                    "errors": report.error_count,
                }
            )

        logger.info(
            f"Evaluation complete in {report.duration_seconds:.1f}s: "
            f"average {report.average_score:.1f}%, median {report.median_score}, "
            f"{report.error_count} errors"
        )
        return report

    def run_single(self, item: GroundTruthItem) -> ItemTestResult:
        """Analyze and score one item, converting analyzer failures to error results."""
        start = time.perf_counter()
        try:
            output = self.analyzer.analyze_item(item)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning(f"Analysis failed for {item.id}: {e}")
            return error_result(item, f"Analysis error: {e}", latency_ms=elapsed_ms)

        elapsed_ms = (time.perf_counter() - start) * 1000
        return evaluate_item(item, output, latency_ms=elapsed_ms)
