"""Scoring and evaluation harness for AI identification accuracy."""

from vintagevision.evaluation.ground_truth import (
    Difficulty,
    EraRange,
    ExpectedAnalysis,
    GroundTruthDataset,
    GroundTruthItem,
    load_ground_truth,
    save_ground_truth,
)
from vintagevision.evaluation.harness import (
    EvaluationProgress,
    EvaluationReport,
    EvaluationRunner,
    ItemTestResult,
    build_report,
    evaluate_item,
)
from vintagevision.evaluation.metrics import (
    FIELD_WEIGHTS,
    FieldScores,
    overall_score,
    score_fields,
)
from vintagevision.evaluation.mock import MockAnalyzer, generate_mock_output, run_mock_evaluation

__all__ = [
    "FIELD_WEIGHTS",
    "Difficulty",
    "EraRange",
    "EvaluationProgress",
    "EvaluationReport",
    "EvaluationRunner",
    "ExpectedAnalysis",
    "FieldScores",
    "GroundTruthDataset",
    "GroundTruthItem",
    "ItemTestResult",
    "MockAnalyzer",
    "build_report",
    "evaluate_item",
    "generate_mock_output",
    "load_ground_truth",
    "overall_score",
    "run_mock_evaluation",
    "save_ground_truth",
    "score_fields",
]
