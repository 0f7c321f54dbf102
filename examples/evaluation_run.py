#!/usr/bin/env python3
"""Evaluation pipeline example.

This example demonstrates how to:
1. Load the built-in ground truth dataset
2. Score mock AI outputs at two accuracy levels
3. Compare the runs for regressions
4. Save markdown and JSON reports

Usage:
    python examples/evaluation_run.py [output_dir]
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the parent directory is in the path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vintagevision.evaluation.ground_truth import load_ground_truth
from vintagevision.evaluation.mock import run_mock_evaluation
from vintagevision.evaluation.reporting import (
    compare_reports,
    format_comparison_report,
    format_report,
    save_report,
)


def main() -> int:
    """Run evaluation example."""
    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("eval_reports")

    print("=" * 70)
    print(" EVALUATION PIPELINE EXAMPLE ".center(70))
    print("=" * 70)

    # Step 1: Load dataset
    print("\n[1] Loading ground truth dataset...")
    dataset = load_ground_truth()
    for key, value in dataset.statistics().items():
        print(f"    {key}: {value}")

    # Step 2: Baseline and current runs
    print("\n[2] Scoring mock outputs...")
    baseline = run_mock_evaluation(dataset, accuracy=0.9, seed=7)
    current = run_mock_evaluation(dataset, accuracy=0.6, seed=7)
    print(f"    Baseline (90%): {baseline.average_score:.1f}% average")
    print(f"    Current  (60%): {current.average_score:.1f}% average")

    print("\n" + format_report(current))

    # Step 3: Compare
    print("\n[3] Comparing with baseline...")
    comparison = compare_reports(current, baseline)
    print(format_comparison_report(comparison))

    # Step 4: Save
    print("[4] Saving reports...")
    saved = save_report(current, output_dir, basename="mock_current")
    for fmt, path in saved.items():
        print(f"    {fmt}: {path}")

    return 1 if comparison["has_regressions"] else 0


if __name__ == "__main__":
    sys.exit(main())
