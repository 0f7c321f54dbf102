"""CLI interface for running identification accuracy evaluations.

Usage:
    # Run full evaluation against the configured vision model
    python -m vintagevision.evaluation

    # Self-test the harness with mock outputs
    python -m vintagevision.evaluation --mock --accuracy 0.85 --seed 42

    # Run a subset of items
    python -m vintagevision.evaluation --items furn-001,jwl-001

    # Save reports and compare with a baseline
    python -m vintagevision.evaluation --output reports/ --format all --compare baseline.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from vintagevision.analysis.analyzer import VisionAnalyzer
from vintagevision.config import get_config
from vintagevision.evaluation.harness import EvaluationProgress, EvaluationReport, EvaluationRunner
from vintagevision.evaluation.mock import DEFAULT_ACCURACY, MockAnalyzer
from vintagevision.evaluation.reporting import (
    REPORT_FORMATS,
    compare_reports,
    format_comparison_report,
    format_failure_details,
    format_report,
    generate_json_export,
    generate_markdown_report,
    load_report,
    save_report,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Evaluate AI item identification against the ground truth dataset.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run full evaluation
  python -m vintagevision.evaluation

  # Mock run at 85% accuracy, reproducible
  python -m vintagevision.evaluation --mock --accuracy 0.85 --seed 42

  # Evaluate specific items
  python -m vintagevision.evaluation --items furn-001,jwl-001

  # Fail the build below 75% average
  python -m vintagevision.evaluation --fail-under 75

  # Compare with baseline run
  python -m vintagevision.evaluation --compare baseline.json
        """,
    )

    parser.add_argument(
        "--mock",
        action="store_true",
        help="Score generated outputs instead of calling the vision model",
    )

    parser.add_argument(
        "--accuracy",
        "-a",
        type=float,
        default=DEFAULT_ACCURACY,
        help=f"Mock output accuracy 0-1 (default: {DEFAULT_ACCURACY})",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible mock runs",
    )

    parser.add_argument(
        "--dataset",
        "-d",
        type=Path,
        default=None,
        help="Path to ground truth dataset (default: built-in dataset)",
    )

    parser.add_argument(
        "--items",
        "-i",
        type=str,
        default=None,
        help="Comma-separated list of item IDs to evaluate (default: all)",
    )

    parser.add_argument(
        "--max-items",
        "-n",
        type=int,
        default=None,
        help="Evaluate at most N items",
    )

    parser.add_argument(
        "--skip",
        type=str,
        default=None,
        help="Comma-separated list of item IDs to skip",
    )

    parser.add_argument(
        "--workers",
        "-w",
        type=int,
        default=4,
        help="Number of parallel workers (default: 4; mock runs use 1)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output directory for reports (default: print to stdout)",
    )

    parser.add_argument(
        "--format",
        "-f",
        choices=[*REPORT_FORMATS, "all"],
        default="text",
        help="Report format (default: text)",
    )

    parser.add_argument(
        "--compare",
        "-c",
        type=Path,
        default=None,
        help="Path to baseline report JSON for comparison",
    )

    parser.add_argument(
        "--fail-under",
        type=float,
        default=None,
        help="Exit with error code if the average score is below this value",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress all output except errors",
    )

    return parser.parse_args(argv)


def split_ids(value: str | None) -> list[str] | None:
    """Split a comma-separated id list, dropping blanks."""
    if not value:
        return None
    ids = [part.strip() for part in value.split(",") if part.strip()]
    return ids or None


def progress_callback(progress: EvaluationProgress) -> None:
    """Print progress updates."""
    eta = progress.eta_seconds
    eta_str = f"{eta:.0f}s remaining" if eta is not None else "calculating..."

    print(
        f"\rProgress: {progress.completed}/{progress.total} "
        f"({progress.progress_pct:.0f}%) | "
        f"last {progress.last_item_id}: {progress.last_score}% | "
        f"{progress.errors} errors | {eta_str}",
        end="",
        flush=True,
    )


def render(report: EvaluationReport, fmt: str) -> str:
    """Render a report in one output format."""
    if fmt == "json":
        return generate_json_export(report)
    if fmt == "markdown":
        return generate_markdown_report(report)
    return format_report(report)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)

    # Configure logging level
    if args.quiet:
        logging.getLogger().setLevel(logging.ERROR)
    elif args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not 0.0 <= args.accuracy <= 1.0:
        logger.error(f"--accuracy must be between 0 and 1, got {args.accuracy}")
        return 1

    try:
        if args.mock:
            logger.info(f"Mock evaluation at {args.accuracy:.0%} accuracy (seed={args.seed})")
            analyzer = MockAnalyzer(accuracy=args.accuracy, seed=args.seed)
            workers = 1
        else:
            config = get_config()
            config.llm.validate()
            analyzer = VisionAnalyzer(config=config)
            workers = args.workers

        runner = EvaluationRunner(
            analyzer=analyzer,
            dataset_path=args.dataset,
            max_workers=workers,
        )

        logger.info("Starting evaluation run...")
        report = runner.run(
            item_ids=split_ids(args.items),
            max_items=args.max_items,
            skip_items=split_ids(args.skip),
            progress_callback=progress_callback if not args.quiet else None,
        )

        # Clear progress line
        if not args.quiet:
            print()

        comparison = None
        if args.compare:
            if args.compare.exists():
                baseline = load_report(args.compare)
                comparison = compare_reports(report, baseline)
                if not args.quiet:
                    print("\n" + format_comparison_report(comparison))
            else:
                logger.warning(f"Baseline file not found: {args.compare}")

        if args.output:
            formats = REPORT_FORMATS if args.format == "all" else (args.format,)
            save_report(report, args.output, formats=formats)

            if comparison:
                comparison_path = args.output / "comparison.md"
                comparison_path.write_text(format_comparison_report(comparison))
                logger.info(f"Saved comparison report to {comparison_path}")
        elif not args.quiet:
            if args.format == "all":
                print(format_report(report))
            else:
                print(render(report, args.format))

        if not args.quiet and args.format in ("text", "all"):
            details = format_failure_details(report)
            if details:
                print(details)

        if not args.quiet:
            verdict = "PASSED" if report.passed else "FAILED"
            print(f"\n{verdict} ({report.average_score:.1f}% average score)")

        if args.fail_under is not None and report.average_score < args.fail_under:
            logger.error(
                f"Average score {report.average_score:.1f}% is below --fail-under "
                f"{args.fail_under:.1f}%"
            )
            return 1

        if comparison and comparison.get("has_regressions"):
            logger.error("Regressions detected compared to baseline")
            return 1

        return 0

    except KeyboardInterrupt:
        logger.info("Evaluation interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Evaluation failed: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
