"""Reporting utilities for evaluation results.

This module renders an ``EvaluationReport`` as plain text, markdown or
JSON, saves reports to disk and compares a run against a baseline for
regression detection.

Example:
    >>> from vintagevision.evaluation.reporting import format_report
    >>> print(format_report(report))
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from vintagevision.evaluation.harness import EvaluationReport, ItemTestResult

logger = logging.getLogger(__name__)

RULE = "=" * 80

# Score drop (points) flagged as a regression
REGRESSION_THRESHOLD = 5.0

# Item score counted as passing (acceptable or better)
ITEM_PASS_SCORE = 60

# Items below this score are listed in the failure analysis
DETAIL_FAILURE_SCORE = 50

REPORT_FORMATS = ("text", "markdown", "json")

DISTRIBUTION_LABELS = (
    ("excellent", "Excellent (90-100)"),
    ("good", "Good (75-89)"),
    ("acceptable", "Acceptable (60-74)"),
    ("poor", "Poor (40-59)"),
    ("failed", "Failed (<40)"),
)


def format_report(report: EvaluationReport, max_failure_patterns: int = 5) -> str:
    """Render a report as fixed-width plain text for the console.

    Args:
        report: The evaluation report.
        max_failure_patterns: Number of failure patterns to list.

    Returns:
        Plain-text report.
    """
    dist = report.score_distribution
    lines = [
        RULE,
        f"{'VINTAGEVISION EVALUATION REPORT':^80}".rstrip(),
        RULE,
        f"Timestamp: {report.timestamp.isoformat()}",
        f"Items Tested: {report.items_tested} of {report.total_items}",
        "",
        "OVERALL RESULTS",
        "---------------",
        f"Average Score: {report.average_score:.1f}%",
        f"Median Score:  {report.median_score:.1f}%",
        f"Pass Rate:     {report.pass_rate * 100:.1f}%",
    ]
    if report.error_count:
        lines.append(f"Errors:        {report.error_count}")

    lines += ["", "SCORE DISTRIBUTION", "------------------"]
    for key, label in DISTRIBUTION_LABELS:
        lines.append(f"{label + ':':<20}{getattr(dist, key)} items")

    lines += ["", "CATEGORY PERFORMANCE", "--------------------"]
    for category, score in report.category_scores.items():
        lines.append(f"{category:<15} {score.avg_score:>5.1f}% ({score.count} items)")

    lines += ["", "COMMON FAILURE PATTERNS", "-----------------------"]
    for failure in report.common_failures[:max_failure_patterns]:
        lines.append(f"• {failure.pattern} ({failure.count} occurrences)")

    lines += ["", "IMPROVEMENT PRIORITIES", "----------------------"]
    for priority in report.improvement_priorities:
        lines.append(f"• {priority}")

    lines += ["", RULE]
    return "\n".join(lines)


def format_failure_details(report: EvaluationReport, max_items: int = 10) -> str:
    """List the worst-scoring items with expected and actual names.

    Returns:
        Plain text, or an empty string when no item scored below 50.
    """
    failed = [r for r in report.results if r.overall_score < DETAIL_FAILURE_SCORE]
    if not failed:
        return ""

    lines = [RULE, "DETAILED FAILURE ANALYSIS", RULE, ""]
    for result in failed[:max_items]:
        got = result.ai_output.name if result.ai_output else "N/A"
        lines.append(f"[{result.item_id}] Expected: {result.ground_truth.expected.name}")
        lines.append(f"           Got: {got}")
        lines.append(f"           Score: {result.overall_score}%")
        if result.error:
            lines.append(f"           Error: {result.error}")
        lines.append("")
    return "\n".join(lines)


def generate_markdown_report(
    report: EvaluationReport,
    include_item_table: bool = True,
    max_failed_items: int = 20,
) -> str:
    """Generate a markdown report from evaluation results.

    Args:
        report: The evaluation report.
        include_item_table: Whether to include per-item field scores.
        max_failed_items: Maximum number of failed items shown in detail.

    Returns:
        Markdown-formatted report string.
    """
    lines: list[str] = []

    timestamp_str = report.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    lines.append(f"# VintageVision Evaluation Report - {timestamp_str}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Run ID**: `{report.run_id}`")
    lines.append(f"- **Dataset**: {report.dataset_path or 'Default'}")
    lines.append(f"- **Items Tested**: {report.items_tested} of {report.total_items}")
    lines.append(f"- **Average Score**: {report.average_score:.1f}%")
    lines.append(f"- **Median Score**: {report.median_score:.1f}%")
    lines.append(f"- **Overall Accuracy**: {report.overall_accuracy:.1f}%")
    lines.append(f"- **Pass Rate**: {report.pass_rate:.1%}")
    if report.error_count > 0:
        lines.append(f"- **Errors**: {report.error_count}")
    lines.append(f"- **Duration**: {report.duration_seconds:.1f}s")
    lines.append("")

    lines.append("## Score Distribution")
    lines.append("")
    lines.append("| Bucket | Items |")
    lines.append("|--------|-------|")
    for key, label in DISTRIBUTION_LABELS:
        lines.append(f"| {label} | {getattr(report.score_distribution, key)} |")
    lines.append("")

    if report.category_scores:
        lines.append("## Category Performance")
        lines.append("")
        lines.append("| Category | Avg Score | Items |")
        lines.append("|----------|-----------|-------|")
        for category, score in sorted(report.category_scores.items()):
            lines.append(f"| {category} | {score.avg_score:.1f}% | {score.count} |")
        lines.append("")

    if report.common_failures:
        lines.append("## Common Failure Patterns")
        lines.append("")
        for failure in report.common_failures:
            examples = ", ".join(failure.examples[:3])
            lines.append(f"- {failure.pattern} ({failure.count}x; e.g. {examples})")
        lines.append("")

    if report.improvement_priorities:
        lines.append("## Improvement Priorities")
        lines.append("")
        for priority in report.improvement_priorities:
            lines.append(f"1. {priority}")
        lines.append("")

    failed = [r for r in report.results if r.overall_score < ITEM_PASS_SCORE]
    if failed:
        lines.append("## Failed Items")
        lines.append("")
        for result in failed[:max_failed_items]:
            lines.append(_format_failed_item(result))
            lines.append("")
        if len(failed) > max_failed_items:
            lines.append(f"*... and {len(failed) - max_failed_items} more failed items*")
            lines.append("")

    if include_item_table and report.results:
        lines.append("## Item Results")
        lines.append("")
        lines.append(
            "| Item | Overall | Name | Maker | Era | Style | Value | Features | Status |"
        )
        lines.append(
            "|------|---------|------|-------|-----|-------|-------|----------|--------|"
        )
        for result in report.results:
            s = result.scores
            status = "⚠️" if result.has_error else (
                "✅" if result.overall_score >= ITEM_PASS_SCORE else "❌"
            )
            lines.append(
                f"| {result.item_id} | {result.overall_score}% | {s.name} | {s.maker} | "
                f"{s.era} | {s.style} | {s.value} | {s.features} | {status} |"
            )
        lines.append("")

    lines.append("---")
    lines.append(f"*Generated at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}*")

    return "\n".join(lines)


def _format_failed_item(result: ItemTestResult) -> str:
    expected = result.ground_truth.expected
    lines = [f"### {result.item_id}: {expected.name} ({result.overall_score}%)", ""]

    if result.error:
        lines.append(f"**Error:** {result.error}")
    elif result.ai_output is not None:
        lines.append(f"**AI said:** {result.ai_output.name}")

    if result.failures:
        lines.append("")
        lines.append("**Failures:**")
        for failure in result.failures:
            lines.append(f"- {failure}")

    if result.improvement_suggestions:
        lines.append("")
        lines.append("**Suggestions:**")
        for suggestion in result.improvement_suggestions:
            lines.append(f"- {suggestion}")

    return "\n".join(lines)


def generate_json_export(report: EvaluationReport) -> str:
    """Generate JSON export of evaluation results."""
    return report.to_json()


def load_report(path: Path | str) -> EvaluationReport:
    """Load a report previously saved as JSON."""
    return EvaluationReport.model_validate_json(Path(path).read_text())


def save_report(
    report: EvaluationReport,
    output_dir: Path | str,
    basename: str | None = None,
    formats: tuple[str, ...] | list[str] = ("json", "markdown"),
) -> dict[str, Path]:
    """Save an evaluation report to files.

    Args:
        report: The evaluation report to save.
        output_dir: Directory to save reports.
        basename: Base filename (default: derived from run_id).
        formats: Any of "text", "markdown" and "json".

    Returns:
        Dictionary mapping format to saved file path.

    Raises:
        ValueError: If an unknown format is requested.
    """
    unknown = set(formats) - set(REPORT_FORMATS)
    if unknown:
        raise ValueError(f"Unknown report format(s): {sorted(unknown)}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    basename = basename or f"eval_{report.run_id[:8]}"
    saved_files: dict[str, Path] = {}

    if "json" in formats:
        json_path = output_dir / f"{basename}.json"
        json_path.write_text(generate_json_export(report))
        saved_files["json"] = json_path

    if "markdown" in formats:
        md_path = output_dir / f"{basename}.md"
        md_path.write_text(generate_markdown_report(report))
        saved_files["markdown"] = md_path

    if "text" in formats:
        txt_path = output_dir / f"{basename}.txt"
        txt_path.write_text(format_report(report))
        saved_files["text"] = txt_path

    for fmt, path in saved_files.items():
        logger.info(f"Saved {fmt} report to {path}")
    return saved_files


def _delta(current: float, baseline: float) -> dict[str, float]:
    return {"current": current, "baseline": baseline, "delta": current - baseline}


def compare_reports(
    current: EvaluationReport,
    baseline: EvaluationReport,
    threshold: float = REGRESSION_THRESHOLD,
) -> dict[str, object]:
    """Compare two evaluation runs for regression detection.

    Aggregate and per-domain scores that drop by more than ``threshold``
    points count as regressions; rises of the same size as improvements.
    Items that cross the pass line in either direction are listed.

    Args:
        current: Current evaluation report.
        baseline: Baseline report to compare against.
        threshold: Score change (points) considered significant.

    Returns:
        Comparison dict with metric deltas, regressions, improvements,
        item changes and ``has_regressions``.
    """
    metric_deltas: dict[str, dict[str, float]] = {
        "average_score": _delta(current.average_score, baseline.average_score),
        "median_score": _delta(current.median_score, baseline.median_score),
        "overall_accuracy": _delta(current.overall_accuracy, baseline.overall_accuracy),
    }
    for category in sorted(set(current.category_scores) & set(baseline.category_scores)):
        metric_deltas[f"category:{category}"] = _delta(
            current.category_scores[category].avg_score,
            baseline.category_scores[category].avg_score,
        )

    regressions: list[str] = []
    improvements: list[str] = []
    for name, info in metric_deltas.items():
        change = f"{name}: {info['baseline']:.1f} → {info['current']:.1f} ({info['delta']:+.1f})"
        if info["delta"] < -threshold:
            regressions.append(change)
        elif info["delta"] > threshold:
            improvements.append(change)

    baseline_items = {r.item_id: r for r in baseline.results}
    item_changes: dict[str, dict[str, object]] = {}
    for result in current.results:
        previous = baseline_items.get(result.item_id)
        if previous is None:
            continue
        now_passing = result.overall_score >= ITEM_PASS_SCORE
        was_passing = previous.overall_score >= ITEM_PASS_SCORE
        if now_passing != was_passing:
            item_changes[result.item_id] = {
                "status_change": "improved" if now_passing else "regressed",
                "current_overall": result.overall_score,
                "baseline_overall": previous.overall_score,
            }

    return {
        "current_run_id": current.run_id,
        "baseline_run_id": baseline.run_id,
        "current_timestamp": current.timestamp.isoformat(),
        "baseline_timestamp": baseline.timestamp.isoformat(),
        "metric_deltas": metric_deltas,
        "regressions": regressions,
        "improvements": improvements,
        "item_changes": item_changes,
        "has_regressions": len(regressions) > 0,
    }


def format_comparison_report(comparison: dict[str, object]) -> str:
    """Format a comparison from compare_reports() as markdown."""
    lines: list[str] = []

    lines.append("# Evaluation Run Comparison")
    lines.append("")
    lines.append(f"- **Current Run**: `{comparison['current_run_id']}`")
    lines.append(f"- **Baseline Run**: `{comparison['baseline_run_id']}`")
    lines.append("")

    status = (
        "⚠️ REGRESSIONS DETECTED" if comparison.get("has_regressions") else "✅ No Regressions"
    )
    lines.append(f"## Status: {status}")
    lines.append("")

    lines.append("## Metric Changes")
    lines.append("")
    lines.append("| Metric | Baseline | Current | Delta |")
    lines.append("|--------|----------|---------|-------|")
    metric_deltas = comparison.get("metric_deltas", {})
    if isinstance(metric_deltas, dict):
        for name, info in metric_deltas.items():
            delta = float(info["delta"])
            icon = "📈" if delta > 0 else "📉" if delta < 0 else "➡️"
            lines.append(
                f"| {name} | {float(info['baseline']):.1f} | {float(info['current']):.1f} | "
                f"{icon} {delta:+.1f} |"
            )
    lines.append("")

    regressions = comparison.get("regressions", [])
    if isinstance(regressions, list) and regressions:
        lines.append("## Regressions")
        lines.append("")
        for reg in regressions:
            lines.append(f"- ❌ {reg}")
        lines.append("")

    improvements = comparison.get("improvements", [])
    if isinstance(improvements, list) and improvements:
        lines.append("## Improvements")
        lines.append("")
        for imp in improvements:
            lines.append(f"- ✅ {imp}")
        lines.append("")

    item_changes = comparison.get("item_changes", {})
    if isinstance(item_changes, dict) and item_changes:
        lines.append("## Item Status Changes")
        lines.append("")
        lines.append("| Item | Change | Baseline | Current |")
        lines.append("|------|--------|----------|---------|")
        for item_id, change in item_changes.items():
            icon = "📈" if change["status_change"] == "improved" else "📉"
            lines.append(
                f"| {item_id} | {icon} {change['status_change']} | "
                f"{change['baseline_overall']}% | {change['current_overall']}% |"
            )
        lines.append("")

    return "\n".join(lines)
