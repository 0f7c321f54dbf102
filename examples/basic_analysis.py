#!/usr/bin/env python3
"""Basic item identification example.

This example demonstrates how to:
1. Identify an item from a photo with the vision model
2. Display the identification and value estimate
3. Check whether expert review should be offered

Usage:
    python examples/basic_analysis.py <image path or URL> [notes]
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the parent directory is in the path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vintagevision.analysis.analyzer import AnalysisError, VisionAnalyzer
from vintagevision.config import ConfigurationError
from vintagevision.escalation import get_escalation_options
from vintagevision.escalation.evaluator import format_dollars


def main() -> int:
    """Run basic identification example."""
    if len(sys.argv) < 2:
        print(__doc__)
        return 1
    image = sys.argv[1]
    notes = sys.argv[2] if len(sys.argv) > 2 else None

    print("=" * 70)
    print(" BASIC ITEM IDENTIFICATION EXAMPLE ".center(70))
    print("=" * 70)

    # Step 1: Identify
    print(f"\n[1] Identifying {image}...")
    print("    (This calls the vision model - may take a few seconds)")
    try:
        result = VisionAnalyzer().identify(image, notes=notes)
    except (AnalysisError, ConfigurationError) as e:
        print(f"\n    ERROR: {e}")
        print("\n    Make sure OPENAI_API_KEY or ANTHROPIC_API_KEY is set in your environment.")
        return 1

    # Step 2: Display
    print("\n[2] Identification:")
    print(f"    Name:       {result.name}")
    print(f"    Maker:      {result.maker or 'unknown'}")
    print(f"    Era:        {result.era or 'unknown'}")
    print(f"    Domain:     {result.domain_expert.value}")
    print(
        f"    Value:      ${format_dollars(result.value_min)} - "
        f"${format_dollars(result.value_max)}"
    )
    print(f"    Confidence: {result.confidence:.0%}")
    print(f"    Risk:       {result.authenticity_risk.value}")
    for line in result.evidence_for:
        print(f"    + {line}")
    for line in result.evidence_against:
        print(f"    - {line}")

    # Step 3: Escalation
    print("\n[3] Expert review:")
    options = get_escalation_options(result)
    print(f"    {options.message}")

    print("\n" + "=" * 70)
    print(" EXAMPLE COMPLETE ".center(70))
    print("=" * 70)

    return 0


if __name__ == "__main__":
    sys.exit(main())
