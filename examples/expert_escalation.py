#!/usr/bin/env python3
"""Expert escalation example.

This example demonstrates how to:
1. Decide whether an AI identification should offer expert review
2. Create an expert review request for the recommended tier
3. Match the request to the best available expert
4. Walk the request through review and store the expert's corrections

Usage:
    python examples/expert_escalation.py
"""

from __future__ import annotations

import asyncio
import sys
import tempfile
from pathlib import Path

# Ensure the parent directory is in the path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vintagevision.analysis.models import AnalysisResult, AuthenticityRisk, DomainExpert
from vintagevision.escalation import (
    CorrectionStore,
    Expert,
    ExpertCorrection,
    ExpertFeedback,
    create_expert_request,
    find_best_expert,
    get_escalation_options,
    process_expert_feedback,
)

EXPERTS = [
    Expert(
        id="exp-001",
        name="Margaret Chen",
        specializations=["ceramics", "glass"],
        certifications=["ASA"],
        rating=4.9,
        completed_reviews=212,
        average_turnaround=20,
    ),
    Expert(
        id="exp-002",
        name="Tom Alvarez",
        specializations=["watches", "jewelry"],
        certifications=["ISA", "GIA GG"],
        rating=4.7,
        completed_reviews=64,
        average_turnaround=30,
    ),
    Expert(
        id="exp-003",
        name="Priya Natarajan",
        specializations=["watches"],
        rating=5.0,
        completed_reviews=150,
        average_turnaround=12,
        is_active=False,
    ),
]


async def run() -> int:
    analysis = AnalysisResult(
        name="Rolex Submariner 5513",
        maker="Rolex",
        era="1970s",
        domain_expert=DomainExpert.WATCHES,
        estimated_value_min=800_000,
        estimated_value_max=1_200_000,
        confidence=0.72,
        authenticity_risk=AuthenticityRisk.HIGH,
        evidence_against=["Dial lume looks newer than the case"],
    )

    print("=" * 70)
    print(" EXPERT ESCALATION EXAMPLE ".center(70))
    print("=" * 70)

    # Step 1: Evaluate escalation
    print("\n[1] Evaluating escalation...")
    options = get_escalation_options(analysis)
    evaluation = options.evaluation
    print(f"    Offer review: {evaluation.should_offer}")
    print(f"    Urgency:      {evaluation.urgency.value}")
    for reason in evaluation.reasons:
        print(f"    - {reason}")
    print(f"    Message: {options.message}")

    if evaluation.recommended_tier is None:
        print("\n    No tier recommended; nothing to purchase.")
        return 0

    # Step 2: Create a request
    tier = evaluation.recommended_tier
    print(f"\n[2] Creating request for {tier.name} (${tier.price / 100:.2f})...")
    request = await create_expert_request(
        analysis_id="an-demo-1",
        user_id="user-42",
        tier_id=tier.id,
        analysis=analysis,
        user_notes="Inherited from my grandfather; papers missing.",
    )
    print(f"    Request: {request.id}")
    print(f"    Due:     {request.due_at:%Y-%m-%d %H:%M} UTC")

    # Step 3: Match an expert
    print("\n[3] Matching an expert...")
    request.mark_paid()
    match = find_best_expert(request, EXPERTS)
    if match is None:
        print("    No active expert available.")
        return 1
    print(f"    {match.expert.name} (score {match.match_score:.0f})")
    for reason in match.reasons:
        print(f"    - {reason}")
    request.assign_expert(match.expert)

    # Step 4: Review and feedback
    print("\n[4] Completing the review...")
    request.start_review()
    feedback = ExpertFeedback(
        request_id=request.id,
        expert_id=match.expert.id,
        corrections=[
            ExpertCorrection(
                field="era",
                original_value="1970s",
                corrected_value="1967-1969",
                explanation="Serial number range dates the case",
                confidence=0.95,
            ),
        ],
        overall_assessment="Genuine watch with a service dial.",
        authenticity_verified=True,
    )
    request.complete(feedback)

    with tempfile.TemporaryDirectory() as tmp:
        store = CorrectionStore(Path(tmp) / "corrections.json")
        outcome = await process_expert_feedback(feedback, sink=store)
        print(f"    Status:      {request.status.value}")
        print(f"    Corrections: {outcome.corrections} stored ({store.field_counts()})")

    print("\n" + "=" * 70)
    return 0


def main() -> int:
    """Run expert escalation example."""
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
