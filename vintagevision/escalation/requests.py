"""Expert review request lifecycle and feedback processing.

A request moves through a fixed state machine::

    pending_payment -> pending_assignment -> assigned -> in_review -> completed

and may be cancelled from any non-terminal state. Storage of requests is
the host application's concern; this module defines the record shape, its
legal transitions and the corrections contract handed to a learning sink.

Example:
    >>> request = asyncio.run(
    ...     create_expert_request("an-1", "user-1", "quick-review", analysis)
    ... )
    >>> request.mark_paid()
    >>> request.assign_expert(expert)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_validator

from vintagevision.analysis.models import CAMEL_MODEL_CONFIG, AnalysisResult, DomainExpert
from vintagevision.escalation.evaluator import ValueRange
from vintagevision.escalation.exceptions import EscalationError, InvalidTransitionError
from vintagevision.escalation.tiers import DEFAULT_ESCALATION_CONFIG, EscalationConfig

if TYPE_CHECKING:
    from vintagevision.escalation.matching import Expert
    from vintagevision.escalation.sinks import CorrectionSink

logger = logging.getLogger(__name__)


class ExpertRequestStatus(str, Enum):
    """Lifecycle state of an expert review request."""

    PENDING_PAYMENT = "pending_payment"
    PENDING_ASSIGNMENT = "pending_assignment"
    ASSIGNED = "assigned"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({ExpertRequestStatus.COMPLETED, ExpertRequestStatus.CANCELLED})

ALLOWED_TRANSITIONS: dict[ExpertRequestStatus, frozenset[ExpertRequestStatus]] = {
    ExpertRequestStatus.PENDING_PAYMENT: frozenset(
        {ExpertRequestStatus.PENDING_ASSIGNMENT, ExpertRequestStatus.CANCELLED}
    ),
    ExpertRequestStatus.PENDING_ASSIGNMENT: frozenset(
        {ExpertRequestStatus.ASSIGNED, ExpertRequestStatus.CANCELLED}
    ),
    ExpertRequestStatus.ASSIGNED: frozenset(
        {ExpertRequestStatus.IN_REVIEW, ExpertRequestStatus.CANCELLED}
    ),
    ExpertRequestStatus.IN_REVIEW: frozenset(
        {ExpertRequestStatus.COMPLETED, ExpertRequestStatus.CANCELLED}
    ),
    ExpertRequestStatus.COMPLETED: frozenset(),
    ExpertRequestStatus.CANCELLED: frozenset(),
}


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC, reading a naive datetime as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExpertCorrection(BaseModel):
    """One field an expert corrected in the AI analysis.

    Attributes:
        field: Name of the corrected analysis field, e.g. "maker".
        original_value: What the AI said.
        corrected_value: What the expert says it should be.
        explanation: Why the expert made the change.
        confidence: Expert's confidence in the correction (0.0-1.0).
    """

    field: str
    original_value: Any = None
    corrected_value: Any = None
    explanation: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = CAMEL_MODEL_CONFIG


class ExpertFeedback(BaseModel):
    """Expert's findings for a completed review."""

    request_id: str
    expert_id: str
    corrections: list[ExpertCorrection] = Field(default_factory=list)
    overall_assessment: str = ""
    confidence_level: float = Field(default=1.0, ge=0.0, le=1.0)
    authenticity_verified: bool = False
    additional_notes: str | None = None
    market_insights: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    model_config = CAMEL_MODEL_CONFIG

    @property
    def has_corrections(self) -> bool:
        return bool(self.corrections)


class FeedbackOutcome(BaseModel):
    """Result of folding expert feedback back into the system."""

    success: bool = True
    learning_updated: bool = False
    corrections: int = 0

    model_config = CAMEL_MODEL_CONFIG


class ExpertRequest(BaseModel):
    """One purchased human review.

    Tier and item details are snapshotted at creation and never re-derived,
    so later config or analysis changes do not alter an existing request.
    """

    id: str
    analysis_id: str
    user_id: str
    tier_id: str
    tier_name: str
    price: int
    status: ExpertRequestStatus = ExpertRequestStatus.PENDING_PAYMENT
    assigned_expert_id: str | None = None
    assigned_expert_name: str | None = None
    submitted_at: datetime
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    due_at: datetime
    item_name: str
    item_category: DomainExpert = DomainExpert.GENERAL
    estimated_value: ValueRange = Field(default_factory=ValueRange)
    user_notes: str | None = None
    expert_notes: str | None = None
    expert_corrections: list[ExpertCorrection] = Field(default_factory=list)
    final_report: str | None = None

    model_config = CAMEL_MODEL_CONFIG

    @field_validator("submitted_at", "assigned_at", "completed_at", "due_at")
    @classmethod
    def normalise_timezone(cls, v: datetime | None) -> datetime | None:
        """Store every timestamp in UTC; naive values are read as UTC."""
        return None if v is None else as_utc(v)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Whether the due date has passed without completion."""
        if self.is_terminal:
            return False
        return as_utc(now or utc_now()) > self.due_at

    def can_transition(self, target: ExpertRequestStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def _transition(self, target: ExpertRequestStatus) -> None:
        if not self.can_transition(target):
            raise InvalidTransitionError(self.status.value, target.value)
        logger.info(f"Expert request {self.id}: {self.status.value} -> {target.value}")
        self.status = target

    def mark_paid(self) -> None:
        """Record payment; the request then waits for an expert."""
        self._transition(ExpertRequestStatus.PENDING_ASSIGNMENT)

    def assign_expert(self, expert: Expert, at: datetime | None = None) -> None:
        """Assign an expert to a paid request.

        Raises:
            InvalidTransitionError: If the request is not awaiting assignment.
        """
        self._transition(ExpertRequestStatus.ASSIGNED)
        self.assigned_expert_id = expert.id
        self.assigned_expert_name = expert.name
        self.assigned_at = as_utc(at or utc_now())

    def start_review(self) -> None:
        self._transition(ExpertRequestStatus.IN_REVIEW)

    def complete(
        self,
        feedback: ExpertFeedback,
        final_report: str | None = None,
        at: datetime | None = None,
    ) -> None:
        """Finalize the request with the expert's feedback.

        Args:
            feedback: Feedback for this request.
            final_report: Optional rendered report for the customer.
            at: Completion time; defaults to now.

        Raises:
            EscalationError: If the feedback belongs to another request.
            InvalidTransitionError: If the request is not in review.
        """
        if feedback.request_id != self.id:
            raise EscalationError(
                f"Feedback for request {feedback.request_id} cannot complete request {self.id}"
            )
        self._transition(ExpertRequestStatus.COMPLETED)
        notes = [feedback.overall_assessment]
        if feedback.additional_notes:
            notes.append(feedback.additional_notes)
        self.expert_notes = "\n\n".join(n for n in notes if n) or None
        self.expert_corrections = list(feedback.corrections)
        self.final_report = final_report
        self.completed_at = as_utc(at or utc_now())

    def cancel(self) -> None:
        """Cancel a request that has not yet finished."""
        self._transition(ExpertRequestStatus.CANCELLED)


def generate_request_id(now: datetime) -> str:
    """Build an id of the form ``exp-<epoch-ms>-<9 chars>``."""
    return f"exp-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


async def create_expert_request(
    analysis_id: str,
    user_id: str,
    tier_id: str,
    analysis: AnalysisResult,
    user_notes: str | None = None,
    config: EscalationConfig = DEFAULT_ESCALATION_CONFIG,
    now: datetime | None = None,
) -> ExpertRequest:
    """Create a new expert review request awaiting payment.

    Args:
        analysis_id: Id of the analysis under review.
        user_id: Purchasing user.
        tier_id: Service tier to purchase.
        analysis: The analysis being reviewed; item details are copied from it.
        user_notes: Optional notes from the user to the expert.
        config: Escalation config holding the tiers.
        now: Submission time; defaults to the current UTC time.

    Returns:
        The new ExpertRequest in ``pending_payment``.

    Raises:
        InvalidTierError: If ``tier_id`` is not a configured tier.
    """
    tier = config.require_tier(tier_id)
    submitted_at = as_utc(now or utc_now())

    request = ExpertRequest(
        id=generate_request_id(submitted_at),
        analysis_id=analysis_id,
        user_id=user_id,
        tier_id=tier.id,
        tier_name=tier.name,
        price=tier.price,
        submitted_at=submitted_at,
        due_at=submitted_at + timedelta(hours=tier.turnaround_hours),
        item_name=analysis.name,
        item_category=analysis.domain_expert,
        estimated_value=ValueRange(min=analysis.value_min, max=analysis.value_max),
        user_notes=user_notes,
    )

    logger.info(
        f"Expert request created: {request.id} (item={request.item_name!r}, "
        f"tier={request.tier_name}, price=${request.price / 100:.2f}, "
        f"due={request.due_at.isoformat()})"
    )
    return request


async def process_expert_feedback(
    feedback: ExpertFeedback,
    sink: CorrectionSink | None = None,
) -> FeedbackOutcome:
    """Count an expert's corrections and forward them to a learning sink.

    The sink receives the corrections in the order the expert gave them.
    Without a sink the corrections are only logged.

    Args:
        feedback: The expert's feedback.
        sink: Optional destination for corrections.

    Returns:
        FeedbackOutcome with the correction count.
    """
    logger.info(f"Processing expert feedback for request {feedback.request_id}")
    count = len(feedback.corrections)

    if feedback.has_corrections:
        logger.info(f"{count} corrections to process for request {feedback.request_id}")
        for correction in feedback.corrections:
            logger.info(
                f"  {correction.field}: {correction.original_value!r} -> "
                f"{correction.corrected_value!r} ({correction.explanation})"
            )
        if sink is not None:
            sink.record(feedback.request_id, list(feedback.corrections))

    return FeedbackOutcome(success=True, learning_updated=count > 0, corrections=count)
