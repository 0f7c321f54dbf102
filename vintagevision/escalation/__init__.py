"""Expert escalation, expert matching and review request lifecycle."""

from vintagevision.escalation.evaluator import (
    EscalationEvaluation,
    EscalationResponse,
    Urgency,
    ValueRange,
    evaluate_escalation,
    get_escalation_options,
)
from vintagevision.escalation.exceptions import (
    EscalationError,
    InvalidTierError,
    InvalidTransitionError,
)
from vintagevision.escalation.matching import (
    EXPERIENCE_BANDS,
    ExperienceBand,
    Expert,
    ExpertMatch,
    find_best_expert,
    rank_experts,
    score_expert,
)
from vintagevision.escalation.requests import (
    ExpertCorrection,
    ExpertFeedback,
    ExpertRequest,
    ExpertRequestStatus,
    FeedbackOutcome,
    create_expert_request,
    process_expert_feedback,
)
from vintagevision.escalation.sinks import (
    CorrectionRecord,
    CorrectionSink,
    CorrectionStore,
    InMemoryCorrectionSink,
)
from vintagevision.escalation.tiers import (
    DEFAULT_ESCALATION_CONFIG,
    DEFAULT_TIERS,
    EscalationConfig,
    ExpertServiceTier,
)

__all__ = [
    "DEFAULT_ESCALATION_CONFIG",
    "DEFAULT_TIERS",
    "EXPERIENCE_BANDS",
    "CorrectionRecord",
    "CorrectionSink",
    "CorrectionStore",
    "EscalationConfig",
    "EscalationError",
    "EscalationEvaluation",
    "EscalationResponse",
    "ExperienceBand",
    "Expert",
    "ExpertCorrection",
    "ExpertFeedback",
    "ExpertMatch",
    "ExpertRequest",
    "ExpertRequestStatus",
    "ExpertServiceTier",
    "FeedbackOutcome",
    "InMemoryCorrectionSink",
    "InvalidTierError",
    "InvalidTransitionError",
    "Urgency",
    "ValueRange",
    "create_expert_request",
    "evaluate_escalation",
    "find_best_expert",
    "get_escalation_options",
    "process_expert_feedback",
    "rank_experts",
    "score_expert",
]
