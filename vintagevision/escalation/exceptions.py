"""Exceptions raised by the expert escalation engine."""

from __future__ import annotations


class EscalationError(Exception):
    """Base exception for escalation and expert request errors."""

    pass


class InvalidTierError(EscalationError, ValueError):
    """Raised when a tier id is not present in the escalation config.

    Attributes:
        tier_id: The tier id that could not be resolved.
    """

    def __init__(self, tier_id: str, available: list[str] | None = None) -> None:
        message = f"Invalid tier ID: {tier_id!r}"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)
        self.tier_id = tier_id


class InvalidTransitionError(EscalationError):
    """Raised when an expert request is moved along an illegal edge.

    Attributes:
        current: Status the request was in.
        target: Status that was requested.
    """

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition expert request from {current} to {target}")
        self.current = current
        self.target = target
