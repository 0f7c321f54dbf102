"""Observability utilities (Langfuse tracing)."""

from vintagevision.observability.tracing import (
    DummyGeneration,
    DummySpan,
    Tracer,
    TracingDisabled,
    get_tracer,
    reset_tracer,
    trace_context,
    traced,
)

__all__ = [
    "DummyGeneration",
    "DummySpan",
    "Tracer",
    "TracingDisabled",
    "get_tracer",
    "reset_tracer",
    "trace_context",
    "traced",
]
