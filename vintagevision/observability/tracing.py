"""Langfuse tracing for vision model calls and evaluation runs.

``get_tracer()`` returns a process-wide ``Tracer``. When Langfuse is disabled,
unconfigured or fails to start, the tracer hands out no-op spans and
generations, so instrumented code never checks whether tracing is on.

Example:
    >>> from vintagevision.observability.tracing import trace_context, traced
    >>>
    >>> @traced(name="identify_item")
    >>> def identify(image):
    ...     return "result"
    >>>
    >>> with trace_context("evaluation_run", tags=["evaluation"]) as span:
    ...     child = span.start_span(name="score_items")
    ...     child.end()
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from langfuse import Langfuse

from vintagevision.config import AppConfig, LangfuseConfig, get_config

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Span outputs are truncated to this many characters
MAX_OUTPUT_CHARS = 1000


class DummyGeneration:
    """No-op generation."""

    def update(self, **kwargs: Any) -> DummyGeneration:
        return self

    def end(self, **kwargs: Any) -> None:
        return None


class DummySpan:
    """No-op span; children are no-ops too."""

    def start_span(self, **kwargs: Any) -> DummySpan:
        return DummySpan()

    def start_generation(self, **kwargs: Any) -> DummyGeneration:
        return DummyGeneration()

    def update(self, **kwargs: Any) -> DummySpan:
        return self

    def update_trace(self, **kwargs: Any) -> DummySpan:
        return self

    def end(self, **kwargs: Any) -> None:
        return None


class TracingDisabled(DummySpan):
    """No-op stand-in for the Langfuse client."""

    def flush(self) -> None:
        return None

    def shutdown(self) -> None:
        return None


class Tracer:
    """Lazily connected Langfuse client.

    Attributes:
        config: Langfuse settings.
        enabled: Whether tracing was requested.
    """

    def __init__(
        self,
        config: LangfuseConfig | None = None,
        app_config: AppConfig | None = None,
    ) -> None:
        if app_config is not None:
            config = app_config.langfuse
        self.config = config if config is not None else get_config().langfuse
        self.enabled = self.config.enabled
        self._client: Langfuse | TracingDisabled | None = None

    def _connect(self) -> Langfuse | TracingDisabled:
        if not self.enabled:
            logger.debug("Langfuse tracing disabled")
            return TracingDisabled()
        if not (self.config.public_key and self.config.secret_key):
            logger.warning(
                "Langfuse keys not configured, tracing disabled. "
                "Set LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY."
            )
            return TracingDisabled()

        from langfuse import Langfuse

        try:
            client = Langfuse(
                public_key=self.config.public_key,
                secret_key=self.config.secret_key,
                host=self.config.host,
                release=self.config.release,
                debug=self.config.debug,
            )
        except Exception as e:
            logger.warning(f"Failed to initialize Langfuse, tracing disabled: {e}")
            return TracingDisabled()
        logger.info(f"Langfuse tracing initialized (host: {self.config.host})")
        return client

    def _get_client(self) -> Langfuse | TracingDisabled:
        """The Langfuse client, or a no-op stand-in, created on first use."""
        if self._client is None:
            self._client = self._connect()
        return self._client

    def span(self, name: str, input: Any = None, metadata: dict[str, Any] | None = None) -> Any:
        """Open a root span. The caller must ``end()`` it."""
        return self._get_client().start_span(name=name, input=input, metadata=metadata or {})

    def generation(
        self,
        name: str,
        model: str,
        input: Any = None,
        metadata: dict[str, Any] | None = None,
    ) -> Any:
        """Open a generation for one model call.

        Args:
            name: Generation name.
            model: Model identifier.
            input: Prompt text; image payloads are never attached.
            metadata: Extra attributes.

        Returns:
            Generation to ``update`` with output and usage, then ``end``.
        """
        return self._get_client().start_generation(
            name=name, model=model, input=input, metadata=metadata or {}
        )

    def flush(self) -> None:
        self._get_client().flush()

    def shutdown(self) -> None:
        if self._client is not None:
            self._client.shutdown()
            self._client = None


_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Process-wide tracer built from ``get_config()``."""
    global _tracer
    if _tracer is None:
        _tracer = Tracer()
    return _tracer


def reset_tracer() -> None:
    """Shut down and forget the process-wide tracer."""
    global _tracer
    if _tracer is not None:
        _tracer.shutdown()
    _tracer = None


@contextmanager
def _span_scope(tracer: Tracer, name: str, metadata: dict[str, Any]) -> Iterator[Any]:
    """Open a span, mark it as failed if the body raises, and always end it."""
    span = tracer.span(name=name, metadata=metadata)
    try:
        yield span
    except Exception as e:
        span.update(
            level="ERROR",
            status_message=str(e),
            metadata={"error_type": type(e).__name__},
        )
        raise
    finally:
        span.end()


def traced(
    name: str | None = None,
    tags: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Record each call of the decorated function as a span.

    The span carries the function's module and name, its stringified return
    value (truncated to ``MAX_OUTPUT_CHARS``) or the error it raised.

    Args:
        name: Span name; defaults to the function name.
        tags: Tags added to the enclosing trace.
        metadata: Extra span metadata.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_metadata = {**(metadata or {}), "function": func.__name__, "module": func.__module__}

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with _span_scope(get_tracer(), name or func.__name__, span_metadata) as span:
                if tags:
                    span.update_trace(tags=tags)
                result = func(*args, **kwargs)
                span.update(output=str(result)[:MAX_OUTPUT_CHARS])
                return result

        return wrapper

    return decorator


@contextmanager
def trace_context(
    name: str,
    session_id: str | None = None,
    user_id: str | None = None,
    tags: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> Iterator[Any]:
    """Span around a block of work; the tracer is flushed on exit.

    Args:
        name: Span name.
        session_id: Trace session id.
        user_id: Trace user id.
        tags: Trace tags.
        metadata: Span metadata.

    Yields:
        The span, for nesting child spans or generations.
    """
    tracer = get_tracer()
    try:
        with _span_scope(tracer, name, metadata or {}) as span:
            span.update_trace(session_id=session_id, user_id=user_id, tags=tags or [])
            yield span
    finally:
        tracer.flush()
