"""Tests for observability/tracing module."""

from unittest.mock import MagicMock, patch

import pytest

from vintagevision.config import LangfuseConfig, reset_config
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


@pytest.fixture(autouse=True)
def _disabled_tracing(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LANGFUSE_ENABLED", "false")
    reset_config()
    reset_tracer()
    yield
    reset_tracer()
    reset_config()


class TestTracingDisabled:
    """Tests for TracingDisabled dummy client."""

    def test_span_returns_dummy(self) -> None:
        assert isinstance(TracingDisabled().start_span(name="test"), DummySpan)

    def test_generation_returns_dummy(self) -> None:
        assert isinstance(TracingDisabled().start_generation(name="test"), DummyGeneration)

    def test_flush_and_shutdown_no_op(self) -> None:
        disabled = TracingDisabled()
        disabled.flush()
        disabled.shutdown()


class TestDummySpan:
    """Tests for DummySpan class."""

    def test_nested_span(self) -> None:
        assert isinstance(DummySpan().start_span(name="nested"), DummySpan)

    def test_generation_returns_dummy(self) -> None:
        assert isinstance(DummySpan().start_generation(name="gen"), DummyGeneration)

    def test_update_returns_self(self) -> None:
        span = DummySpan()
        assert span.update(output="x") is span
        assert span.update_trace(tags=["a"]) is span

    def test_generation_update_returns_self(self) -> None:
        gen = DummyGeneration()
        assert gen.update(usage_details={"input": 1}) is gen
        gen.end()


class TestTracer:
    """Tests for Tracer class."""

    def test_disabled_tracer(self) -> None:
        tracer = Tracer(config=LangfuseConfig(enabled=False))

        assert tracer.enabled is False
        assert isinstance(tracer.span(name="test"), DummySpan)
        assert isinstance(tracer.generation(name="gen", model="gpt-4o"), DummyGeneration)

    def test_tracer_without_keys(self) -> None:
        tracer = Tracer(config=LangfuseConfig(enabled=True, public_key="", secret_key=""))
        assert isinstance(tracer.span(name="test"), DummySpan)

    @patch("langfuse.Langfuse")
    def test_tracer_with_valid_config(self, mock_langfuse_class: MagicMock) -> None:
        config = LangfuseConfig(
            enabled=True,
            public_key="pk-test",
            secret_key="sk-test",
            host="https://test.langfuse.com",
        )
        tracer = Tracer(config=config)

        tracer._get_client()

        mock_langfuse_class.assert_called_once_with(
            public_key="pk-test",
            secret_key="sk-test",
            host="https://test.langfuse.com",
            release="0.1.0",
            debug=False,
        )

    @patch("langfuse.Langfuse")
    def test_generation_passes_model(self, mock_langfuse_class: MagicMock) -> None:
        mock_client = MagicMock()
        mock_langfuse_class.return_value = mock_client
        tracer = Tracer(config=LangfuseConfig(enabled=True, public_key="pk", secret_key="sk"))

        tracer.generation(name="vision_identification", model="gpt-4o", input="prompt")

        mock_client.start_generation.assert_called_once_with(
            name="vision_identification", model="gpt-4o", input="prompt", metadata={}
        )

    @patch("langfuse.Langfuse")
    def test_tracer_shutdown(self, mock_langfuse_class: MagicMock) -> None:
        mock_client = MagicMock()
        mock_langfuse_class.return_value = mock_client
        tracer = Tracer(config=LangfuseConfig(enabled=True, public_key="pk", secret_key="sk"))
        tracer._get_client()

        tracer.shutdown()

        mock_client.shutdown.assert_called_once()
        assert tracer._client is None

    def test_tracer_handles_init_error(self) -> None:
        with patch("langfuse.Langfuse") as mock_langfuse:
            mock_langfuse.side_effect = Exception("Connection failed")
            tracer = Tracer(config=LangfuseConfig(enabled=True, public_key="pk", secret_key="sk"))

            assert isinstance(tracer.span(name="test"), DummySpan)


class TestGlobalTracer:
    def test_get_tracer_returns_singleton(self) -> None:
        assert get_tracer() is get_tracer()

    def test_reset_tracer(self) -> None:
        tracer1 = get_tracer()
        reset_tracer()
        assert get_tracer() is not tracer1

    def test_global_tracer_reads_env(self) -> None:
        assert get_tracer().enabled is False


class TestTracedDecorator:
    """Tests for @traced decorator."""

    def test_traced_function_executes(self) -> None:
        @traced(name="double", tags=["test"], metadata={"key": "value"})
        def double(x: int) -> int:
            return x * 2

        assert double(5) == 10
        assert double.__name__ == "double"

    def test_traced_function_propagates_exception(self) -> None:
        @traced()
        def failing_function() -> None:
            raise ValueError("Test error")

        with pytest.raises(ValueError, match="Test error"):
            failing_function()

    def test_span_ended_with_error(self) -> None:
        span = MagicMock()
        tracer = MagicMock()
        tracer.span.return_value = span

        @traced(name="boom")
        def boom() -> None:
            raise RuntimeError("bad")

        with patch("vintagevision.observability.tracing.get_tracer", return_value=tracer):
            with pytest.raises(RuntimeError):
                boom()

        assert span.update.call_args[1]["level"] == "ERROR"
        span.end.assert_called_once()


class TestTraceContext:
    """Tests for trace_context context manager."""

    def test_yields_span(self) -> None:
        with trace_context("evaluation_run", session_id="s1", user_id="u1", tags=["t"]) as span:
            assert hasattr(span, "start_span")
            assert hasattr(span, "end")

    def test_propagates_exception(self) -> None:
        with pytest.raises(RuntimeError, match="Test error"):
            with trace_context("failing_context"):
                raise RuntimeError("Test error")

    def test_ends_span_and_flushes(self) -> None:
        span = MagicMock()
        tracer = MagicMock()
        tracer.span.return_value = span

        with patch("vintagevision.observability.tracing.get_tracer", return_value=tracer):
            with trace_context("run", tags=["evaluation"]):
                pass

        span.update_trace.assert_called_once_with(session_id=None, user_id=None, tags=["evaluation"])
        span.end.assert_called_once()
        tracer.flush.assert_called_once()
