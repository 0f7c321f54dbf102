"""Tests for the vision model client."""

from unittest.mock import MagicMock, patch

import pytest

from vintagevision.analysis.images import ImageSource
from vintagevision.analysis.llm_client import (
    LLMClient,
    LLMError,
    LLMProviderError,
    LLMRateLimitError,
    LLMResponse,
    LLMTimeoutError,
)
from vintagevision.config import ConfigurationError, LLMConfig


def _anthropic_response(text: str = "Hello!") -> MagicMock:
    response = MagicMock()
    response.content = [MagicMock(type="text", text=text)]
    response.usage.input_tokens = 10
    response.usage.output_tokens = 5
    response.model = "claude-sonnet-4-20250514"
    return response


def _openai_response(text: str = "Hello!") -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=text))]
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 5
    response.model = "gpt-4o"
    return response


class TestLLMResponse:
    """Tests for LLMResponse model."""

    def test_total_tokens_property(self) -> None:
        response = LLMResponse(
            content="Test",
            input_tokens=100,
            output_tokens=50,
            model="gpt-4o",
            latency_ms=100.0,
        )
        assert response.total_tokens == 150
        assert response.provider == "openai"

    def test_rejects_negative_tokens(self) -> None:
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            LLMResponse(content="x", input_tokens=-1, output_tokens=0, model="m", latency_ms=0)


class TestLLMClientInitialization:
    """Tests for LLMClient initialization."""

    def test_init_with_config(self) -> None:
        config = LLMConfig(provider="anthropic", api_key="test-key", model="claude-test")
        client = LLMClient(config=config)
        assert client.provider == "anthropic"
        assert client.config.model == "claude-test"

    def test_validation_on_get_client(self) -> None:
        client = LLMClient(config=LLMConfig(provider="openai", api_key=""))

        with pytest.raises(ConfigurationError) as exc_info:
            client._get_client()

        assert exc_info.value.missing_vars == ["OPENAI_API_KEY"]


class TestBuildMessages:
    """Tests for provider-specific vision messages."""

    def test_openai_image_blocks_use_detail(self) -> None:
        config = LLMConfig(provider="openai", api_key="k", image_detail="low")
        client = LLMClient(config=config)

        messages = client.build_messages("Identify", [ImageSource(url="https://x/a.jpg")])

        content = messages[0]["content"]
        assert messages[0]["role"] == "user"
        assert content[0] == {
            "type": "image_url",
            "image_url": {"url": "https://x/a.jpg", "detail": "low"},
        }
        assert content[-1] == {"type": "text", "text": "Identify"}

    def test_anthropic_base64_block(self) -> None:
        client = LLMClient(config=LLMConfig(provider="anthropic", api_key="k"))
        image = ImageSource(data="QUJD", media_type="image/png")

        content = client.build_messages("Identify", [image])[0]["content"]

        assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "QUJD"}

    def test_anthropic_url_block(self) -> None:
        client = LLMClient(config=LLMConfig(provider="anthropic", api_key="k"))

        content = client.build_messages("Identify", [ImageSource(url="https://x/a.jpg")])[0][
            "content"
        ]

        assert content[0]["source"] == {"type": "url", "url": "https://x/a.jpg"}


class TestLLMClientBackoff:
    """Tests for backoff calculation."""

    def test_backoff_exponential_growth(self) -> None:
        config = LLMConfig(api_key="test", retry_base_delay=1.0, retry_max_delay=30.0)
        client = LLMClient(config=config)

        delay0 = client._calculate_backoff(0)
        delay1 = client._calculate_backoff(1)
        delay2 = client._calculate_backoff(2)

        assert delay0 < delay1 < delay2
        assert delay2 < 8.0

    def test_backoff_respects_max_delay(self) -> None:
        config = LLMConfig(api_key="test", retry_base_delay=1.0, retry_max_delay=5.0)
        client = LLMClient(config=config)
        assert client._calculate_backoff(10) <= 5.0

    def test_backoff_caps_retry_after(self) -> None:
        client = LLMClient(config=LLMConfig(api_key="test", retry_max_delay=5.0))
        assert client._calculate_backoff(0, retry_after=100.0) == 5.0


class TestLLMClientOpenAICalls:
    """Tests for OpenAI API calls."""

    @patch("openai.OpenAI")
    def test_vision_call_requests_json(self, mock_openai_class: MagicMock) -> None:
        mock_client = MagicMock()
        mock_openai_class.return_value = mock_client
        mock_client.chat.completions.create.return_value = _openai_response('{"name": "x"}')

        client = LLMClient(config=LLMConfig(provider="openai", api_key="test-key"))
        response = client.complete_vision(
            "Identify", [ImageSource(url="https://x/a.jpg")], system="You are an appraiser"
        )

        assert response.content == '{"name": "x"}'
        assert response.provider == "openai"
        kwargs = mock_client.chat.completions.create.call_args[1]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "You are an appraiser"}
        assert kwargs["messages"][1]["content"][0]["type"] == "image_url"

    @patch("openai.OpenAI")
    def test_missing_usage_counts_zero(self, mock_openai_class: MagicMock) -> None:
        mock_client = MagicMock()
        mock_openai_class.return_value = mock_client
        response = _openai_response()
        response.usage = None
        mock_client.chat.completions.create.return_value = response

        client = LLMClient(config=LLMConfig(provider="openai", api_key="test-key"))
        result = client.complete([{"role": "user", "content": "Hi"}])

        assert result.total_tokens == 0


class TestLLMClientAnthropicCalls:
    """Tests for Anthropic API calls."""

    @patch("anthropic.Anthropic")
    def test_successful_call_with_system(self, mock_anthropic_class: MagicMock) -> None:
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = _anthropic_response("Response")

        client = LLMClient(config=LLMConfig(provider="anthropic", api_key="test-key"))
        response = client.complete([{"role": "user", "content": "Hi"}], system="Be precise")

        assert response.content == "Response"
        assert response.input_tokens == 10
        assert response.provider == "anthropic"
        assert mock_client.messages.create.call_args[1]["system"] == "Be precise"


class TestLLMClientRetryLogic:
    """Tests for retry logic."""

    @patch("anthropic.Anthropic")
    @patch("time.sleep")
    def test_retry_on_rate_limit(
        self, mock_sleep: MagicMock, mock_anthropic_class: MagicMock
    ) -> None:
        from anthropic import RateLimitError

        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        rate_limit_error = RateLimitError(
            message="Rate limited",
            response=MagicMock(status_code=429),
            body=None,
        )
        mock_client.messages.create.side_effect = [rate_limit_error, _anthropic_response("OK")]

        client = LLMClient(
            config=LLMConfig(provider="anthropic", api_key="test-key", max_retries=2)
        )
        response = client.complete([{"role": "user", "content": "Hi"}])

        assert response.content == "OK"
        assert mock_client.messages.create.call_count == 2
        assert mock_sleep.call_count == 1

    @patch("openai.OpenAI")
    @patch("time.sleep")
    def test_retry_exhausted(self, mock_sleep: MagicMock, mock_openai_class: MagicMock) -> None:
        from openai import RateLimitError

        mock_client = MagicMock()
        mock_openai_class.return_value = mock_client
        mock_client.chat.completions.create.side_effect = RateLimitError(
            message="Rate limited",
            response=MagicMock(status_code=429),
            body=None,
        )

        client = LLMClient(config=LLMConfig(provider="openai", api_key="k", max_retries=2))

        with pytest.raises(LLMError) as exc_info:
            client.complete([{"role": "user", "content": "Hi"}])

        assert "All 3 attempts failed" in str(exc_info.value)
        assert mock_client.chat.completions.create.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("anthropic.Anthropic")
    def test_no_retry_on_client_error(self, mock_anthropic_class: MagicMock) -> None:
        from anthropic import APIStatusError

        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.side_effect = APIStatusError(
            message="Bad request",
            response=MagicMock(status_code=400),
            body=None,
        )

        client = LLMClient(
            config=LLMConfig(provider="anthropic", api_key="test-key", max_retries=2)
        )

        with pytest.raises(LLMProviderError) as exc_info:
            client.complete([{"role": "user", "content": "Hi"}])

        assert exc_info.value.status_code == 400
        assert mock_client.messages.create.call_count == 1


class TestLLMErrors:
    """Tests for LLM error classes."""

    def test_error_hierarchy(self) -> None:
        assert issubclass(LLMRateLimitError, LLMError)
        assert issubclass(LLMTimeoutError, LLMError)
        assert issubclass(LLMProviderError, LLMError)

    def test_error_attributes(self) -> None:
        assert LLMRateLimitError("Rate limited", retry_after=5.0).retry_after == 5.0
        assert LLMProviderError("Server error", status_code=503).status_code == 503


class TestRetryPolicy:
    """Which failures are retried and for how long."""

    @pytest.fixture
    def client(self) -> LLMClient:
        return LLMClient(config=LLMConfig(api_key="k", retry_base_delay=1.0, retry_max_delay=30.0))

    def test_server_error_flag(self) -> None:
        assert LLMProviderError("x", status_code=503).is_server_error
        assert not LLMProviderError("x", status_code=404).is_server_error
        assert not LLMProviderError("x").is_server_error

    def test_rate_limit_uses_retry_after(self, client: LLMClient) -> None:
        assert client._retry_delay(LLMRateLimitError("x", retry_after=7.0), 0) == 7.0

    def test_timeout_retried(self, client: LLMClient) -> None:
        assert client._retry_delay(LLMTimeoutError("x"), 0) is not None

    def test_client_error_not_retried(self, client: LLMClient) -> None:
        assert client._retry_delay(LLMProviderError("x", status_code=400), 0) is None
        assert client._retry_delay(LLMProviderError("connection reset"), 0) is None

    @patch("openai.OpenAI")
    @patch("time.sleep")
    def test_retry_on_server_error(
        self, mock_sleep: MagicMock, mock_openai_class: MagicMock
    ) -> None:
        from openai import APIStatusError

        mock_client = MagicMock()
        mock_openai_class.return_value = mock_client
        mock_client.chat.completions.create.side_effect = [
            APIStatusError(message="Unavailable", response=MagicMock(status_code=503), body=None),
            _openai_response("{}"),
        ]

        client = LLMClient(config=LLMConfig(provider="openai", api_key="k", max_retries=1))

        assert client.complete([{"role": "user", "content": "Hi"}]).content == "{}"
        assert mock_sleep.call_count == 1

    @patch("anthropic.Anthropic")
    def test_sdk_retries_disabled(self, mock_anthropic_class: MagicMock) -> None:
        client = LLMClient(config=LLMConfig(provider="anthropic", api_key="k", timeout=12.0))
        client._get_client()

        mock_anthropic_class.assert_called_once_with(api_key="k", timeout=12.0, max_retries=0)
