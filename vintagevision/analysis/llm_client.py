"""Vision model client with retries.

Sends item photos plus an identification prompt to OpenAI (Chat Completions,
JSON mode) or Anthropic (Messages API) and returns the raw reply text with
token usage and latency. SDK errors are translated into the ``LLMError``
family; rate limits, timeouts and 5xx responses are retried.

Example:
    >>> from vintagevision.analysis.llm_client import LLMClient
    >>> from vintagevision.analysis.images import load_image
    >>> client = LLMClient()
    >>> reply = client.complete_vision("Identify this item", [load_image(url)])
    >>> print(reply.content)
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from types import ModuleType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from vintagevision.analysis.images import ImageSource, anthropic_image_block, openai_image_block
from vintagevision.config import AppConfig, LLMConfig, get_config

if TYPE_CHECKING:
    from anthropic import Anthropic
    from openai import OpenAI

logger = logging.getLogger(__name__)

PROVIDER_LABELS = {"openai": "OpenAI", "anthropic": "Anthropic"}


class LLMResponse(BaseModel):
    """Reply text and usage for one vision model call.

    Attributes:
        content: Reply text.
        input_tokens: Prompt tokens, images included.
        output_tokens: Completion tokens.
        model: Model that answered.
        latency_ms: Wall time of the call.
        provider: "openai" or "anthropic".
    """

    content: str
    input_tokens: int = Field(..., ge=0)
    output_tokens: int = Field(..., ge=0)
    model: str
    latency_ms: float = Field(..., ge=0)
    provider: str = "openai"

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMError(Exception):
    """Base class for vision model failures."""


class LLMRateLimitError(LLMError):
    """The provider throttled the request."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class LLMTimeoutError(LLMError):
    """The request did not finish within the configured timeout."""


class LLMProviderError(LLMError):
    """The provider rejected the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600


def _retry_after(error: Exception) -> float | None:
    headers = getattr(getattr(error, "response", None), "headers", None)
    if not headers:
        return None
    try:
        return float(headers["retry-after"])
    except (KeyError, TypeError, ValueError):
        return None


@contextmanager
def _translate_errors(sdk: ModuleType, label: str) -> Iterator[None]:
    """Re-raise the SDK's exceptions as ``LLMError`` subclasses.

    Both SDKs expose the same exception names, so one mapping serves both.
    """
    try:
        yield
    except sdk.RateLimitError as e:
        raise LLMRateLimitError(f"Rate limited by {label}: {e}", retry_after=_retry_after(e)) from e
    except sdk.APITimeoutError as e:
        raise LLMTimeoutError(f"{label} request timed out: {e}") from e
    except sdk.APIConnectionError as e:
        raise LLMProviderError(f"Connection error to {label}: {e}") from e
    except sdk.APIStatusError as e:
        raise LLMProviderError(f"{label} API error: {e}", status_code=e.status_code) from e


class LLMClient:
    """Retrying vision model client for OpenAI or Anthropic.

    The SDK client is built on first use, so constructing an ``LLMClient``
    never needs an API key.

    Attributes:
        config: LLM settings.
        provider: "openai" or "anthropic".
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        app_config: AppConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: LLM settings. Ignored when ``app_config`` is given.
            app_config: Full application config; its ``llm`` section is used.
        """
        if app_config is not None:
            config = app_config.llm
        self.config = config if config is not None else get_config().llm
        self.provider = self.config.provider
        self._client: Anthropic | OpenAI | None = None

    @property
    def label(self) -> str:
        return PROVIDER_LABELS.get(self.provider, self.provider)

    def _get_client(self) -> Anthropic | OpenAI:
        """Return the SDK client, creating it on first call.

        Raises:
            ConfigurationError: If the provider's API key is not set.
        """
        if self._client is None:
            self.config.validate()
            # SDK retries are disabled; complete() owns the retry policy
            options = {
                "api_key": self.config.api_key,
                "timeout": self.config.timeout,
                "max_retries": 0,
            }
            if self.provider == "anthropic":
                from anthropic import Anthropic

                self._client = Anthropic(**options)
            else:
                from openai import OpenAI

                self._client = OpenAI(**options)
        return self._client

    def _calculate_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait before retry ``attempt`` (0-indexed).

        A provider-supplied ``retry_after`` wins over exponential backoff;
        either way the delay is capped at ``retry_max_delay``.
        """
        cap = self.config.retry_max_delay
        if retry_after is not None:
            return min(retry_after, cap)
        delay = self.config.retry_base_delay * 2**attempt
        return float(min(delay * (1 + random.uniform(0, 0.1)), cap))

    def _retry_delay(self, error: LLMError, attempt: int) -> float | None:
        """Backoff for a retryable error, or None when the error is final."""
        if isinstance(error, LLMRateLimitError):
            return self._calculate_backoff(attempt, error.retry_after)
        if isinstance(error, LLMTimeoutError):
            return self._calculate_backoff(attempt)
        if isinstance(error, LLMProviderError) and error.is_server_error:
            return self._calculate_backoff(attempt)
        return None

    def build_messages(self, prompt: str, images: Sequence[ImageSource]) -> list[dict[str, Any]]:
        """Single user message: the images first, then the prompt text."""
        if self.provider == "anthropic":
            blocks = [anthropic_image_block(image) for image in images]
        else:
            blocks = [openai_image_block(image, self.config.image_detail) for image in images]
        blocks.append({"type": "text", "text": prompt})
        return [{"role": "user", "content": blocks}]

    def _call_anthropic(
        self, messages: list[dict[str, Any]], system: str | None, **overrides: Any
    ) -> LLMResponse:
        import anthropic

        params: dict[str, Any] = {
            "model": overrides.get("model", self.config.model),
            "max_tokens": overrides.get("max_tokens", self.config.max_tokens),
            "temperature": self.config.temperature,
            "messages": messages,
        }
        if system:
            params["system"] = system

        client = self._get_client()
        started = time.perf_counter()
        with _translate_errors(anthropic, self.label):
            reply = client.messages.create(**params)  # type: ignore[union-attr]

        return LLMResponse(
            content="".join(b.text for b in reply.content if getattr(b, "type", "") == "text"),
            input_tokens=reply.usage.input_tokens,
            output_tokens=reply.usage.output_tokens,
            model=reply.model,
            latency_ms=(time.perf_counter() - started) * 1000,
            provider="anthropic",
        )

    def _call_openai(
        self, messages: list[dict[str, Any]], system: str | None, **overrides: Any
    ) -> LLMResponse:
        import openai

        chat = [{"role": "system", "content": system}] if system else []
        chat.extend(messages)

        client = self._get_client()
        started = time.perf_counter()
        with _translate_errors(openai, self.label):
            reply = client.chat.completions.create(  # type: ignore[union-attr]
                model=overrides.get("model", self.config.model),
                max_tokens=overrides.get("max_tokens", self.config.max_tokens),
                temperature=self.config.temperature,
                messages=chat,  # type: ignore[arg-type]
                response_format={"type": "json_object"},
            )

        usage = reply.usage
        return LLMResponse(
            content=reply.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=reply.model,
            latency_ms=(time.perf_counter() - started) * 1000,
            provider="openai",
        )

    def complete(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        **overrides: Any,
    ) -> LLMResponse:
        """Call the provider, retrying transient failures.

        Args:
            messages: Provider-formatted messages (see ``build_messages``).
            system: Optional system prompt.
            **overrides: ``model`` or ``max_tokens``.

        Returns:
            The provider's reply.

        Raises:
            LLMError: When every attempt failed with a retryable error.
            LLMProviderError: On a non-retryable provider error.
            ConfigurationError: If the API key is missing.
        """
        call = self._call_anthropic if self.provider == "anthropic" else self._call_openai
        attempts = self.config.max_retries + 1
        last_error: LLMError | None = None

        for attempt in range(attempts):
            try:
                return call(messages, system, **overrides)
            except LLMError as e:
                delay = self._retry_delay(e, attempt)
                if delay is None:
                    raise
                last_error = e
                if attempt + 1 < attempts:
                    logger.warning(
                        f"{self.label} call failed ({e}); retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self.config.max_retries})"
                    )
                    time.sleep(delay)

        raise LLMError(f"All {attempts} attempts failed: {last_error}") from last_error

    def complete_vision(
        self,
        prompt: str,
        images: Sequence[ImageSource],
        system: str | None = None,
        **overrides: Any,
    ) -> LLMResponse:
        """Send the prompt with its images and return the model's reply."""
        return self.complete(self.build_messages(prompt, images), system=system, **overrides)
