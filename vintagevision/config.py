"""Environment-driven settings.

Each section is a frozen dataclass with its own ``from_env``; ``AppConfig``
bundles them and ``get_config`` caches one instance per process.

The escalation engine never reads this module. Callers turn the settings into
an ``EscalationConfig`` (``get_config().escalation.to_config()``) and pass it in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from vintagevision.analysis.models import DomainExpert
    from vintagevision.escalation.tiers import EscalationConfig

DEFAULT_MODELS = {"openai": "gpt-4o", "anthropic": "claude-sonnet-4-20250514"}
API_KEY_VARS = {"openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY"}


class ConfigurationError(Exception):
    """Required settings are missing or inconsistent."""

    def __init__(self, message: str, missing_vars: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_vars = missing_vars or []


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass(frozen=True)
class LLMConfig:
    """Vision model client settings.

    Attributes:
        provider: "openai" or "anthropic".
        model: Model identifier.
        api_key: Key for the selected provider.
        max_tokens: Reply token limit.
        temperature: Sampling temperature.
        timeout: Per-request timeout (seconds).
        max_retries: Retries after the first attempt.
        retry_base_delay: First backoff delay (seconds).
        retry_max_delay: Backoff ceiling (seconds).
        image_detail: Detail level for OpenAI image inputs.
    """

    provider: Literal["openai", "anthropic"] = "openai"
    model: str = DEFAULT_MODELS["openai"]
    api_key: str = ""
    max_tokens: int = 4500
    temperature: float = 0.2
    timeout: float = 90.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    image_detail: Literal["low", "high", "auto"] = "high"

    @classmethod
    def from_env(cls) -> LLMConfig:
        provider: Literal["openai", "anthropic"] = (
            "anthropic" if os.getenv("LLM_PROVIDER", "openai") == "anthropic" else "openai"
        )
        detail = os.getenv("LLM_IMAGE_DETAIL", "high")
        if detail not in ("low", "high", "auto"):
            detail = "high"
        return cls(
            provider=provider,
            model=os.getenv("LLM_MODEL", DEFAULT_MODELS[provider]),
            api_key=os.getenv(API_KEY_VARS[provider], ""),
            max_tokens=_env_int("LLM_MAX_TOKENS", cls.max_tokens),
            temperature=_env_float("LLM_TEMPERATURE", cls.temperature),
            timeout=_env_float("LLM_TIMEOUT", cls.timeout),
            max_retries=_env_int("LLM_MAX_RETRIES", cls.max_retries),
            retry_base_delay=_env_float("LLM_RETRY_BASE_DELAY", cls.retry_base_delay),
            retry_max_delay=_env_float("LLM_RETRY_MAX_DELAY", cls.retry_max_delay),
            image_detail=detail,  # type: ignore[arg-type]
        )

    def validate(self) -> None:
        """Check that the provider's API key is set.

        Raises:
            ConfigurationError: If the key is missing.
        """
        if not self.api_key:
            var = API_KEY_VARS[self.provider]
            raise ConfigurationError(f"Missing required configuration: {var}", missing_vars=[var])


@dataclass(frozen=True)
class LangfuseConfig:
    """Langfuse tracing settings.

    Attributes:
        enabled: Whether traces are sent.
        public_key: Project public key.
        secret_key: Project secret key.
        host: Langfuse server URL.
        release: Release tag attached to traces.
        debug: Verbose SDK logging.
    """

    enabled: bool = True
    public_key: str = ""
    secret_key: str = ""
    host: str = "https://cloud.langfuse.com"
    release: str = "0.1.0"
    debug: bool = False

    @classmethod
    def from_env(cls) -> LangfuseConfig:
        return cls(
            enabled=_env_flag("LANGFUSE_ENABLED", True),
            public_key=os.getenv("LANGFUSE_PUBLIC_KEY", ""),
            secret_key=os.getenv("LANGFUSE_SECRET_KEY", ""),
            host=os.getenv("LANGFUSE_HOST", cls.host),
            release=os.getenv("APP_VERSION", cls.release),
            debug=_env_flag("LANGFUSE_DEBUG", False),
        )

    def validate(self) -> None:
        """Require both keys while tracing is enabled.

        Raises:
            ConfigurationError: If a key is missing.
        """
        if not self.enabled:
            return
        missing = [
            var
            for var, value in (
                ("LANGFUSE_PUBLIC_KEY", self.public_key),
                ("LANGFUSE_SECRET_KEY", self.secret_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Langfuse enabled but missing keys: {', '.join(missing)}. "
                "Set LANGFUSE_ENABLED=false to disable.",
                missing_vars=missing,
            )


@dataclass(frozen=True)
class EscalationSettings:
    """Threshold overrides for the expert escalation rules.

    Value thresholds are in cents; confidence thresholds are 0-1 fractions.

    Attributes:
        auto_escalate_value: Midpoint value at which review is offered.
        premium_escalate_value: Midpoint value at which a premium appraisal is recommended.
        low_confidence: Confidence below which review is offered.
        authentication_concern: Authentication confidence threshold.
        high_risk_categories: Domain tags that always warrant a review offer.
    """

    auto_escalate_value: int = 10_000
    premium_escalate_value: int = 500_000
    low_confidence: float = 0.6
    authentication_concern: float = 0.7
    high_risk_categories: tuple[str, ...] = ("watches", "jewelry", "silver", "art", "ceramics")

    @classmethod
    def from_env(cls) -> EscalationSettings:
        defaults = cls()
        high_risk_env = os.getenv("ESCALATION_HIGH_RISK")
        if high_risk_env is None:
            high_risk = defaults.high_risk_categories
        else:
            high_risk = tuple(c.strip().lower() for c in high_risk_env.split(",") if c.strip())
        return cls(
            auto_escalate_value=_env_int("ESCALATION_AUTO_VALUE", defaults.auto_escalate_value),
            premium_escalate_value=_env_int(
                "ESCALATION_PREMIUM_VALUE", defaults.premium_escalate_value
            ),
            low_confidence=_env_float("ESCALATION_LOW_CONFIDENCE", defaults.low_confidence),
            authentication_concern=_env_float(
                "ESCALATION_AUTH_CONCERN", defaults.authentication_concern
            ),
            high_risk_categories=high_risk,
        )

    def validate(self) -> None:
        """Check threshold ordering and ranges.

        Raises:
            ConfigurationError: If thresholds are inconsistent or a high-risk
                category names no known domain.
        """
        if self.auto_escalate_value < 0 or self.premium_escalate_value < 0:
            raise ConfigurationError("Escalation value thresholds must be non-negative")
        if self.premium_escalate_value < self.auto_escalate_value:
            raise ConfigurationError(
                "ESCALATION_PREMIUM_VALUE must not be below ESCALATION_AUTO_VALUE"
            )
        for var, value in (
            ("ESCALATION_LOW_CONFIDENCE", self.low_confidence),
            ("ESCALATION_AUTH_CONCERN", self.authentication_concern),
        ):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{var} must be between 0 and 1, got {value}")
        self.high_risk_domains()

    def high_risk_domains(self) -> frozenset[DomainExpert]:
        """Resolve ``high_risk_categories`` to domain tags.

        Raises:
            ConfigurationError: If a tag names no known domain.
        """
        from vintagevision.analysis.models import DomainExpert

        unknown = [tag for tag in self.high_risk_categories if DomainExpert.parse(tag) is None]
        if unknown:
            raise ConfigurationError(
                f"ESCALATION_HIGH_RISK contains unknown domain(s): {', '.join(unknown)}. "
                f"Expected any of: {', '.join(d.value for d in DomainExpert)}"
            )
        return frozenset(DomainExpert(tag.strip().lower()) for tag in self.high_risk_categories)

    def to_config(self) -> EscalationConfig:
        """Immutable escalation config with these thresholds and the standard tiers.

        Raises:
            ConfigurationError: If a high-risk category names no known domain.
        """
        from vintagevision.escalation.tiers import DEFAULT_TIERS, EscalationConfig

        return EscalationConfig(
            auto_escalate_value_threshold=self.auto_escalate_value,
            premium_escalate_value_threshold=self.premium_escalate_value,
            low_confidence_threshold=self.low_confidence,
            authentication_concern_threshold=self.authentication_concern,
            high_risk_categories=self.high_risk_domains(),
            tiers=DEFAULT_TIERS,
        )


@dataclass
class AppConfig:
    """All settings for one process.

    Attributes:
        llm: Vision model client settings.
        langfuse: Tracing settings.
        escalation: Escalation thresholds.
        image_dir: Base directory for relative ground truth image paths.
        log_level: Logging level name.
        debug: Debug mode flag.
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)
    escalation: EscalationSettings = field(default_factory=EscalationSettings)
    image_dir: Path | None = None
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls) -> AppConfig:
        image_dir = os.getenv("EVAL_IMAGE_DIR")
        return cls(
            llm=LLMConfig.from_env(),
            langfuse=LangfuseConfig.from_env(),
            escalation=EscalationSettings.from_env(),
            image_dir=Path(image_dir) if image_dir else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            debug=_env_flag("DEBUG", False),
        )

    def validate(self) -> None:
        """Validate every section.

        Raises:
            ConfigurationError: On the first invalid section.
        """
        for section in (self.llm, self.langfuse, self.escalation):
            section.validate()


_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Process-wide settings, read from the environment on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget cached settings so the next ``get_config`` rereads the environment."""
    global _config
    _config = None
