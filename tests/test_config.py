"""Tests for configuration module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from vintagevision.analysis.models import DomainExpert
from vintagevision.config import (
    AppConfig,
    ConfigurationError,
    EscalationSettings,
    LangfuseConfig,
    LLMConfig,
    get_config,
    reset_config,
)


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = LLMConfig()
        assert config.provider == "openai"
        assert config.model == "gpt-4o"
        assert config.max_tokens == 4500
        assert config.temperature == 0.2
        assert config.image_detail == "high"
        assert config.max_retries == 3

    def test_validate_missing_anthropic_key(self) -> None:
        config = LLMConfig(provider="anthropic", api_key="")
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert "ANTHROPIC_API_KEY" in exc_info.value.missing_vars

    def test_validate_missing_openai_key(self) -> None:
        config = LLMConfig(provider="openai", api_key="")
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.missing_vars == ["OPENAI_API_KEY"]

    def test_validate_with_key(self) -> None:
        LLMConfig(api_key="sk-test-key").validate()


class TestLangfuseConfig:
    """Tests for LangfuseConfig."""

    def test_validate_disabled(self) -> None:
        LangfuseConfig(enabled=False).validate()

    def test_validate_missing_keys(self) -> None:
        config = LangfuseConfig(enabled=True, public_key="", secret_key="")
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert "LANGFUSE_PUBLIC_KEY" in exc_info.value.missing_vars
        assert "LANGFUSE_SECRET_KEY" in exc_info.value.missing_vars


class TestEscalationSettings:
    """Tests for escalation threshold settings."""

    def test_to_config(self) -> None:
        settings = EscalationSettings(
            auto_escalate_value=20000,
            low_confidence=0.5,
            high_risk_categories=("watches", "art"),
        )

        config = settings.to_config()

        assert config.auto_escalate_value_threshold == 20000
        assert config.premium_escalate_value_threshold == 500000
        assert config.low_confidence_threshold == 0.5
        assert config.high_risk_categories == frozenset({DomainExpert.WATCHES, DomainExpert.ART})
        assert len(config.tiers) == 3

    def test_premium_below_auto_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="ESCALATION_PREMIUM_VALUE"):
            EscalationSettings(auto_escalate_value=1000, premium_escalate_value=500).validate()

    def test_confidence_out_of_range(self) -> None:
        with pytest.raises(ConfigurationError, match="ESCALATION_LOW_CONFIDENCE"):
            EscalationSettings(low_confidence=1.5).validate()

    def test_unknown_high_risk_domain_rejected(self) -> None:
        settings = EscalationSettings(high_risk_categories=("watches", "clocks"))

        with pytest.raises(ConfigurationError, match="ESCALATION_HIGH_RISK.*clocks"):
            settings.validate()
        with pytest.raises(ConfigurationError, match="clocks"):
            settings.to_config()

    def test_unknown_high_risk_domain_from_env_fails_app_validation(self) -> None:
        env = {"ESCALATION_HIGH_RISK": "clocks", "OPENAI_API_KEY": "sk", "LANGFUSE_ENABLED": "false"}
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.from_env()

        with pytest.raises(ConfigurationError, match="ESCALATION_HIGH_RISK"):
            config.validate()

    def test_high_risk_domains_normalised(self) -> None:
        settings = EscalationSettings(high_risk_categories=(" Silver ",))
        assert settings.high_risk_domains() == frozenset({DomainExpert.SILVER})


class TestAppConfig:
    """Tests for AppConfig."""

    def test_from_env_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = AppConfig.from_env()
            assert config.llm.provider == "openai"
            assert config.langfuse.enabled is True
            assert config.escalation == EscalationSettings()
            assert config.image_dir is None
            assert config.log_level == "INFO"

    def test_from_env_custom_values(self) -> None:
        env = {
            "LLM_PROVIDER": "openai",
            "OPENAI_API_KEY": "sk-test",
            "LLM_MODEL": "gpt-4o-mini",
            "LLM_MAX_TOKENS": "2048",
            "LANGFUSE_ENABLED": "false",
            "EVAL_IMAGE_DIR": "/data/images",
            "LOG_LEVEL": "DEBUG",
            "DEBUG": "true",
        }
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.from_env()
            assert config.llm.api_key == "sk-test"
            assert config.llm.model == "gpt-4o-mini"
            assert config.llm.max_tokens == 2048
            assert config.langfuse.enabled is False
            assert config.image_dir == Path("/data/images")
            assert config.debug is True

    def test_from_env_anthropic(self) -> None:
        env = {"LLM_PROVIDER": "anthropic", "ANTHROPIC_API_KEY": "sk-ant-test"}
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.from_env()
            assert config.llm.api_key == "sk-ant-test"
            assert config.llm.model.startswith("claude")

    def test_from_env_escalation(self) -> None:
        env = {
            "ESCALATION_AUTO_VALUE": "25000",
            "ESCALATION_LOW_CONFIDENCE": "0.4",
            "ESCALATION_HIGH_RISK": "Watches, jewelry,",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = AppConfig.from_env().escalation
            assert settings.auto_escalate_value == 25000
            assert settings.low_confidence == 0.4
            assert settings.high_risk_categories == ("watches", "jewelry")

    def test_validate_all_sections(self) -> None:
        config = AppConfig(
            llm=LLMConfig(api_key="k"),
            langfuse=LangfuseConfig(enabled=False),
            escalation=EscalationSettings(low_confidence=2.0),
        )
        with pytest.raises(ConfigurationError):
            config.validate()


class TestGetConfig:
    """Tests for get_config function."""

    def test_returns_same_instance(self) -> None:
        reset_config()
        with patch.dict(os.environ, {"OPENAI_API_KEY": "test"}, clear=True):
            assert get_config() is get_config()
        reset_config()

    def test_reset_clears_cache(self) -> None:
        reset_config()
        with patch.dict(os.environ, {"OPENAI_API_KEY": "test1"}, clear=True):
            config1 = get_config()

        reset_config()

        with patch.dict(os.environ, {"OPENAI_API_KEY": "test2"}, clear=True):
            config2 = get_config()
            assert config1 is not config2
            assert config2.llm.api_key == "test2"
        reset_config()


class TestLLMConfigFromEnv:
    """Tests for reading the vision client section alone."""

    def test_image_detail(self) -> None:
        with patch.dict(os.environ, {"LLM_IMAGE_DETAIL": "low"}, clear=True):
            assert LLMConfig.from_env().image_detail == "low"

    def test_unknown_image_detail_falls_back(self) -> None:
        with patch.dict(os.environ, {"LLM_IMAGE_DETAIL": "ultra"}, clear=True):
            assert LLMConfig.from_env().image_detail == "high"

    def test_retry_settings(self) -> None:
        env = {"LLM_MAX_RETRIES": "5", "LLM_RETRY_BASE_DELAY": "0.5", "LLM_TIMEOUT": "30"}
        with patch.dict(os.environ, env, clear=True):
            config = LLMConfig.from_env()
            assert config.max_retries == 5
            assert config.retry_base_delay == 0.5
            assert config.timeout == 30.0
