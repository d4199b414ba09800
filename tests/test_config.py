"""Tests for settings and logging setup."""
import logging

import pytest

from perspectra.config import DEFAULT_CORS_ORIGINS, Settings, load_settings
from perspectra.logconfig import configure_logging

ENV_VARS = [
    "LLM_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_MAX_TOKENS",
    "OPENAI_TEMPERATURE",
    "ROLES_CONFIG_FILE",
    "PERSPECTRA_HOST",
    "PERSPECTRA_PORT",
    "PERSPECTRA_CORS_ORIGINS",
    "PERSPECTRA_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Environment without any relay variables."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for Settings and load_settings."""

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.llm_provider == "openai"
        assert settings.openai_api_key is None
        assert settings.openai_model == "gpt-3.5-turbo"
        assert settings.openai_max_tokens == 1000
        assert settings.openai_temperature == 0.7
        assert settings.port == 3000
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("OPENAI_BASE_URL", "https://example.invalid/v1")
        clean_env.setenv("OPENAI_MODEL", "gpt-4o-mini")
        clean_env.setenv("OPENAI_MAX_TOKENS", "256")
        clean_env.setenv("OPENAI_TEMPERATURE", "0.1")
        clean_env.setenv("PERSPECTRA_CORS_ORIGINS", "https://a.example, https://b.example")

        settings = load_settings()

        assert settings.completion_config() == {
            "api_key": "sk-test",
            "model": "gpt-4o-mini",
            "max_tokens": 256,
            "temperature": 0.1,
            "base_url": "https://example.invalid/v1",
        }
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_base_url_omitted_when_unset(self):
        assert "base_url" not in Settings(openai_api_key="k").completion_config()

    def test_invalid_temperature_rejected(self):
        with pytest.raises(ValueError):
            Settings(openai_temperature=3.0)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_single_handler(self):
        configure_logging("debug")
        configure_logging("warning")

        logger = logging.getLogger("perspectra")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger("perspectra").level == logging.INFO
