"""Application settings.

Centralizes the environment-driven configuration so the server, the CLI and
the tests build components from one explicit object instead of reading
environment variables on their own.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


class Settings(BaseModel):
    """Runtime configuration for the relay."""

    model_config = ConfigDict(frozen=True)

    llm_provider: str = Field(default="openai", description="Completion backend type")
    openai_api_key: str | None = Field(default=None, description="Backend API key")
    openai_base_url: str | None = Field(
        default=None,
        description="OpenAI-compatible endpoint; SDK default when unset"
    )
    openai_model: str = Field(default="gpt-3.5-turbo")
    openai_max_tokens: int = Field(default=1000, ge=1)
    openai_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    roles_config_file: str | None = Field(
        default=None,
        description="YAML role mapping; bundled defaults when unset"
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = Field(default="info")

    def completion_config(self) -> dict:
        """Keyword arguments for ``create_completion_source``."""
        config = {
            "api_key": self.openai_api_key or "",
            "model": self.openai_model,
            "max_tokens": self.openai_max_tokens,
            "temperature": self.openai_temperature,
        }
        if self.openai_base_url:
            config["base_url"] = self.openai_base_url
        return config


def _split_origins(raw: str | None) -> list[str]:
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings() -> Settings:
    """Build settings from environment variables (and ``.env`` if present).

    Environment variables:
        OPENAI_API_KEY: Backend API key
        OPENAI_BASE_URL: Optional OpenAI-compatible base URL
        OPENAI_MODEL: Model name (default: gpt-3.5-turbo)
        OPENAI_MAX_TOKENS: Max tokens per completion (default: 1000)
        OPENAI_TEMPERATURE: Sampling temperature (default: 0.7)
        LLM_PROVIDER: Backend type (default: openai)
        ROLES_CONFIG_FILE: Path to a YAML role mapping
        PERSPECTRA_HOST / PERSPECTRA_PORT: Bind address (default: 127.0.0.1:3000)
        PERSPECTRA_CORS_ORIGINS: Comma separated allowed origins
        PERSPECTRA_LOG_LEVEL: Log level name (default: info)
    """
    load_dotenv()

    return Settings(
        llm_provider=os.getenv("LLM_PROVIDER", "openai"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
        openai_max_tokens=int(os.getenv("OPENAI_MAX_TOKENS", "1000")),
        openai_temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.7")),
        roles_config_file=os.getenv("ROLES_CONFIG_FILE") or None,
        host=os.getenv("PERSPECTRA_HOST", "127.0.0.1"),
        port=int(os.getenv("PERSPECTRA_PORT", "3000")),
        cors_origins=_split_origins(os.getenv("PERSPECTRA_CORS_ORIGINS")),
        log_level=os.getenv("PERSPECTRA_LOG_LEVEL", "info"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return load_settings()
