"""Application configuration."""
from __future__ import annotations

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised at startup when the service cannot run with the given settings."""


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    gemini_model: str = "gemini-1.5-pro"
    gemini_temperature: float = 0.7
    groq_api_key: str = ""
    groq_model: str = "deepseek-r1-distill-llama-70b"

    default_provider: str = ""
    provider_timeout_seconds: float = 90.0
    max_output_tokens: int = 4000

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["*"]

    log_level: str = "INFO"
    log_file: str = ""

    telemetry_enabled: bool = True
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENVIRONMENT", "ENVIRONMENT"),
    )
    release: str = "1.0.0"


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, with keyword overrides for callers and tests."""
    return Settings(**overrides)
