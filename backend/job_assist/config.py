"""
Store env variables and other config settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from backend.job_assist.core.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars to prevent crashes
    )

    # LLM Configuration
    # NOTE: optional for import-time, enforced at startup via require_llm_key().
    openai_api_key: SecretStr | None = Field(default=None, description="Primary LLM provider")
    gemini_api_key: SecretStr | None = Field(default=None, description="Fallback LLM provider")

    openai_model: str = "gpt-4o"
    gemini_model: str = "gemini-2.5-flash"
    timeout_seconds: float = 60
    default_max_tokens: int = 2000

    # MLflow
    mlflow_tracking_enabled: bool = True
    mlflow_tracking_uri: str = "file:./mlruns"
    experiment_name: str = "job_assist_v1"

    # HTTP / logging
    log_level: str = "INFO"
    cors_allow_origins: List[str] = ["*"]

    def require_llm_key(self) -> None:
        """Fail fast when no model provider can be reached."""
        if self.openai_api_key is None and self.gemini_api_key is None:
            raise ConfigurationError(
                "No LLM providers configured. Set OPENAI_API_KEY or GEMINI_API_KEY"
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()
