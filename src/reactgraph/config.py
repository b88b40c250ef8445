"""Application configuration."""

import logging
from functools import lru_cache
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

env_file = find_dotenv(usecwd=True)
if env_file:
    load_dotenv(env_file)
    logger.info(f"Loaded environment variables from {env_file}")


class Settings(BaseSettings):
    """Settings for the reactgraph engine and its adapters."""

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI-compatible API key"
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for OpenAI-compatible API",
    )
    openai_model: str = Field(default="gpt-4o", description="Default OpenAI model")
    openai_temperature: float = Field(default=0.0, description="Sampling temperature")

    step_limit: int = Field(
        default=25, ge=1, description="Maximum node executions per run"
    )
    node_timeout: float | None = Field(
        default=None, gt=0, description="Per-node invocation timeout in seconds"
    )
    max_tool_concurrency: int | None = Field(
        default=None, ge=1, description="Maximum tool calls executed at once"
    )

    model_max_attempts: int = Field(
        default=1, ge=1, description="Model node attempts, 1 disables retries"
    )
    retry_initial_wait: float = Field(
        default=0.5, ge=0, description="First retry backoff in seconds"
    )
    retry_max_wait: float = Field(
        default=8.0, ge=0, description="Upper bound for retry backoff in seconds"
    )

    checkpoint_backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Checkpoint storage backend"
    )
    sessions_db_path: str = Field(
        default="sessions.db", description="SQLite database path for checkpoints"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_prefix="REACTGRAPH_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
