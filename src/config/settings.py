"""Application settings loaded from environment variables and .env."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Notification engine configuration.

    Every field can be overridden by an environment variable of the same
    name (case-insensitive), e.g. ``NOTIFICATION_DAILY_LIMIT=200``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Vendor credentials
    openai_api_key: Optional[SecretStr] = None
    deepseek_api_key: Optional[SecretStr] = None
    llm_base_url: Optional[str] = None  # OpenAI-compatible endpoint override
    llm_max_retries: int = Field(default=0, ge=0)

    # Escalation
    model_escalation: str = "gpt-4o-mini"
    escalation_timeout_seconds: float = Field(default=10.0, gt=0)
    escalation_max_tokens: int = Field(default=300, gt=0)
    escalation_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    escalation_context_messages: int = Field(default=30, gt=0)

    # Quotas and fan-out
    notification_daily_limit: int = Field(default=100, gt=0)
    max_concurrent_evaluations: int = Field(default=10, gt=0)

    # Profile learning
    profile_lookback_days: int = Field(default=30, gt=0)
    profile_batch_concurrency: int = Field(default=4, gt=0)

    # Storage
    database_url: str = "sqlite:///data/notifications.db"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def openai_api_key_str(self) -> Optional[str]:
        """Plain OpenAI key, or None when unset."""
        return self.openai_api_key.get_secret_value() if self.openai_api_key else None

    @property
    def deepseek_api_key_str(self) -> Optional[str]:
        """Plain DeepSeek key, or None when unset."""
        return (
            self.deepseek_api_key.get_secret_value() if self.deepseek_api_key else None
        )

    @property
    def database_path(self) -> str:
        """Filesystem path portion of a ``sqlite:///`` URL."""
        prefix = "sqlite:///"
        if self.database_url.startswith(prefix):
            return self.database_url[len(prefix):]
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
