# ABOUTME: Configuration for section autosave loaded from environment variables via pydantic-settings
# ABOUTME: Covers debounce/backoff timings, the section API endpoint, health checks and logging

import logging
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AutoSaveSettings(BaseSettings):
    """Autosave configuration loaded from environment variables with AUTOSAVE_ prefix."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTOSAVE_",
        case_sensitive=False,
        extra="ignore"
    )

    # Debounce window before an edit is persisted
    delay_ms: int = Field(default=2000, ge=0)

    # Automatic retries after a failed save; base unit of the linear backoff
    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=3000, ge=0)

    # When disabled, observe/save calls are no-ops
    enabled: bool = True

    # Section persistence API
    api_base_url: str = "http://localhost:3000"
    api_timeout_seconds: float = Field(default=30.0, gt=0)

    # Connectivity polling for non-browser environments
    health_check_url: Optional[str] = None
    health_check_interval_seconds: float = Field(default=15.0, gt=0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0


def configure_logging(level: Optional[str] = None):
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# Singleton instance for global access
settings = AutoSaveSettings()
