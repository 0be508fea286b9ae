"""Runtime settings for the pipeline engine.

Settings come from environment variables prefixed with ``CANARYPIPE_``
(and an optional ``.env`` file). They cover defaults that pipeline
configuration leaves unset and the logging setup.

Environment Variables:
    CANARYPIPE_LOG_LEVEL: Minimum log level (default: INFO)
    CANARYPIPE_JSON_LOGS: Emit JSON logs (default: true)
    CANARYPIPE_DEFAULT_CHECK_INTERVAL: Analysis interval when a check sets none (default: 1m)
    CANARYPIPE_DEFAULT_QUERY_TIMEOUT: Query timeout when a check sets none (default: 30s)
    CANARYPIPE_RESTART_POLL_INTERVAL: How often restarts are polled (default: 10s)
    CANARYPIPE_DEFAULT_TERRAFORM_WORKSPACE: Workspace when the app sets none (default: default)

Example:
    >>> settings = get_settings()
    >>> settings.default_query_timeout
    datetime.timedelta(seconds=30)
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from canarypipe.schemas.duration import Duration


class RunnerSettings(BaseSettings):
    """Settings shared by every pipeline run in the process."""

    model_config = SettingsConfigDict(
        env_prefix="CANARYPIPE_",
        env_file=".env",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_logs: bool = Field(default=True, description="Render logs as JSON")
    default_check_interval: Duration = Field(
        default=timedelta(minutes=1),
        description="Analysis check interval when the check configures none",
    )
    default_query_timeout: Duration = Field(
        default=timedelta(seconds=30),
        description="Per-query timeout when the check configures none",
    )
    restart_poll_interval: Duration = Field(
        default=timedelta(seconds=10),
        description="How often container restarts are polled during analysis",
    )
    default_terraform_workspace: str = Field(
        default="default",
        min_length=1,
        description="Terraform workspace when the application configures none",
    )

    @field_validator("default_check_interval", "default_query_timeout", "restart_poll_interval")
    @classmethod
    def _positive(cls, v: timedelta) -> timedelta:
        """Validate that interval settings are positive."""
        if v <= timedelta(0):
            raise ValueError("must be a positive duration")
        return v


@lru_cache(maxsize=1)
def get_settings() -> RunnerSettings:
    """Load settings once per process."""
    return RunnerSettings()


def reset_settings() -> None:
    """Drop cached settings (for testing)."""
    get_settings.cache_clear()


__all__ = ["RunnerSettings", "get_settings", "reset_settings"]
