"""Scheduling configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class ScheduleConfig(BaseSettings):
    """Scheduling core configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Hosted database (PostgREST endpoint of the portal's project)
    store_url: str = Field(
        default="",
        description="Base URL of the hosted database, e.g. https://xyz.supabase.co",
    )
    store_api_key: str = Field(
        default="",
        description="API key sent as apikey header and bearer token",
    )
    store_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout for store HTTP calls",
    )
    store_max_attempts: int = Field(
        default=3,
        description="Attempts for retryable store calls (transient failures only)",
    )

    # Calendar
    timezone: str = Field(
        default="UTC",
        description="IANA timezone in which course times-of-day are evaluated",
    )
    query_window_days: int = Field(
        default=180,
        description="Days before and after today covered by the default schedule view",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: ScheduleConfig | None = None


def get_config() -> ScheduleConfig:
    """Get the scheduling configuration singleton.

    Returns:
        ScheduleConfig: Scheduling configuration instance
    """
    global _config
    if _config is None:
        _config = ScheduleConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
