"""Configuration system for the tab archiver.

Process-level tuning (logging, retry budgets, debounce) comes from the
environment via pydantic-settings. The user-facing archive settings
(threshold, feature flags) are not configured here; they live in the
settings store and arrive as ArchiveSettings snapshots.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from tab_archiver.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Tab Archiver Configuration."""

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format",
    )

    # Settings store
    settings_path: Path = Field(
        default=Path("./.tab-archiver/settings.json"),
        description="Path to the JSON file holding archive settings",
    )
    settings_lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Maximum wait for the settings file lock",
    )

    # Archiving
    archive_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts to close a tab that is locked by a drag",
    )
    archive_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between close attempts",
    )
    min_alarm_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Shortest archive alarm ever scheduled; overdue tabs are archived at once",
    )

    # Sorting
    move_max_attempts: int = Field(
        default=100,
        ge=1,
        description="Attempts to move one tab while a drag is in progress",
    )
    move_retry_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between move attempts",
    )
    reorder_debounce_ms: int = Field(
        default=100,
        ge=0,
        description="Delay before re-sorting a window after a tab closes",
    )

    model_config = {
        "env_prefix": "TAB_ARCHIVER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def validate_startup(settings: Settings) -> list[str]:
    """Check a configuration before the runtime starts.

    Args:
        settings: Settings to check.

    Returns:
        Human-readable warnings for suspicious but usable values.

    Raises:
        ConfigurationError: If the configuration cannot work.
    """
    if settings.log_level.upper() not in _VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log level {settings.log_level!r}; "
            f"expected one of {sorted(_VALID_LOG_LEVELS)}"
        )

    warnings: list[str] = []
    archive_budget = settings.archive_max_attempts * settings.archive_retry_delay_seconds
    if archive_budget > 60:
        warnings.append(
            f"Archive retries may hold a tab for {archive_budget:.0f}s "
            f"({settings.archive_max_attempts} x {settings.archive_retry_delay_seconds}s)"
        )
    if settings.move_retry_delay_seconds == 0 and settings.move_max_attempts > 1:
        warnings.append("move_retry_delay_seconds is 0; move retries will spin")
    if settings.settings_path.exists() and settings.settings_path.is_dir():
        raise ConfigurationError(f"settings_path is a directory: {settings.settings_path.name}")
    return warnings


# Settings singleton with dependency injection support
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings instance (lazy-loaded singleton).

    Example:
        from tab_archiver.config import get_settings
        settings = get_settings()
        print(settings.settings_path)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override the settings instance (for testing)."""
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to None (forces reload on next get_settings call)."""
    global _settings
    _settings = None


def settings_summary(settings: Settings) -> dict[str, Any]:
    """Settings as plain values, for ``--verbose`` CLI output."""
    data = settings.model_dump()
    data["settings_path"] = str(settings.settings_path)
    return data
