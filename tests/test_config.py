"""Tests for configuration system."""

from pathlib import Path

import pytest

from tab_archiver.config import (
    Settings,
    get_settings,
    override_settings,
    reset_settings,
    settings_summary,
    validate_startup,
)
from tab_archiver.core.errors import ConfigurationError


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self) -> None:
        """Defaults match the browser archiver's retry budgets."""
        settings = Settings()
        assert settings.archive_max_attempts == 5
        assert settings.archive_retry_delay_seconds == 1.0
        assert settings.move_max_attempts == 100
        assert settings.move_retry_delay_seconds == 0.1
        assert settings.reorder_debounce_ms == 100
        assert settings.min_alarm_delay_ms == 1000
        assert settings.log_level == "INFO"

    def test_custom_values(self) -> None:
        settings = Settings(settings_path="/custom/settings.json", archive_max_attempts=3)
        # Use Path comparison to handle platform differences
        assert settings.settings_path == Path("/custom/settings.json")
        assert settings.archive_max_attempts == 3

    def test_bounds(self) -> None:
        with pytest.raises(ValueError):
            Settings(archive_max_attempts=0)
        with pytest.raises(ValueError):
            Settings(move_retry_delay_seconds=-1)
        with pytest.raises(ValueError):
            Settings(log_format="yaml")

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TAB_ARCHIVER_REORDER_DEBOUNCE_MS", "250")
        monkeypatch.setenv("TAB_ARCHIVER_LOG_FORMAT", "json")
        settings = Settings()
        assert settings.reorder_debounce_ms == 250
        assert settings.log_format == "json"


class TestSettingsInjection:
    """Tests for settings dependency injection."""

    def test_get_settings_returns_singleton(self) -> None:
        reset_settings()
        try:
            assert get_settings() is get_settings()
        finally:
            reset_settings()

    def test_override_settings(self) -> None:
        custom = Settings(move_max_attempts=7)
        override_settings(custom)
        try:
            assert get_settings() is custom
        finally:
            reset_settings()

    def test_reset_settings(self) -> None:
        override_settings(Settings(move_max_attempts=7))
        reset_settings()
        try:
            assert get_settings().move_max_attempts == 100
        finally:
            reset_settings()


class TestValidateStartup:
    """Tests for validate_startup."""

    def test_defaults_are_clean(self, tmp_path: Path) -> None:
        assert validate_startup(Settings(settings_path=tmp_path / "s.json")) == []

    def test_lowercase_level_accepted(self, tmp_path: Path) -> None:
        settings = Settings(settings_path=tmp_path / "s.json", log_level="debug")
        assert validate_startup(settings) == []

    def test_invalid_level(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid log level"):
            validate_startup(Settings(log_level="LOUD"))

    def test_directory_path_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="directory"):
            validate_startup(Settings(settings_path=tmp_path))

    def test_warnings(self, tmp_path: Path) -> None:
        settings = Settings(
            settings_path=tmp_path / "s.json",
            archive_max_attempts=100,
            move_retry_delay_seconds=0,
        )
        warnings = validate_startup(settings)
        assert len(warnings) == 2
        assert "Archive retries" in warnings[0]

    def test_summary_is_plain(self, tmp_path: Path) -> None:
        summary = settings_summary(Settings(settings_path=tmp_path / "s.json"))
        assert summary["settings_path"] == str(tmp_path / "s.json")
        assert summary["move_max_attempts"] == 100
