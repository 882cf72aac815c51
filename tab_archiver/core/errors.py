"""Custom exceptions for the tab archiver."""

from __future__ import annotations


class TabArchiverError(Exception):
    """Base exception for all tab archiver errors."""

    pass


class TabNotFoundError(TabArchiverError):
    """Raised when a tab ID doesn't exist (closed or never existed)."""

    def __init__(self, tab_id: int) -> None:
        self.tab_id = tab_id
        super().__init__(f"Tab not found: {tab_id}")


class WindowNotFoundError(TabArchiverError):
    """Raised when a window ID doesn't exist."""

    def __init__(self, window_id: int) -> None:
        self.window_id = window_id
        super().__init__(f"Window not found: {window_id}")


class ResourceManagerError(TabArchiverError):
    """Raised when a browser operation fails for an unexpected reason."""

    pass


class TabEditLockedError(ResourceManagerError):
    """Raised when a tab cannot be edited right now.

    The browser refuses edits while the user is dragging a tab. The lock
    clears on its own, so callers retry after a short delay.
    """

    def __init__(self, tab_id: int, message: str | None = None) -> None:
        self.tab_id = tab_id
        super().__init__(
            message or f"Tabs cannot be edited right now (user may be dragging a tab): {tab_id}"
        )


class RetryExhaustedError(TabArchiverError):
    """Raised when a transient failure persists through every retry attempt."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


class SettingsStoreError(TabArchiverError):
    """Raised when archive settings cannot be persisted."""

    pass


class ConfigurationError(TabArchiverError):
    """Raised when configuration is invalid."""

    pass


class ScenarioError(TabArchiverError):
    """Raised when a simulation scenario file is malformed."""

    def __init__(self, message: str, step_index: int | None = None) -> None:
        self.step_index = step_index
        location = f" (step {step_index})" if step_index is not None else ""
        super().__init__(f"{message}{location}")
