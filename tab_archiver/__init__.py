"""Tab Archiver - closes idle browser tabs and keeps grouped tabs first."""

__version__ = "0.1.0"

# Re-export core components for convenience
from tab_archiver.config import Settings, get_settings
from tab_archiver.core import (
    ActivityLedger,
    ArchiveSettings,
    ConfigurationError,
    ResourceManagerError,
    RetryExhaustedError,
    ScenarioError,
    SettingsStoreError,
    Tab,
    TabArchiverError,
    TabEditLockedError,
    TabNotFoundError,
    TimeUnit,
    Window,
    WindowNotFoundError,
    is_archivable,
)
from tab_archiver.factory import ServiceContainer, ServiceFactory

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "TabArchiverError",
    "TabNotFoundError",
    "WindowNotFoundError",
    "ResourceManagerError",
    "TabEditLockedError",
    "RetryExhaustedError",
    "SettingsStoreError",
    "ConfigurationError",
    "ScenarioError",
    # Models
    "ArchiveSettings",
    "Tab",
    "TimeUnit",
    "Window",
    "ActivityLedger",
    "is_archivable",
    # Wiring
    "ServiceContainer",
    "ServiceFactory",
]
