"""Core components for the tab archiver."""

from tab_archiver.core.alarms import (
    ARCHIVE_ALARM_PREFIX,
    alarm_name,
    is_archive_alarm,
    tab_id_from_alarm,
)
from tab_archiver.core.eligibility import (
    is_archivable,
    protection_reason,
    remaining_ms,
    threshold_ms,
)
from tab_archiver.core.errors import (
    ConfigurationError,
    ResourceManagerError,
    RetryExhaustedError,
    ScenarioError,
    SettingsStoreError,
    TabArchiverError,
    TabEditLockedError,
    TabNotFoundError,
    WindowNotFoundError,
)
from tab_archiver.core.ledger import ActivityLedger
from tab_archiver.core.models import (
    TAB_GROUP_ID_NONE,
    TAB_ID_NONE,
    WINDOW_ID_NONE,
    AlarmFired,
    ArchiverEvent,
    ArchiveSettings,
    SettingsChanged,
    Tab,
    TabActivated,
    TabChange,
    TabCreated,
    TabGroupUpdated,
    TabMoved,
    TabRemoved,
    TabUpdated,
    TimeUnit,
    Window,
    WindowFocusChanged,
)
from tab_archiver.core.retry import RetryResult, is_edit_lock_error, retry_on_transient
from tab_archiver.core.utils import Clock, SystemClock, epoch_ms

__all__ = [
    # Errors
    "ConfigurationError",
    "ResourceManagerError",
    "RetryExhaustedError",
    "ScenarioError",
    "SettingsStoreError",
    "TabArchiverError",
    "TabEditLockedError",
    "TabNotFoundError",
    "WindowNotFoundError",
    # Models
    "TAB_GROUP_ID_NONE",
    "TAB_ID_NONE",
    "WINDOW_ID_NONE",
    "ArchiveSettings",
    "Tab",
    "TabChange",
    "TimeUnit",
    "Window",
    # Events
    "AlarmFired",
    "ArchiverEvent",
    "SettingsChanged",
    "TabActivated",
    "TabCreated",
    "TabGroupUpdated",
    "TabMoved",
    "TabRemoved",
    "TabUpdated",
    "WindowFocusChanged",
    # Rules and helpers
    "ARCHIVE_ALARM_PREFIX",
    "ActivityLedger",
    "Clock",
    "RetryResult",
    "SystemClock",
    "alarm_name",
    "epoch_ms",
    "is_archivable",
    "is_archive_alarm",
    "is_edit_lock_error",
    "protection_reason",
    "remaining_ms",
    "retry_on_transient",
    "tab_id_from_alarm",
    "threshold_ms",
]
