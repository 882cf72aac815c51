"""Port interfaces for the tab archiver."""

from tab_archiver.ports.alarms import AlarmListener, AlarmServicePort
from tab_archiver.ports.browser import BrowserPort, EventListener
from tab_archiver.ports.settings_store import SettingsListener, SettingsStorePort

__all__ = [
    "AlarmListener",
    "AlarmServicePort",
    "BrowserPort",
    "EventListener",
    "SettingsListener",
    "SettingsStorePort",
]
