"""Adapters implementing the port protocols."""

from tab_archiver.adapters.asyncio_alarms import AsyncioAlarmService
from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.adapters.json_settings_store import SETTINGS_KEY, JsonSettingsStore

__all__ = [
    "AsyncioAlarmService",
    "InMemoryBrowser",
    "JsonSettingsStore",
    "SETTINGS_KEY",
]
