"""Protocol interface for archive settings persistence."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from tab_archiver.core.models import ArchiveSettings, SettingsChanged

SettingsListener = Callable[[SettingsChanged], Awaitable[None]]


class SettingsStorePort(Protocol):
    """Load/save ArchiveSettings and announce changes."""

    async def load(self) -> ArchiveSettings:
        """Current settings; defaults when nothing usable is stored."""
        ...

    async def save(self, settings: ArchiveSettings) -> None:
        """Persist settings and notify listeners.

        Raises:
            SettingsStoreError: If the settings cannot be written.
        """
        ...

    def add_listener(self, listener: SettingsListener) -> None:
        """Subscribe to settings changes."""
        ...

    def remove_listener(self, listener: SettingsListener) -> None:
        """Unsubscribe a listener added with add_listener."""
        ...
