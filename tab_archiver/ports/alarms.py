"""Protocol interface for the alarm (timer) service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from tab_archiver.core.models import AlarmFired

AlarmListener = Callable[[AlarmFired], Awaitable[None]]


class AlarmServicePort(Protocol):
    """Named one-shot alarms.

    Names are unique: creating an alarm with a name that already exists
    replaces the old one. A fired alarm is removed before listeners run.
    """

    async def create_alarm(self, name: str, delay_ms: float) -> None:
        """Schedule ``name`` to fire after ``delay_ms`` milliseconds."""
        ...

    async def clear_alarm(self, name: str) -> bool:
        """Cancel ``name``. Returns True if an alarm was pending."""
        ...

    async def list_alarms(self) -> list[str]:
        """Names of all pending alarms."""
        ...

    def add_listener(self, listener: AlarmListener) -> None:
        """Subscribe to fired alarms."""
        ...

    def remove_listener(self, listener: AlarmListener) -> None:
        """Unsubscribe a listener added with add_listener."""
        ...
