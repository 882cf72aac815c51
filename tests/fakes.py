"""Test doubles and factories shared by unit and integration tests."""

from __future__ import annotations

import asyncio
from typing import Any

from tab_archiver.core.models import AlarmFired, ArchiveSettings, Tab, TimeUnit
from tab_archiver.ports.alarms import AlarmListener

START_MS = 1_700_000_000_000
MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS


class FakeClock:
    """Manually driven clock. ``sleep`` records the delay and advances time."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(seconds * 1000)
        await asyncio.sleep(0)


class FakeAlarmService:
    """AlarmServicePort that records calls and only fires on demand.

    With a clock, the absolute due time of each pending alarm is kept in
    ``due_at`` so tests can fire alarms in the order they would come due.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.alarms: dict[str, float] = {}
        self.due_at: dict[str, int] = {}
        self.created: list[tuple[str, float]] = []
        self.cleared: list[str] = []
        self._listeners: list[AlarmListener] = []

    async def create_alarm(self, name: str, delay_ms: float) -> None:
        self.alarms[name] = delay_ms
        if self.clock is not None:
            self.due_at[name] = self.clock.now + int(delay_ms)
        self.created.append((name, delay_ms))

    async def clear_alarm(self, name: str) -> bool:
        self.cleared.append(name)
        self.due_at.pop(name, None)
        return self.alarms.pop(name, None) is not None

    async def list_alarms(self) -> list[str]:
        return list(self.alarms)

    def add_listener(self, listener: AlarmListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AlarmListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def fire(self, name: str) -> None:
        """Fire ``name`` now, as the real service would when its delay ends."""
        self.alarms.pop(name, None)
        self.due_at.pop(name, None)
        for listener in list(self._listeners):
            await listener(AlarmFired(name=name))


def make_tab(tab_id: int, window_id: int = 1, index: int = 0, **overrides: Any) -> Tab:
    """Build a Tab view with sensible defaults."""
    return Tab(id=tab_id, window_id=window_id, index=index, **overrides)


def minutes_settings(value: int = 60, **overrides: Any) -> ArchiveSettings:
    """ArchiveSettings with a threshold in minutes."""
    return ArchiveSettings(
        archive_time_value=value,
        archive_time_unit=TimeUnit.MINUTES,
        **overrides,
    )
