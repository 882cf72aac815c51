"""Alarm service on top of the asyncio event loop.

Each alarm is a ``loop.call_later`` handle keyed by name. Creating an
alarm under an existing name cancels the old handle first, so a name is
never pending twice. When a handle fires, its entry is removed and the
listeners are called on a new task; the service keeps a reference to
that task until it finishes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from tab_archiver.core.models import AlarmFired
from tab_archiver.ports.alarms import AlarmListener

logger = logging.getLogger(__name__)

_FIRE_SLACK_SECONDS = 0.001


class AsyncioAlarmService:
    """AlarmServicePort backed by ``loop.call_later``.

    Args:
        time_scale: Alarms fire ``time_scale`` times sooner than requested.
            Used by the simulator together with a scaled SystemClock.
    """

    def __init__(self, time_scale: float = 1.0) -> None:
        if time_scale <= 0:
            raise ValueError("time_scale must be positive")
        self.time_scale = time_scale
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._listeners: list[AlarmListener] = []
        self._firing: set[asyncio.Task[Any]] = set()

    async def create_alarm(self, name: str, delay_ms: float) -> None:
        loop = asyncio.get_running_loop()
        existing = self._handles.pop(name, None)
        if existing is not None:
            existing.cancel()
        # Loop timers may run up to one clock tick early; never fire before the delay
        delay_seconds = max(0.0, delay_ms) / 1000 / self.time_scale + _FIRE_SLACK_SECONDS
        self._handles[name] = loop.call_later(delay_seconds, self._fire, name)
        logger.debug(f"Alarm {name} set for {delay_ms:.0f}ms")

    async def clear_alarm(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def list_alarms(self) -> list[str]:
        return list(self._handles)

    def add_listener(self, listener: AlarmListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AlarmListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _fire(self, name: str) -> None:
        self._handles.pop(name, None)
        task = asyncio.create_task(self._deliver(AlarmFired(name=name)), name=f"alarm-{name}")
        self._firing.add(task)
        task.add_done_callback(self._firing.discard)

    async def _deliver(self, event: AlarmFired) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.error(f"Alarm listener failed for {event.name}: {e}", exc_info=True)

    async def close(self) -> None:
        """Cancel pending alarms and wait for deliveries in progress."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        if self._firing:
            await asyncio.gather(*list(self._firing), return_exceptions=True)
