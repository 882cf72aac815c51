"""Time utilities for the tab archiver.

All activity timestamps are epoch milliseconds (int). Services never call
``time`` directly; they go through a clock object so tests can drive time
by hand.

Design Principles:
    - ``now_ms()`` is wall-clock epoch milliseconds
    - ``sleep()`` is the only way services wait (retry delays)
    - A ``time_scale`` above 1 makes the clock run faster than real time,
      which the simulator uses to replay hours of browsing in seconds
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """What services need from a clock."""

    def now_ms(self) -> int:
        """Current time as epoch milliseconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds`` of clock time."""
        ...


def epoch_ms() -> int:
    """Get the current wall-clock time as integer epoch milliseconds.

    Example:
        >>> from tab_archiver.core.utils import epoch_ms
        >>> epoch_ms() > 1_600_000_000_000
        True
    """
    return int(time.time() * 1000)


class SystemClock:
    """Real clock, optionally running ``time_scale`` times faster.

    Elapsed time is measured on the monotonic clock and added to the wall
    clock reading taken at construction, so a scaled clock never jumps
    backwards when the system time is adjusted.
    """

    def __init__(self, time_scale: float = 1.0) -> None:
        if time_scale <= 0:
            raise ValueError("time_scale must be positive")
        self.time_scale = time_scale
        self._epoch_start_ms = epoch_ms()
        self._monotonic_start = time.monotonic()

    def now_ms(self) -> int:
        elapsed = time.monotonic() - self._monotonic_start
        return self._epoch_start_ms + int(elapsed * 1000 * self.time_scale)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds) / self.time_scale)

    def __repr__(self) -> str:
        return f"SystemClock(time_scale={self.time_scale})"


def format_duration_ms(duration_ms: float) -> str:
    """Render a millisecond duration for log messages.

    Example:
        >>> format_duration_ms(90_000)
        '1.50 min'
        >>> format_duration_ms(5_400_000)
        '1.50 h'
    """
    if duration_ms >= 3_600_000:
        return f"{duration_ms / 3_600_000:.2f} h"
    if duration_ms >= 60_000:
        return f"{duration_ms / 60_000:.2f} min"
    return f"{duration_ms / 1000:.2f} s"
