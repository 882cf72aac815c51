"""Dispatch tracing and timing utilities for the tab archiver.

Every event handled by the dispatcher runs inside a :class:`DispatchContext`
so log lines emitted deep inside the scheduler or the reorder engine can be
tied back to the notification that caused them. The context lives in a
``contextvars.ContextVar`` and therefore follows the handling coroutine
across ``await`` points and into tasks it spawns.

Usage:
    from tab_archiver.core.tracing import dispatch_context, TimingContext

    with dispatch_context("TabActivated", tab_id=12, window_id=1) as ctx:
        timing = TimingContext()
        with timing.measure("snapshot"):
            ...
        logger.debug(f"{ctx.event_name} took {timing.total_ms():.2f}ms")
"""

from __future__ import annotations

import contextvars
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextvars import Token


@dataclass
class DispatchContext:
    """Context information for one dispatched event.

    Attributes:
        event_id: Short unique identifier (first 8 hex chars of a UUID).
        event_name: Event class name, e.g. ``"TabUpdated"``.
        tab_id: Tab the event is about, if any.
        window_id: Window the event is about, if any.
        started_at: When handling started.
    """

    event_id: str
    event_name: str
    tab_id: int | None = None
    window_id: int | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        event_name: str,
        tab_id: int | None = None,
        window_id: int | None = None,
    ) -> DispatchContext:
        """Create a new context with an auto-generated ID."""
        return cls(
            event_id=uuid.uuid4().hex[:8],
            event_name=event_name,
            tab_id=tab_id,
            window_id=window_id,
        )

    def elapsed_ms(self) -> float:
        """Milliseconds since handling started."""
        return (datetime.now(timezone.utc) - self.started_at).total_seconds() * 1000


_context: contextvars.ContextVar[DispatchContext | None] = contextvars.ContextVar(
    "dispatch_context", default=None
)


def get_current_context() -> DispatchContext | None:
    """Get the context of the event currently being handled, if any."""
    return _context.get()


def set_context(ctx: DispatchContext) -> Token[DispatchContext | None]:
    """Set the current dispatch context.

    Returns:
        A token for :func:`clear_context`.
    """
    return _context.set(ctx)


def clear_context(token: Token[DispatchContext | None]) -> None:
    """Reset the context to its previous value."""
    _context.reset(token)


@contextmanager
def dispatch_context(
    event_name: str,
    tab_id: int | None = None,
    window_id: int | None = None,
) -> Generator[DispatchContext, None, None]:
    """Context manager that sets a fresh DispatchContext for its body.

    Example:
        with dispatch_context("AlarmFired", tab_id=7) as ctx:
            logger.info(f"handling {ctx.event_id}")
    """
    ctx = DispatchContext.create(event_name, tab_id=tab_id, window_id=window_id)
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        clear_context(token)


@dataclass
class TimingContext:
    """Per-phase timings within one dispatch.

    Attributes:
        timings: Phase name -> duration in milliseconds.
        start: perf_counter value at creation.
    """

    timings: dict[str, float] = field(default_factory=dict)
    start: float = field(default_factory=time.perf_counter)

    @contextmanager
    def measure(self, name: str) -> Generator[None, None, None]:
        """Measure the duration of a named phase."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.timings[name] = (time.perf_counter() - t0) * 1000

    def total_ms(self) -> float:
        """Total elapsed time since creation, in milliseconds."""
        return (time.perf_counter() - self.start) * 1000

    def summary(self) -> str:
        """One-line rendering for debug logs, e.g. ``plan=0.02ms apply=3.10ms``."""
        return " ".join(f"{name}={ms:.2f}ms" for name, ms in self.timings.items())
