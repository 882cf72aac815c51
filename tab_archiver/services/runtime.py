"""Archiver runtime: subscribes the dispatcher to its event sources.

Lifecycle:
- start(): idempotent. Loads settings, subscribes to browser, alarm and
  settings notifications, then runs the startup reconciliation scan.
- stop(): cancels debounced reorders, waits for in-flight alarm handling,
  clears archive alarms and the ledger, unsubscribes.

Browser events are handled in the order the browser delivers them.
Fired alarms are handled on their own tasks; the runtime holds a strong
reference to each until it finishes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from tab_archiver.core.models import AlarmFired, ArchiverEvent, SettingsChanged

if TYPE_CHECKING:
    from tab_archiver.ports.settings_store import SettingsStorePort
    from tab_archiver.services.context import ArchiverContext
    from tab_archiver.services.dispatcher import DispatchResult, EventDispatcher
    from tab_archiver.services.reconciliation import ReconcileResult, ReconciliationScan
    from tab_archiver.services.scheduler import ExpirationScheduler

logger = logging.getLogger(__name__)


class ArchiverRuntime:
    """Owns the subscriptions and the background tasks of one archiver."""

    def __init__(
        self,
        context: ArchiverContext,
        dispatcher: EventDispatcher,
        scheduler: ExpirationScheduler,
        reconciliation: ReconciliationScan,
        settings_store: SettingsStorePort,
    ) -> None:
        self._ctx = context
        self._dispatcher = dispatcher
        self._scheduler = scheduler
        self._reconciliation = reconciliation
        self._settings_store = settings_store

        self._running = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._events_handled = 0
        self._failed_actions = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> ReconcileResult | None:
        """Start handling events.

        Returns:
            The startup reconciliation result, or None if already running.
        """
        if self._running:
            logger.debug("Archiver runtime already running")
            return None

        settings = self._ctx.replace_settings(await self._settings_store.load())
        logger.info(
            f"Tab archiver initialized with settings: "
            f"{settings.model_dump(by_alias=True, mode='json')}"
        )

        self._ctx.browser.add_listener(self._on_browser_event)
        self._ctx.alarms.add_listener(self._on_alarm)
        self._settings_store.add_listener(self._on_settings_changed)
        self._running = True

        return await self._reconciliation.run()

    async def stop(self) -> None:
        """Stop handling events and release all archiver state."""
        if not self._running:
            return

        logger.info("Stopping tab archiver...")
        self._ctx.browser.remove_listener(self._on_browser_event)
        self._ctx.alarms.remove_listener(self._on_alarm)
        self._settings_store.remove_listener(self._on_settings_changed)
        self._running = False

        cancelled = await self._dispatcher.cancel_pending_reorders()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        cleared = await self._scheduler.disarm_all()
        self._ctx.ledger.clear()
        logger.info(
            f"Tab archiver stopped: {self._events_handled} events handled, "
            f"{cleared} timers cleared, {cancelled} pending reorders cancelled"
        )

    def get_stats(self) -> dict[str, Any]:
        """Current runtime statistics."""
        return {
            "running": self._running,
            "events_handled": self._events_handled,
            "failed_actions": self._failed_actions,
            "tracked_tabs": len(self._ctx.ledger),
            "in_flight_alarms": len(self._tasks),
            "pending_reorders": len(self._dispatcher.pending_reorders),
        }

    async def wait_idle(self) -> None:
        """Wait until every alarm task started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- listeners -----------------------------------------------------------

    async def _handle(self, event: ArchiverEvent) -> DispatchResult | None:
        if not self._running:
            return None
        result = await self._dispatcher.dispatch(event)
        self._events_handled += 1
        self._failed_actions += len(result.failed)
        return result

    async def _on_browser_event(self, event: ArchiverEvent) -> None:
        await self._handle(event)

    async def _on_settings_changed(self, event: SettingsChanged) -> None:
        await self._handle(event)

    async def _on_alarm(self, event: AlarmFired) -> None:
        task = asyncio.create_task(self._handle(event), name=f"alarm-{event.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
