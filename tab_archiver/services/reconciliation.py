"""Reconciliation scan: rebuild ledger, alarms and order from the browser.

Runs at startup and after every settings change. It does not depend on
event history, so it repairs whatever missed or reordered events left
behind. Running it twice in a row with nothing happening in between
changes nothing the second time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tab_archiver.core.models import Tab
from tab_archiver.services.activity import is_effectively_active
from tab_archiver.services.context import ArchiverContext
from tab_archiver.services.reorder import ReorderEngine
from tab_archiver.services.scheduler import ArmOutcome, ExpirationScheduler

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Summary of one reconciliation pass.

    Attributes:
        windows: Normal windows sorted.
        tabs: Tabs scanned, across every window type.
        active: Tabs found effectively active.
        newly_tracked: Tabs that got their first ledger entry.
        scheduled: Tabs left with an armed alarm.
        moved: Tabs moved while sorting windows.
        errors: One message per tab or window that failed.
    """

    windows: int = 0
    tabs: int = 0
    active: int = 0
    newly_tracked: int = 0
    scheduled: int = 0
    moved: int = 0
    errors: list[str] = field(default_factory=list)


class ReconciliationScan:
    """Full re-derivation of archiver state."""

    def __init__(
        self,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        reorder_engine: ReorderEngine,
    ) -> None:
        self._ctx = context
        self._scheduler = scheduler
        self._reorder = reorder_engine

    async def run(self) -> ReconcileResult:
        """Scan every tab, then sort every normal window.

        Tabs in popup and other non-normal windows get timers like any
        other tab; only sorting is limited to normal windows.

        Returns:
            ReconcileResult. A failure on one tab or window is recorded
            and the scan moves on.
        """
        result = ReconcileResult()
        if self._ctx.settings is None:
            return result

        logger.info("Performing reconciliation scan")
        try:
            tabs = await self._ctx.browser.list_tabs()
        except Exception as e:
            logger.error(f"Error listing tabs during reconciliation scan: {e}")
            result.errors.append(f"list_tabs: {e}")
            tabs = []

        for tab in tabs:
            result.tabs += 1
            try:
                await self._reconcile_tab(tab, result)
            except Exception as e:
                logger.warning(f"Error reconciling tab {tab.id}: {e}")
                result.errors.append(f"tab {tab.id}: {e}")

        try:
            windows = await self._ctx.browser.list_windows()
        except Exception as e:
            logger.error(f"Error listing windows during reconciliation scan: {e}")
            result.errors.append(f"list_windows: {e}")
            return result

        result.windows = len(windows)
        for window in windows:
            try:
                reordered = await self._reorder.reorder(window.id)
                result.moved += len(reordered.moved)
            except Exception as e:
                logger.warning(f"Error sorting window {window.id}: {e}")
                result.errors.append(f"window {window.id}: {e}")

        logger.info(
            f"Reconciliation complete: {result.tabs} tabs, {result.windows} windows sorted, "
            f"{result.scheduled} timers, {result.moved} moved"
        )
        return result

    async def _reconcile_tab(self, tab: Tab, result: ReconcileResult) -> None:
        ledger = self._ctx.ledger
        if await is_effectively_active(self._ctx.browser, tab):
            result.active += 1
            ledger.touch(tab.id)
            await self._scheduler.disarm(tab.id)
            return

        # Unknown tabs start their countdown now
        if ledger.touch(tab.id, only_if_absent=True):
            result.newly_tracked += 1
        armed = await self._scheduler.arm(tab.id, tab)
        if armed.outcome == ArmOutcome.SCHEDULED:
            result.scheduled += 1
