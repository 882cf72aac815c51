"""Expiration scheduler: one named archive alarm per inactive tab.

Arming always clears the tab's alarm before deciding anything, so repeated
or overlapping arms converge on a single alarm. Each arm/disarm also takes
a fresh generation number for the tab; an arm that finds its generation
superseded by a later arm or disarm when it is about to create the alarm
backs off instead of resurrecting a cancelled timer.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from tab_archiver.core.alarms import alarm_name, is_archive_alarm
from tab_archiver.core.eligibility import protection_reason, remaining_ms
from tab_archiver.core.errors import TabNotFoundError
from tab_archiver.core.models import TAB_ID_NONE, Tab
from tab_archiver.core.utils import format_duration_ms
from tab_archiver.services.activity import is_effectively_active
from tab_archiver.services.context import ArchiverContext

logger = logging.getLogger(__name__)

DueHandler = Callable[[int, Tab], Awaitable[object]]


class ArmOutcome(str, Enum):
    """What an arm() call ended up doing."""

    SKIPPED = "skipped"  # no settings, archiving disabled, or invalid ID
    TAB_GONE = "tab_gone"
    ACTIVE = "active"
    NOT_ARCHIVABLE = "not_archivable"
    SCHEDULED = "scheduled"
    DUE_NOW = "due_now"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass
class ArmResult:
    """Result of arming one tab.

    Attributes:
        tab_id: The tab.
        outcome: What happened.
        delay_ms: Alarm delay when outcome is SCHEDULED.
    """

    tab_id: int
    outcome: ArmOutcome
    delay_ms: int | None = None


def _valid_tab_id(tab_id: int | None) -> bool:
    return tab_id is not None and tab_id != TAB_ID_NONE and tab_id >= 0


class ExpirationScheduler:
    """Creates, replaces and cancels per-tab archive alarms."""

    def __init__(self, context: ArchiverContext, on_due: DueHandler | None = None) -> None:
        """Initialize the scheduler.

        Args:
            context: Shared archiver state.
            on_due: Called for tabs that are already overdue when armed
                (normally EvictionExecutor.evict).
        """
        self._ctx = context
        self._on_due = on_due
        self._generation: dict[int, int] = {}
        self._sequence = 0

    def set_due_handler(self, on_due: DueHandler) -> None:
        """Wire the handler for tabs that are already overdue."""
        self._on_due = on_due

    def _next_generation(self, tab_id: int) -> int:
        self._sequence += 1
        self._generation[tab_id] = self._sequence
        return self._sequence

    async def arm(self, tab_id: int, tab: Tab | None = None) -> ArmResult:
        """Start or reset the archive alarm for a tab.

        Args:
            tab_id: The tab to arm.
            tab: Already-fetched view of the tab, to save a round trip.

        Returns:
            ArmResult describing the decision. Errors are logged and
            reported as FAILED, never raised.
        """
        settings = self._ctx.settings
        if settings is None or not settings.auto_archive_enabled or not _valid_tab_id(tab_id):
            return ArmResult(tab_id, ArmOutcome.SKIPPED)

        generation = self._next_generation(tab_id)
        try:
            return await self._arm(tab_id, tab, generation)
        except Exception as e:
            logger.warning(f"Failed to start archive timer for tab {tab_id}: {e}")
            return ArmResult(tab_id, ArmOutcome.FAILED)

    async def _arm(self, tab_id: int, tab: Tab | None, generation: int) -> ArmResult:
        logger.debug(f"Attempting to start/reset archive timer for tab {tab_id}")
        await self._ctx.alarms.clear_alarm(alarm_name(tab_id))

        if tab is None:
            try:
                tab = await self._ctx.browser.get_tab(tab_id)
            except TabNotFoundError:
                logger.debug(f"Tab {tab_id} not found for timer start/reset")
                return ArmResult(tab_id, ArmOutcome.TAB_GONE)

        if await is_effectively_active(self._ctx.browser, tab):
            logger.debug(f"Tab {tab_id} is effectively active, cancelling timer")
            await self.disarm(tab_id)
            return ArmResult(tab_id, ArmOutcome.ACTIVE)

        # Settings may have been replaced while we were waiting on the browser
        settings = self._ctx.settings
        if settings is None or not settings.auto_archive_enabled:
            return ArmResult(tab_id, ArmOutcome.SKIPPED)

        last_active = self._ctx.ledger.get(tab_id)
        reason = protection_reason(tab, last_active, settings, False)
        if reason is not None or last_active is None:
            logger.debug(f"Tab {tab_id} is not archivable currently ({reason}); timer not started")
            return ArmResult(tab_id, ArmOutcome.NOT_ARCHIVABLE)

        if self._generation.get(tab_id) != generation:
            logger.debug(f"Arm for tab {tab_id} superseded by a later arm/disarm")
            return ArmResult(tab_id, ArmOutcome.SUPERSEDED)

        delay_ms = remaining_ms(settings, last_active, self._ctx.clock.now_ms())
        if delay_ms == 0 and self._on_due is not None:
            logger.info(f"Tab {tab_id} is overdue. Archiving.")
            await self._on_due(tab_id, tab)
            return ArmResult(tab_id, ArmOutcome.DUE_NOW, delay_ms=delay_ms)

        # Tabs not yet past the threshold always get an alarm, never an eviction.
        # Overdue tabs land here only when no due handler is wired.
        delay_ms = max(delay_ms, self._ctx.tuning.min_alarm_delay_ms)
        await self._ctx.alarms.create_alarm(alarm_name(tab_id), delay_ms)
        logger.info(
            f"Starting archive timer for tab {tab_id}, delay: {format_duration_ms(delay_ms)}"
        )
        return ArmResult(tab_id, ArmOutcome.SCHEDULED, delay_ms=delay_ms)

    async def disarm(self, tab_id: int) -> bool:
        """Cancel a tab's archive alarm. Safe if none is pending.

        Returns:
            True if an alarm was actually cancelled.
        """
        if not _valid_tab_id(tab_id):
            return False
        self._generation.pop(tab_id, None)
        logger.debug(f"Cancelling archive timer for tab {tab_id}")
        try:
            return await self._ctx.alarms.clear_alarm(alarm_name(tab_id))
        except Exception as e:
            logger.warning(f"Failed to cancel archive timer for tab {tab_id}: {e}")
            return False

    async def disarm_all(self) -> int:
        """Cancel every archive alarm; other alarms are left alone.

        Returns:
            Number of alarms cancelled.
        """
        self._generation.clear()
        cleared = 0
        for name in await self._ctx.alarms.list_alarms():
            if not is_archive_alarm(name):
                continue
            try:
                if await self._ctx.alarms.clear_alarm(name):
                    cleared += 1
            except Exception as e:
                logger.warning(f"Failed to clear alarm {name}: {e}")
        if cleared:
            logger.info(f"Cleared {cleared} archive timers")
        return cleared
