"""Eviction executor: closes a tab whose archive alarm fired.

A fired alarm only means "check again". The tab may have been used,
pinned or grouped since the alarm was set, so eligibility is re-evaluated
against the current tab and ledger before anything is closed.

Whatever happens, the tab's ledger entry and alarm are cleared afterwards,
so a recycled tab ID never inherits stale state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from tab_archiver.core.eligibility import is_archivable
from tab_archiver.core.errors import RetryExhaustedError, TabNotFoundError
from tab_archiver.core.models import TAB_ID_NONE, Tab
from tab_archiver.core.retry import retry_on_transient
from tab_archiver.services.activity import is_effectively_active
from tab_archiver.services.context import ArchiverContext
from tab_archiver.services.scheduler import ExpirationScheduler

logger = logging.getLogger(__name__)


class EvictionOutcome(str, Enum):
    """How an eviction attempt ended."""

    ARCHIVED = "archived"
    NOT_FOUND = "not_found"
    NOT_ELIGIBLE = "not_eligible"
    RETRY_EXHAUSTED = "retry_exhausted"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EvictionResult:
    """Result of one eviction attempt.

    Attributes:
        tab_id: The tab.
        outcome: How the attempt ended.
        attempts: Close calls made (0 if none was made).
        error: Message of the error that stopped the attempt, if any.
    """

    tab_id: int
    outcome: EvictionOutcome
    attempts: int = 0
    error: str | None = None

    @property
    def archived(self) -> bool:
        return self.outcome == EvictionOutcome.ARCHIVED


class EvictionExecutor:
    """Re-validates and closes tabs, then cleans up their state."""

    def __init__(self, context: ArchiverContext, scheduler: ExpirationScheduler) -> None:
        self._ctx = context
        self._scheduler = scheduler

    async def evict(self, tab_id: int, tab: Tab | None = None) -> EvictionResult:
        """Archive a tab if it is still eligible.

        Args:
            tab_id: The tab to archive.
            tab: Already-fetched view of the tab; fetched fresh if omitted.

        Returns:
            EvictionResult. Nothing is raised; failures are logged.
        """
        if self._ctx.settings is None or tab_id == TAB_ID_NONE or tab_id < 0:
            return EvictionResult(tab_id, EvictionOutcome.SKIPPED)

        logger.info(f"Attempting to archive tab {tab_id}")
        try:
            result = await self._evict(tab_id, tab)
        except Exception as e:
            logger.warning(f"Error archiving tab {tab_id}: {e}")
            result = EvictionResult(tab_id, EvictionOutcome.FAILED, error=str(e))
        finally:
            # Cleanup regardless of outcome
            self._ctx.ledger.forget(tab_id)
            await self._scheduler.disarm(tab_id)
        return result

    async def _evict(self, tab_id: int, tab: Tab | None) -> EvictionResult:
        browser = self._ctx.browser

        if tab is None:
            try:
                tab = await browser.get_tab(tab_id)
            except TabNotFoundError:
                logger.info(f"Tab {tab_id} no longer exists. Archival cancelled.")
                return EvictionResult(tab_id, EvictionOutcome.NOT_FOUND)

        active = await is_effectively_active(browser, tab)
        settings = self._ctx.settings
        if settings is None:
            return EvictionResult(tab_id, EvictionOutcome.SKIPPED)

        last_active = self._ctx.ledger.get(tab_id)
        if not is_archivable(tab, last_active, settings, active, self._ctx.clock.now_ms()):
            logger.info(f"Tab {tab_id} no longer meets archive criteria. Archival cancelled.")
            return EvictionResult(tab_id, EvictionOutcome.NOT_ELIGIBLE)

        logger.info(f"Archiving tab {tab_id}: {tab.url}")
        tuning = self._ctx.tuning
        try:
            removal = await retry_on_transient(
                lambda: browser.remove_tab(tab_id),
                max_attempts=tuning.archive_max_attempts,
                delay_seconds=tuning.archive_retry_delay_seconds,
                sleep=self._ctx.clock.sleep,
                description=f"archive tab {tab_id}",
            )
        except RetryExhaustedError as e:
            logger.error(
                f"Failed to archive tab {tab_id} after {e.attempts} attempts "
                f"due to persistent drag/edit lock."
            )
            return EvictionResult(
                tab_id,
                EvictionOutcome.RETRY_EXHAUSTED,
                attempts=e.attempts,
                error=str(e.last_error),
            )
        except TabNotFoundError:
            logger.info(f"Tab {tab_id} was closed before it could be archived")
            return EvictionResult(tab_id, EvictionOutcome.NOT_FOUND)

        logger.info(f"Successfully archived tab {tab_id}")
        return EvictionResult(tab_id, EvictionOutcome.ARCHIVED, attempts=removal.attempts)
