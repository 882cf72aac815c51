"""Window reorder engine.

Keeps every ungrouped, unpinned tab after the last grouped tab of its
window. Pinned tabs are never moved. Violators are moved one at a time to
just past the last grouped tab, in ascending index order, so their relative
order is preserved. Running the engine on an already sorted window moves
nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tab_archiver.core.errors import RetryExhaustedError, TabNotFoundError
from tab_archiver.core.models import WINDOW_ID_NONE, Tab
from tab_archiver.core.retry import retry_on_transient
from tab_archiver.services.context import ArchiverContext

logger = logging.getLogger(__name__)


@dataclass
class ReorderResult:
    """Result of sorting one window.

    Attributes:
        window_id: The window.
        moved: Tab IDs moved, in move order.
        skipped: Tab IDs that needed moving but could not be moved.
    """

    window_id: int
    moved: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.moved)


def plan_reorder(tabs: Sequence[Tab]) -> tuple[list[Tab], int]:
    """Find the tabs that sit before the last grouped tab.

    Args:
        tabs: All tabs of one window.

    Returns:
        (violators sorted by index, index of the last grouped tab). The
        boundary is -1 and the list empty when the window has no groups.
    """
    unpinned = [t for t in tabs if not t.pinned]
    grouped = [t for t in unpinned if t.grouped]
    if not grouped:
        return [], -1

    boundary = max(t.index for t in grouped)
    violators = sorted(
        (t for t in unpinned if not t.grouped and t.index < boundary),
        key=lambda t: t.index,
    )
    return violators, boundary


class ReorderEngine:
    """Moves ungrouped tabs behind grouped tabs."""

    def __init__(self, context: ArchiverContext) -> None:
        self._ctx = context

    async def reorder(self, window_id: int) -> ReorderResult:
        """Sort one window.

        Args:
            window_id: The window to sort.

        Returns:
            ReorderResult. Failures are logged per tab and never raised.
        """
        result = ReorderResult(window_id)
        settings = self._ctx.settings
        if settings is None or not settings.tab_sorting_enabled:
            return result
        if window_id == WINDOW_ID_NONE or window_id < 0:
            return result

        try:
            tabs = await self._ctx.browser.list_tabs(window_id=window_id)
        except Exception as e:
            logger.warning(f"Failed to list tabs for window {window_id}: {e}")
            return result
        if not tabs:
            return result

        violators, boundary = plan_reorder(tabs)
        if not violators:
            return result

        target = boundary + 1
        logger.debug(
            f"Window {window_id}: moving {len(violators)} ungrouped tab(s) "
            f"after grouped boundary {boundary}"
        )
        tuning = self._ctx.tuning
        for tab in violators:
            try:
                await retry_on_transient(
                    lambda tab_id=tab.id: self._ctx.browser.move_tab(tab_id, target),
                    max_attempts=tuning.move_max_attempts,
                    delay_seconds=tuning.move_retry_delay_seconds,
                    sleep=self._ctx.clock.sleep,
                    description=f"move tab {tab.id}",
                )
            except RetryExhaustedError as e:
                logger.error(f"Failed to move tab {tab.id} after {e.attempts} attempts")
                result.skipped.append(tab.id)
                continue
            except TabNotFoundError:
                logger.debug(f"Tab {tab.id} closed before it could be moved")
                result.skipped.append(tab.id)
                continue
            except Exception as e:
                logger.warning(f"Error moving tab {tab.id}: {e}")
                result.skipped.append(tab.id)
                continue
            result.moved.append(tab.id)

        if result.moved:
            logger.info(f"Sorted window {window_id}: moved tabs {result.moved}")
        return result
