"""In-memory activity ledger: tab ID -> last-active epoch milliseconds.

Presence in the ledger is meaningful. A tab without an entry has an
unknown activity history and is never archived; an entry exists only for
tabs observed since the ledger was last cleared.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from tab_archiver.core.models import TAB_ID_NONE
from tab_archiver.core.utils import Clock

logger = logging.getLogger(__name__)


class ActivityLedger:
    """Last-active timestamps per tab.

    ``touch`` and ``forget`` are the only mutators services use. Reads are
    plain mapping-style lookups.

    Thread Safety:
        Not thread-safe. All mutation happens on the event loop thread.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._last_active: dict[int, int] = {}

    def touch(self, tab_id: int, *, only_if_absent: bool = False) -> bool:
        """Record that a tab was active now.

        Args:
            tab_id: The tab to update. Invalid IDs are ignored.
            only_if_absent: Only create a missing entry, never refresh one.

        Returns:
            True if the ledger changed.
        """
        if tab_id == TAB_ID_NONE or tab_id < 0:
            return False
        if only_if_absent and tab_id in self._last_active:
            return False
        self._last_active[tab_id] = self._clock.now_ms()
        logger.debug(f"Updated last active time for tab {tab_id}")
        return True

    def forget(self, tab_id: int) -> bool:
        """Drop a tab's entry. Returns True if one existed."""
        return self._last_active.pop(tab_id, None) is not None

    def get(self, tab_id: int) -> int | None:
        """Last-active time of a tab, or None if unknown."""
        return self._last_active.get(tab_id)

    def snapshot(self) -> dict[int, int]:
        """Copy of the current entries."""
        return dict(self._last_active)

    def clear(self) -> None:
        """Remove every entry (runtime teardown only)."""
        self._last_active.clear()

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._last_active

    def __len__(self) -> int:
        return len(self._last_active)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._last_active))

    def __repr__(self) -> str:
        return f"ActivityLedger(entries={len(self._last_active)})"
