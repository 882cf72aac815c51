"""In-memory browser: windows and tabs held in dicts.

Implements BrowserPort with browser-like index semantics (closing a tab
shifts the ones after it, moving removes then re-inserts) and emits the
same lifecycle events a real browser would. Besides the port methods it
offers user-level helpers (open, activate, focus, close, group, pin, drag)
that tests and the simulator use to script a browsing session.

Events are queued and delivered one at a time by a single pump task, in
the order they were produced. Handlers that act on the browser therefore
never re-enter each other; their own events are queued behind them.
Call :meth:`drain` to wait until everything queued has been handled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tab_archiver.core.errors import TabEditLockedError, TabNotFoundError, WindowNotFoundError
from tab_archiver.core.models import (
    TAB_GROUP_ID_NONE,
    WINDOW_ID_NONE,
    ArchiverEvent,
    Tab,
    TabActivated,
    TabChange,
    TabCreated,
    TabGroupUpdated,
    TabMoved,
    TabRemoved,
    TabStatus,
    TabUpdated,
    Window,
    WindowFocusChanged,
    WindowType,
)
from tab_archiver.ports.browser import EventListener

logger = logging.getLogger(__name__)


@dataclass
class _TabState:
    id: int
    window_id: int
    url: str = ""
    title: str = ""
    pinned: bool = False
    group_id: int = TAB_GROUP_ID_NONE
    active: bool = False
    status: TabStatus = "complete"


@dataclass
class _WindowState:
    id: int
    type: WindowType = "normal"
    incognito: bool = False
    tab_ids: list[int] = field(default_factory=list)


class InMemoryBrowser:
    """BrowserPort implementation for tests and simulations."""

    def __init__(self) -> None:
        self._windows: dict[int, _WindowState] = {}
        self._tabs: dict[int, _TabState] = {}
        self._focused_window_id = WINDOW_ID_NONE
        self._next_window_id = 1
        self._next_tab_id = 1
        self._locks: dict[int, int] = {}
        self._listeners: list[EventListener] = []
        self._queue: asyncio.Queue[ArchiverEvent] | None = None
        self._pump: asyncio.Task[None] | None = None
        # Tabs closed through remove_tab, in order
        self.removed_tab_ids: list[int] = []

    # =========================================================================
    # BrowserPort
    # =========================================================================

    async def list_tabs(
        self,
        window_id: int | None = None,
        active: bool | None = None,
    ) -> list[Tab]:
        tabs: list[Tab] = []
        for window in sorted(self._windows.values(), key=lambda w: w.id):
            if window_id is not None and window.id != window_id:
                continue
            for tab_id in window.tab_ids:
                state = self._tabs[tab_id]
                if active is not None and state.active != active:
                    continue
                tabs.append(self._view(state))
        return tabs

    async def get_tab(self, tab_id: int) -> Tab:
        return self._view(self._tab_state(tab_id))

    async def remove_tab(self, tab_id: int) -> None:
        self._tab_state(tab_id)
        self._check_lock(tab_id)
        self._close_tab(tab_id)
        self.removed_tab_ids.append(tab_id)

    async def move_tab(self, tab_id: int, index: int) -> Tab:
        self._tab_state(tab_id)
        self._check_lock(tab_id)
        self._move(tab_id, index)
        return self._view(self._tabs[tab_id])

    async def list_windows(
        self,
        populate: bool = False,
        window_types: Sequence[str] = ("normal",),
    ) -> list[Window]:
        return [
            self._window_view(w, populate)
            for w in sorted(self._windows.values(), key=lambda w: w.id)
            if w.type in window_types
        ]

    async def get_window(self, window_id: int) -> Window:
        window = self._windows.get(window_id)
        if window is None:
            raise WindowNotFoundError(window_id)
        return self._window_view(window, populate=False)

    async def get_focused_window_id(self) -> int:
        return self._focused_window_id

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # =========================================================================
    # User-level helpers
    # =========================================================================

    def open_window(
        self,
        *,
        focused: bool = True,
        window_type: WindowType = "normal",
        incognito: bool = False,
        url: str = "about:blank",
    ) -> int:
        """Open a window with one active tab. Returns the window ID."""
        window = _WindowState(id=self._next_window_id, type=window_type, incognito=incognito)
        self._next_window_id += 1
        self._windows[window.id] = window
        self.open_tab(window.id, url, active=True)
        if focused:
            self.focus_window(window.id)
        return window.id

    def open_tab(
        self,
        window_id: int,
        url: str = "about:blank",
        *,
        index: int | None = None,
        active: bool = False,
        pinned: bool = False,
        group_id: int = TAB_GROUP_ID_NONE,
        title: str = "",
    ) -> int:
        """Open a tab. Returns the tab ID."""
        window = self._window_state(window_id)
        state = _TabState(
            id=self._next_tab_id,
            window_id=window_id,
            url=url,
            title=title or url,
            pinned=pinned,
            group_id=group_id,
        )
        self._next_tab_id += 1
        self._tabs[state.id] = state

        position = len(window.tab_ids) if index is None else index
        if pinned:
            position = min(position, self._pinned_count(window))
        else:
            position = max(position, self._pinned_count(window))
        window.tab_ids.insert(min(position, len(window.tab_ids)), state.id)

        self._emit(TabCreated(tab=self._view(state)))
        if active:
            self.activate_tab(state.id)
        return state.id

    def activate_tab(self, tab_id: int) -> None:
        state = self._tab_state(tab_id)
        window = self._windows[state.window_id]
        for other_id in window.tab_ids:
            self._tabs[other_id].active = other_id == tab_id
        self._emit(TabActivated(tab_id=tab_id, window_id=window.id))

    def focus_window(self, window_id: int) -> None:
        """Give input focus to a window, or to nothing with WINDOW_ID_NONE."""
        if window_id != WINDOW_ID_NONE:
            self._window_state(window_id)
        if window_id == self._focused_window_id:
            return
        self._focused_window_id = window_id
        self._emit(WindowFocusChanged(window_id=window_id))

    def close_tab(self, tab_id: int) -> None:
        """Close a tab as the user would (never edit-locked)."""
        self._tab_state(tab_id)
        self._close_tab(tab_id)

    def close_window(self, window_id: int) -> None:
        window = self._window_state(window_id)
        for tab_id in list(window.tab_ids):
            window.tab_ids.remove(tab_id)
            del self._tabs[tab_id]
            self._locks.pop(tab_id, None)
            self._emit(TabRemoved(tab_id=tab_id, window_id=window_id, is_window_closing=True))
        del self._windows[window_id]
        if self._focused_window_id == window_id:
            self.focus_window(WINDOW_ID_NONE)

    def set_group(self, tab_id: int, group_id: int) -> None:
        """Add a tab to a group, or ungroup it with TAB_GROUP_ID_NONE."""
        state = self._tab_state(tab_id)
        if state.group_id == group_id:
            return
        state.group_id = group_id
        self._emit(TabUpdated(tab_id=tab_id, change=TabChange(group_id=group_id), tab=self._view(state)))

    def update_group(self, group_id: int) -> None:
        """Signal a change to a group's properties (title, color, collapsed)."""
        for window in self._windows.values():
            if any(self._tabs[t].group_id == group_id for t in window.tab_ids):
                self._emit(TabGroupUpdated(group_id=group_id, window_id=window.id))
                return

    def set_pinned(self, tab_id: int, pinned: bool) -> None:
        """Pin or unpin a tab; pinned tabs are kept at the start of the window."""
        state = self._tab_state(tab_id)
        if state.pinned == pinned:
            return
        window = self._windows[state.window_id]
        boundary = self._pinned_count(window)
        state.pinned = pinned
        self._emit(TabUpdated(tab_id=tab_id, change=TabChange(pinned=pinned), tab=self._view(state)))
        self._move(tab_id, boundary if pinned else boundary - 1)

    def navigate(self, tab_id: int, url: str) -> None:
        """Start loading a new URL in a tab."""
        state = self._tab_state(tab_id)
        state.url = url
        state.title = url
        state.status = "loading"
        self._emit(
            TabUpdated(
                tab_id=tab_id,
                change=TabChange(url=url, status="loading"),
                tab=self._view(state),
            )
        )

    def finish_loading(self, tab_id: int) -> None:
        state = self._tab_state(tab_id)
        state.status = "complete"
        self._emit(TabUpdated(tab_id=tab_id, change=TabChange(status="complete"), tab=self._view(state)))

    def drag_tab(self, tab_id: int, index: int) -> None:
        """Move a tab by hand."""
        self._tab_state(tab_id)
        self._move(tab_id, index)

    def lock_tab(self, tab_id: int, failures: int) -> None:
        """Make the next ``failures`` close/move calls on a tab fail as edit-locked."""
        self._tab_state(tab_id)
        self._locks[tab_id] = failures

    # =========================================================================
    # Inspection
    # =========================================================================

    def tab_ids(self, window_id: int) -> list[int]:
        """Tab IDs of a window in index order."""
        return list(self._window_state(window_id).tab_ids)

    def has_tab(self, tab_id: int) -> bool:
        return tab_id in self._tabs

    def layout(self) -> dict[int, list[Tab]]:
        """Every window's tabs in index order."""
        return {
            window.id: [self._view(self._tabs[t]) for t in window.tab_ids]
            for window in sorted(self._windows.values(), key=lambda w: w.id)
        }

    # =========================================================================
    # Event delivery
    # =========================================================================

    def _emit(self, event: ArchiverEvent) -> None:
        if not self._listeners:
            return
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._queue.put_nowait(event)
        if self._pump is None or self._pump.done():
            self._pump = asyncio.get_running_loop().create_task(self._run_pump(), name="browser-events")

    async def _run_pump(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                for listener in list(self._listeners):
                    try:
                        await listener(event)
                    except Exception as e:
                        logger.error(
                            f"Listener failed on {type(event).__name__}: {e}", exc_info=True
                        )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been delivered and handled.

        Handlers may produce further events; those are waited for too.
        """
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Stop the event pump. Undelivered events are dropped."""
        if self._pump is not None:
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
            self._pump = None
        self._queue = None

    # =========================================================================
    # Internals
    # =========================================================================

    def _tab_state(self, tab_id: int) -> _TabState:
        state = self._tabs.get(tab_id)
        if state is None:
            raise TabNotFoundError(tab_id)
        return state

    def _window_state(self, window_id: int) -> _WindowState:
        window = self._windows.get(window_id)
        if window is None:
            raise WindowNotFoundError(window_id)
        return window

    def _pinned_count(self, window: _WindowState) -> int:
        return sum(1 for t in window.tab_ids if self._tabs[t].pinned)

    def _check_lock(self, tab_id: int) -> None:
        remaining = self._locks.get(tab_id, 0)
        if remaining <= 0:
            return
        if remaining == 1:
            del self._locks[tab_id]
        else:
            self._locks[tab_id] = remaining - 1
        raise TabEditLockedError(tab_id)

    def _view(self, state: _TabState) -> Tab:
        window = self._windows[state.window_id]
        return Tab(
            id=state.id,
            window_id=state.window_id,
            index=window.tab_ids.index(state.id),
            pinned=state.pinned,
            group_id=state.group_id,
            incognito=window.incognito,
            active=state.active,
            url=state.url,
            title=state.title,
            status=state.status,
        )

    def _window_view(self, window: _WindowState, populate: bool) -> Window:
        return Window(
            id=window.id,
            focused=window.id == self._focused_window_id,
            type=window.type,
            incognito=window.incognito,
            tabs=[self._view(self._tabs[t]) for t in window.tab_ids] if populate else None,
        )

    def _move(self, tab_id: int, index: int) -> None:
        state = self._tabs[tab_id]
        window = self._windows[state.window_id]
        from_index = window.tab_ids.index(tab_id)
        window.tab_ids.remove(tab_id)
        to_index = min(max(index, 0), len(window.tab_ids))
        window.tab_ids.insert(to_index, tab_id)
        if to_index != from_index:
            self._emit(
                TabMoved(
                    tab_id=tab_id,
                    window_id=window.id,
                    from_index=from_index,
                    to_index=to_index,
                )
            )

    def _close_tab(self, tab_id: int) -> None:
        state = self._tabs[tab_id]
        window = self._windows[state.window_id]
        if len(window.tab_ids) == 1:
            self.close_window(window.id)
            return

        position = window.tab_ids.index(tab_id)
        window.tab_ids.remove(tab_id)
        del self._tabs[tab_id]
        self._locks.pop(tab_id, None)
        self._emit(TabRemoved(tab_id=tab_id, window_id=window.id, is_window_closing=False))

        if state.active:
            successor = window.tab_ids[min(position, len(window.tab_ids) - 1)]
            self.activate_tab(successor)
