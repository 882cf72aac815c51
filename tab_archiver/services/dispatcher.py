"""Event dispatcher: routes browser, alarm and settings notifications.

Handling an event takes three steps:

1. **Snapshot**: fetch what the decision needs from the browser (the tabs
   involved and which of them are effectively active).
2. **Plan**: a pure function maps (event, snapshot) to a list of actions.
   Planners never touch the browser, the alarms or the ledger, so every
   transition can be tested without I/O.
3. **Apply**: run the actions in order. Each action is contained; one
   failing action is logged and its siblings still run.

Every dispatch runs inside a ``dispatch_context`` so log lines from the
services carry the event that caused them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from tab_archiver.core.alarms import tab_id_from_alarm
from tab_archiver.core.models import (
    TAB_ID_NONE,
    WINDOW_ID_NONE,
    AlarmFired,
    ArchiverEvent,
    ArchiveSettings,
    SettingsChanged,
    Tab,
    TabActivated,
    TabCreated,
    TabGroupUpdated,
    TabMoved,
    TabRemoved,
    TabUpdated,
    WindowFocusChanged,
)
from tab_archiver.core.tracing import TimingContext, dispatch_context
from tab_archiver.services.activity import is_effectively_active

if TYPE_CHECKING:
    from tab_archiver.services.context import ArchiverContext
    from tab_archiver.services.eviction import EvictionExecutor
    from tab_archiver.services.reconciliation import ReconciliationScan
    from tab_archiver.services.reorder import ReorderEngine
    from tab_archiver.services.scheduler import ExpirationScheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Touch:
    tab_id: int
    only_if_absent: bool = False


@dataclass(frozen=True)
class Disarm:
    tab_id: int


@dataclass(frozen=True)
class Arm:
    tab_id: int
    tab: Tab | None = None


@dataclass(frozen=True)
class Forget:
    tab_id: int


@dataclass(frozen=True)
class Reorder:
    window_id: int


@dataclass(frozen=True)
class ScheduleReorder:
    """Reorder ``window_id`` after the debounce delay."""

    window_id: int


@dataclass(frozen=True)
class Evict:
    tab_id: int


@dataclass(frozen=True)
class ReplaceSettings:
    settings: ArchiveSettings | None


@dataclass(frozen=True)
class DisarmAll:
    pass


@dataclass(frozen=True)
class Reconcile:
    pass


Action = Union[
    Touch, Disarm, Arm, Forget, Reorder, ScheduleReorder, Evict, ReplaceSettings, DisarmAll, Reconcile
]


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventSnapshot:
    """Browser state gathered for one event.

    Attributes:
        settings: Settings snapshot at dispatch time (None until loaded).
        tabs: Tabs the event concerns, in window/index order.
        active_ids: IDs among ``tabs`` that are effectively active.
    """

    settings: ArchiveSettings | None
    tabs: tuple[Tab, ...] = ()
    active_ids: frozenset[int] = frozenset()

    def is_active(self, tab_id: int) -> bool:
        return tab_id in self.active_ids


# ---------------------------------------------------------------------------
# Planners (pure)
# ---------------------------------------------------------------------------


def _activity_actions(tab: Tab, active: bool, *, only_if_absent: bool = False) -> list[Action]:
    """Touch + disarm an active tab, or arm an inactive one."""
    if active:
        return [Touch(tab.id), Disarm(tab.id)]
    if only_if_absent:
        return [Touch(tab.id, only_if_absent=True), Arm(tab.id, tab)]
    return [Arm(tab.id, tab)]


def _valid_window(window_id: int) -> bool:
    return window_id != WINDOW_ID_NONE and window_id >= 0


def _plan_tab_created(event: TabCreated, snap: EventSnapshot) -> list[Action]:
    tab = event.tab
    if tab.id == TAB_ID_NONE:
        return []
    actions = _activity_actions(tab, snap.is_active(tab.id), only_if_absent=True)
    if _valid_window(tab.window_id):
        actions.append(Reorder(tab.window_id))
    return actions


def _plan_tab_updated(event: TabUpdated, snap: EventSnapshot) -> list[Action]:
    if event.tab_id == TAB_ID_NONE:
        return []
    # An inactive tab is armed here, which also covers status == "complete"
    actions = _activity_actions(event.tab, snap.is_active(event.tab_id))
    changed = event.change.changed()
    if ("group_id" in changed or "pinned" in changed) and _valid_window(event.tab.window_id):
        actions.append(Reorder(event.tab.window_id))
    return actions


def _plan_tab_activated(event: TabActivated, snap: EventSnapshot) -> list[Action]:
    if event.tab_id == TAB_ID_NONE:
        return []
    actions: list[Action] = [Touch(event.tab_id), Disarm(event.tab_id)]
    actions.extend(Arm(t.id, t) for t in snap.tabs if t.id != event.tab_id)
    return actions


def _plan_tab_moved(event: TabMoved, snap: EventSnapshot) -> list[Action]:
    return [Reorder(event.window_id)] if _valid_window(event.window_id) else []


def _plan_tab_removed(event: TabRemoved, snap: EventSnapshot) -> list[Action]:
    actions: list[Action] = [Disarm(event.tab_id), Forget(event.tab_id)]
    sorting = snap.settings is not None and snap.settings.tab_sorting_enabled
    if not event.is_window_closing and sorting and _valid_window(event.window_id):
        actions.append(ScheduleReorder(event.window_id))
    return actions


def _plan_tab_group_updated(event: TabGroupUpdated, snap: EventSnapshot) -> list[Action]:
    return [Reorder(event.window_id)] if _valid_window(event.window_id) else []


def _plan_window_focus_changed(event: WindowFocusChanged, snap: EventSnapshot) -> list[Action]:
    actions: list[Action] = []
    if event.window_id == WINDOW_ID_NONE:
        for tab in snap.tabs:
            if not snap.is_active(tab.id):
                actions.append(Arm(tab.id, tab))
        return actions

    focused = [t for t in snap.tabs if t.window_id == event.window_id]
    others = [t for t in snap.tabs if t.window_id != event.window_id]
    for tab in focused:
        actions.extend(_activity_actions(tab, snap.is_active(tab.id)))
    actions.extend(Arm(t.id, t) for t in others)
    return actions


def _plan_alarm_fired(event: AlarmFired, snap: EventSnapshot) -> list[Action]:
    tab_id = tab_id_from_alarm(event.name)
    if tab_id is None:
        logger.debug(f"Ignoring foreign alarm {event.name!r}")
        return []
    return [Evict(tab_id)]


def _plan_settings_changed(event: SettingsChanged, snap: EventSnapshot) -> list[Action]:
    return [ReplaceSettings(event.settings), DisarmAll(), Reconcile()]


_PLANNERS: dict[type[ArchiverEvent], Callable[..., list[Action]]] = {
    TabCreated: _plan_tab_created,
    TabUpdated: _plan_tab_updated,
    TabActivated: _plan_tab_activated,
    TabMoved: _plan_tab_moved,
    TabRemoved: _plan_tab_removed,
    TabGroupUpdated: _plan_tab_group_updated,
    WindowFocusChanged: _plan_window_focus_changed,
    AlarmFired: _plan_alarm_fired,
    SettingsChanged: _plan_settings_changed,
}


def plan_actions(event: ArchiverEvent, snapshot: EventSnapshot) -> list[Action]:
    """Map an event and its snapshot to the actions that handle it.

    Returns an empty list when settings are not loaded yet, except for a
    settings change, which is what loads them.
    """
    if snapshot.settings is None and not isinstance(event, SettingsChanged):
        return []
    planner = _PLANNERS.get(type(event))
    if planner is None:
        logger.warning(f"No planner for event type {type(event).__name__}")
        return []
    return planner(event, snapshot)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


@dataclass
class DispatchResult:
    """What one dispatch did.

    Attributes:
        event_name: Event class name.
        actions: Actions planned, in execution order.
        failed: (action, error message) for actions that raised.
        timings: Phase durations in milliseconds.
    """

    event_name: str
    actions: list[Action] = field(default_factory=list)
    failed: list[tuple[Action, str]] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class EventDispatcher:
    """Single entry point for every notification the archiver receives."""

    def __init__(
        self,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        executor: EvictionExecutor,
        reorder_engine: ReorderEngine,
        reconciliation: ReconciliationScan,
    ) -> None:
        self._ctx = context
        self._scheduler = scheduler
        self._executor = executor
        self._reorder = reorder_engine
        self._reconciliation = reconciliation
        self._pending_reorders: dict[int, asyncio.Task[None]] = {}

    @property
    def pending_reorders(self) -> dict[int, asyncio.Task[None]]:
        """Debounced reorders not yet run, keyed by window ID."""
        return dict(self._pending_reorders)

    async def dispatch(self, event: ArchiverEvent) -> DispatchResult:
        """Handle one event. Never raises for a failing action."""
        event_name = type(event).__name__
        with dispatch_context(
            event_name,
            tab_id=getattr(event, "tab_id", None),
            window_id=getattr(event, "window_id", None),
        ):
            logger.debug(f"{event_name}: {event!r}")
            timing = TimingContext()
            result = DispatchResult(event_name)

            with timing.measure("snapshot"):
                snapshot = await self._snapshot(event)
            with timing.measure("plan"):
                result.actions = plan_actions(event, snapshot)
            with timing.measure("apply"):
                result.failed = await self.apply(result.actions)

            result.timings = dict(timing.timings)
            logger.debug(f"{event_name} handled: {len(result.actions)} actions, {timing.summary()}")
            return result

    # -- snapshot ------------------------------------------------------------

    async def _snapshot(self, event: ArchiverEvent) -> EventSnapshot:
        settings = self._ctx.settings
        if settings is None:
            return EventSnapshot(settings=None)

        try:
            if isinstance(event, (TabCreated, TabUpdated)):
                tabs: Sequence[Tab] = [event.tab]
            elif isinstance(event, TabActivated):
                tabs = await self._ctx.browser.list_tabs(window_id=event.window_id, active=False)
            elif isinstance(event, WindowFocusChanged):
                tabs = await self._focus_change_tabs(event.window_id)
            else:
                tabs = []
        except Exception as e:
            logger.warning(f"Error gathering tabs for {type(event).__name__}: {e}")
            tabs = []

        active_ids = frozenset(
            [t.id for t in tabs if await is_effectively_active(self._ctx.browser, t)]
        )
        return EventSnapshot(settings=settings, tabs=tuple(tabs), active_ids=active_ids)

    async def _focus_change_tabs(self, window_id: int) -> list[Tab]:
        browser = self._ctx.browser
        tabs: list[Tab] = []
        if window_id != WINDOW_ID_NONE:
            tabs.extend(await browser.list_tabs(window_id=window_id))
        for window in await browser.list_windows(populate=True):
            if window.id == window_id or not window.tabs:
                continue
            tabs.extend(window.tabs)
        return tabs

    # -- apply ---------------------------------------------------------------

    async def apply(self, actions: Sequence[Action]) -> list[tuple[Action, str]]:
        """Run actions in order, containing each failure.

        Returns:
            (action, error message) for every action that raised.
        """
        failed: list[tuple[Action, str]] = []
        for action in actions:
            try:
                await self._apply_one(action)
            except Exception as e:
                logger.warning(f"Action {action!r} failed: {e}")
                failed.append((action, str(e)))
        return failed

    async def _apply_one(self, action: Action) -> None:
        if isinstance(action, Touch):
            self._ctx.ledger.touch(action.tab_id, only_if_absent=action.only_if_absent)
        elif isinstance(action, Disarm):
            await self._scheduler.disarm(action.tab_id)
        elif isinstance(action, Arm):
            await self._scheduler.arm(action.tab_id, action.tab)
        elif isinstance(action, Forget):
            self._ctx.ledger.forget(action.tab_id)
        elif isinstance(action, Reorder):
            await self._reorder.reorder(action.window_id)
        elif isinstance(action, ScheduleReorder):
            self._schedule_reorder(action.window_id)
        elif isinstance(action, Evict):
            await self._executor.evict(action.tab_id)
        elif isinstance(action, ReplaceSettings):
            settings = self._ctx.replace_settings(action.settings)
            logger.info(f"Settings updated: {settings.model_dump(by_alias=True, mode='json')}")
        elif isinstance(action, DisarmAll):
            await self._scheduler.disarm_all()
        elif isinstance(action, Reconcile):
            await self._reconciliation.run()
        else:
            raise TypeError(f"Unknown action: {action!r}")

    # -- debounced reorder ---------------------------------------------------

    def _schedule_reorder(self, window_id: int) -> None:
        pending = self._pending_reorders.pop(window_id, None)
        if pending is not None and not pending.done():
            pending.cancel()
        delay_seconds = self._ctx.tuning.reorder_debounce_ms / 1000
        task = asyncio.create_task(
            self._debounced_reorder(window_id, delay_seconds),
            name=f"reorder-window-{window_id}",
        )
        self._pending_reorders[window_id] = task

    async def _debounced_reorder(self, window_id: int, delay_seconds: float) -> None:
        await self._ctx.clock.sleep(delay_seconds)
        # From here on the reorder runs to completion even if replaced
        if self._pending_reorders.get(window_id) is asyncio.current_task():
            del self._pending_reorders[window_id]
        try:
            await self._reorder.reorder(window_id)
        except Exception as e:
            logger.warning(f"Debounced reorder of window {window_id} failed: {e}")

    async def cancel_pending_reorders(self) -> int:
        """Cancel debounced reorders that have not started yet.

        Returns:
            Number of reorders cancelled.
        """
        tasks = list(self._pending_reorders.values())
        self._pending_reorders.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)
