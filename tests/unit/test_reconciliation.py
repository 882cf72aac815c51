"""Unit tests for ReconciliationScan."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.core.alarms import alarm_name
from tab_archiver.factory import ServiceContainer
from tests.fakes import MINUTE_MS, FakeAlarmService, FakeClock

pytestmark = pytest.mark.unit


@pytest.fixture
def session(browser: InMemoryBrowser) -> dict[str, int]:
    """Two windows; window 1 focused. Window 2 has an ungrouped tab before a group."""
    w1 = browser.open_window()
    w1_background = browser.open_tab(w1)
    w2 = browser.open_window(focused=False)
    w2_loose = browser.tab_ids(w2)[0]
    w2_grouped = browser.open_tab(w2, group_id=8)
    browser.focus_window(w1)
    return {
        "w1": w1,
        "w1_active": browser.tab_ids(w1)[0],
        "w1_background": w1_background,
        "w2": w2,
        "w2_loose": w2_loose,
        "w2_grouped": w2_grouped,
    }


class TestReconciliationScan:
    """Tests for the full scan."""

    @pytest.mark.asyncio
    async def test_rebuilds_state(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        browser: InMemoryBrowser,
        alarms: FakeAlarmService,
        clock: FakeClock,
    ) -> None:
        result = await services.reconciliation.run()

        ledger = services.context.ledger
        assert result.windows == 2
        assert result.tabs == 4
        assert result.active == 1
        assert result.newly_tracked == 3
        # Grouped tab is tracked but never armed
        assert result.scheduled == 2
        assert set(alarms.alarms) == {
            alarm_name(session["w1_background"]),
            alarm_name(session["w2_loose"]),
        }
        assert all(ledger.get(t) == clock.now for t in ledger)
        assert result.moved == 1
        assert browser.tab_ids(session["w2"]) == [session["w2_grouped"], session["w2_loose"]]

    @pytest.mark.asyncio
    async def test_known_tabs_keep_their_history(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        alarms: FakeAlarmService,
        clock: FakeClock,
    ) -> None:
        services.context.ledger.touch(session["w1_background"])
        clock.advance(20 * MINUTE_MS)

        await services.reconciliation.run()

        assert alarms.alarms[alarm_name(session["w1_background"])] == 40 * MINUTE_MS
        assert alarms.alarms[alarm_name(session["w2_loose"])] == 60 * MINUTE_MS

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        browser: InMemoryBrowser,
        alarms: FakeAlarmService,
    ) -> None:
        await services.reconciliation.run()
        ledger_before = services.context.ledger.snapshot()
        alarms_before = dict(alarms.alarms)
        layout_before = browser.layout()

        second = await services.reconciliation.run()

        assert second.newly_tracked == 0
        assert second.moved == 0
        assert services.context.ledger.snapshot() == ledger_before
        assert alarms.alarms == alarms_before
        assert browser.layout() == layout_before

    @pytest.mark.asyncio
    async def test_stale_alarm_for_active_tab_is_cleared(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        alarms: FakeAlarmService,
    ) -> None:
        alarms.alarms[alarm_name(session["w1_active"])] = 1.0

        await services.reconciliation.run()

        assert alarm_name(session["w1_active"]) not in alarms.alarms

    @pytest.mark.asyncio
    async def test_popup_window_tabs_are_armed_but_not_sorted(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        browser: InMemoryBrowser,
        alarms: FakeAlarmService,
    ) -> None:
        popup = browser.open_window(focused=False, window_type="popup")
        popup_tab = browser.tab_ids(popup)[0]
        popup_grouped = browser.open_tab(popup, group_id=3)
        browser.focus_window(session["w1"])

        result = await services.reconciliation.run()

        assert result.tabs == 6
        assert result.windows == 2
        assert alarm_name(popup_tab) in alarms.alarms
        assert browser.tab_ids(popup) == [popup_tab, popup_grouped]

    @pytest.mark.asyncio
    async def test_tab_listing_failure_is_recorded(
        self, session: dict[str, int], services: ServiceContainer, browser: InMemoryBrowser
    ) -> None:
        list_tabs = browser.list_tabs

        async def failing_full_listing(window_id: int | None = None, active: bool | None = None):
            if window_id is None:
                raise RuntimeError("browser gone")
            return await list_tabs(window_id=window_id, active=active)

        browser.list_tabs = failing_full_listing  # type: ignore[method-assign]

        result = await services.reconciliation.run()

        assert result.tabs == 0
        assert result.errors == ["list_tabs: browser gone"]
        # Sorting still runs
        assert result.moved == 1

    @pytest.mark.asyncio
    async def test_window_listing_failure_is_recorded(
        self,
        session: dict[str, int],
        services: ServiceContainer,
        browser: InMemoryBrowser,
        alarms: FakeAlarmService,
    ) -> None:
        browser.list_windows = AsyncMock(side_effect=RuntimeError("browser gone"))  # type: ignore[method-assign]

        result = await services.reconciliation.run()

        assert result.tabs == 4
        assert result.errors == ["list_windows: browser gone"]
        assert alarm_name(session["w2_loose"]) in alarms.alarms

    @pytest.mark.asyncio
    async def test_no_settings_no_scan(
        self, session: dict[str, int], services: ServiceContainer, alarms: FakeAlarmService
    ) -> None:
        services.context.settings = None

        result = await services.reconciliation.run()

        assert result.tabs == 0
        assert alarms.created == []
