"""Unit tests for the window reorder engine."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.services.context import ArchiverContext
from tab_archiver.services.reorder import ReorderEngine, plan_reorder
from tests.fakes import make_tab, minutes_settings

pytestmark = pytest.mark.unit


class TestPlanReorder:
    """Tests for the pure plan_reorder function."""

    def test_ungrouped_between_groups(self) -> None:
        tabs = [
            make_tab(1, index=0, group_id=5),
            make_tab(2, index=1),
            make_tab(3, index=2, group_id=5),
        ]

        violators, boundary = plan_reorder(tabs)

        assert [t.id for t in violators] == [2]
        assert boundary == 2

    def test_no_groups(self) -> None:
        assert plan_reorder([make_tab(1, index=0), make_tab(2, index=1)]) == ([], -1)

    def test_pinned_ignored(self) -> None:
        tabs = [
            make_tab(1, index=0, pinned=True),
            make_tab(2, index=1, group_id=5),
            make_tab(3, index=2),
        ]
        assert plan_reorder(tabs) == ([], 2)

    def test_violators_in_index_order(self) -> None:
        tabs = [
            make_tab(4, index=2),
            make_tab(1, index=0),
            make_tab(9, index=3, group_id=5),
        ]
        violators, _ = plan_reorder(tabs)
        assert [t.id for t in violators] == [1, 4]


@pytest.fixture
def engine(context: ArchiverContext) -> ReorderEngine:
    return ReorderEngine(context)


class TestReorderEngine:
    """Tests for ReorderEngine.reorder against the in-memory browser."""

    @pytest.mark.asyncio
    async def test_moves_ungrouped_after_groups(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        grouped_a = browser.tab_ids(window_id)[0]
        browser.set_group(grouped_a, 5)
        loose = browser.open_tab(window_id)
        grouped_b = browser.open_tab(window_id, group_id=5)
        browser.move_tab = AsyncMock(wraps=browser.move_tab)  # type: ignore[method-assign]

        result = await engine.reorder(window_id)

        browser.move_tab.assert_awaited_once_with(loose, 3)
        assert result.moved == [loose]
        assert browser.tab_ids(window_id) == [grouped_a, grouped_b, loose]

    @pytest.mark.asyncio
    async def test_multiple_violators_keep_relative_order(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        first = browser.tab_ids(window_id)[0]
        second = browser.open_tab(window_id)
        grouped = browser.open_tab(window_id, group_id=3)

        result = await engine.reorder(window_id)

        assert result.moved == [first, second]
        assert browser.tab_ids(window_id) == [grouped, first, second]

    @pytest.mark.asyncio
    async def test_sorted_window_is_untouched(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        browser.set_group(browser.tab_ids(window_id)[0], 5)
        browser.open_tab(window_id)
        before = browser.tab_ids(window_id)

        result = await engine.reorder(window_id)

        assert not result.changed
        assert browser.tab_ids(window_id) == before

    @pytest.mark.asyncio
    async def test_second_pass_moves_nothing(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        browser.open_tab(window_id, group_id=2)

        first = await engine.reorder(window_id)
        second = await engine.reorder(window_id)

        assert first.changed
        assert not second.changed

    @pytest.mark.asyncio
    async def test_window_without_groups(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        browser.open_tab(window_id)

        result = await engine.reorder(window_id)

        assert result.moved == []

    @pytest.mark.asyncio
    async def test_pinned_tabs_stay_first(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        loose = browser.tab_ids(window_id)[0]
        pinned = browser.open_tab(window_id, pinned=True)
        grouped = browser.open_tab(window_id, group_id=4)

        await engine.reorder(window_id)

        assert browser.tab_ids(window_id) == [pinned, grouped, loose]

    @pytest.mark.asyncio
    async def test_disabled_sorting(
        self, browser: InMemoryBrowser, context: ArchiverContext, engine: ReorderEngine
    ) -> None:
        context.replace_settings(minutes_settings(60, tab_sorting_enabled=False))
        window_id = browser.open_window()
        browser.open_tab(window_id, group_id=2)
        before = browser.tab_ids(window_id)

        result = await engine.reorder(window_id)

        assert result.moved == []
        assert browser.tab_ids(window_id) == before

    @pytest.mark.asyncio
    async def test_lock_exhaustion_skips_tab(
        self, browser: InMemoryBrowser, context: ArchiverContext, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        stuck = browser.tab_ids(window_id)[0]
        loose = browser.open_tab(window_id)
        browser.open_tab(window_id, group_id=2)
        browser.lock_tab(stuck, failures=context.tuning.move_max_attempts)

        result = await engine.reorder(window_id)

        assert result.skipped == [stuck]
        assert result.moved == [loose]

    @pytest.mark.asyncio
    async def test_recovers_from_brief_lock(
        self, browser: InMemoryBrowser, engine: ReorderEngine
    ) -> None:
        window_id = browser.open_window()
        loose = browser.tab_ids(window_id)[0]
        browser.open_tab(window_id, group_id=2)
        browser.lock_tab(loose, failures=3)

        result = await engine.reorder(window_id)

        assert result.moved == [loose]

    @pytest.mark.asyncio
    async def test_unknown_window(self, engine: ReorderEngine) -> None:
        result = await engine.reorder(404)
        assert result.moved == []
        assert result.skipped == []
