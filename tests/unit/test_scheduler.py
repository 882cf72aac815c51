"""Unit tests for ExpirationScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.core.alarms import alarm_name
from tab_archiver.core.models import TAB_ID_NONE, Tab
from tab_archiver.services.context import ArchiverContext
from tab_archiver.services.eviction import EvictionExecutor
from tab_archiver.services.scheduler import ArmOutcome, ExpirationScheduler
from tests.fakes import MINUTE_MS, FakeAlarmService, FakeClock, minutes_settings

pytestmark = pytest.mark.unit


class SlowBrowser(InMemoryBrowser):
    """Yields to the loop on every tab lookup so arms can interleave."""

    async def get_tab(self, tab_id: int) -> Tab:
        await asyncio.sleep(0)
        return await super().get_tab(tab_id)


@pytest.fixture
def window(browser: InMemoryBrowser) -> int:
    """Focused window holding active tab 1 and background tab 2."""
    window_id = browser.open_window()
    browser.open_tab(window_id, "https://example.com")
    return window_id


@pytest.fixture
def scheduler(context: ArchiverContext) -> ExpirationScheduler:
    return ExpirationScheduler(context)


class TestArm:
    """Tests for ExpirationScheduler.arm."""

    @pytest.mark.asyncio
    async def test_schedules_full_threshold(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        context.ledger.touch(2)

        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.SCHEDULED
        assert result.delay_ms == 60 * MINUTE_MS
        assert alarms.alarms == {alarm_name(2): 60 * MINUTE_MS}

    @pytest.mark.asyncio
    async def test_delay_counts_from_last_active(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        clock: FakeClock,
        alarms: FakeAlarmService,
    ) -> None:
        context.ledger.touch(2)
        clock.advance(20 * MINUTE_MS)

        result = await scheduler.arm(2)

        assert result.delay_ms == 40 * MINUTE_MS
        assert alarms.alarms[alarm_name(2)] == 40 * MINUTE_MS

    @pytest.mark.asyncio
    async def test_rearm_replaces_alarm(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        clock: FakeClock,
        alarms: FakeAlarmService,
    ) -> None:
        """Arming twice leaves one alarm with the second delay."""
        context.ledger.touch(2)
        await scheduler.arm(2)
        clock.advance(10 * MINUTE_MS)
        await scheduler.arm(2)

        assert alarms.alarms == {alarm_name(2): 50 * MINUTE_MS}
        assert len(alarms.created) == 2

    @pytest.mark.asyncio
    async def test_effectively_active_tab_is_disarmed(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        context.ledger.touch(1)
        alarms.alarms[alarm_name(1)] = 5.0

        result = await scheduler.arm(1)

        assert result.outcome == ArmOutcome.ACTIVE
        assert alarm_name(1) not in alarms.alarms

    @pytest.mark.asyncio
    async def test_active_tab_of_unfocused_window_is_scheduled(
        self,
        browser: InMemoryBrowser,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
    ) -> None:
        window_id = browser.open_window(focused=False)
        tab_id = browser.tab_ids(window_id)[0]
        context.ledger.touch(tab_id)

        result = await scheduler.arm(tab_id)

        assert result.outcome == ArmOutcome.SCHEDULED

    @pytest.mark.asyncio
    async def test_pinned_tab_not_scheduled(
        self,
        browser: InMemoryBrowser,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        tab_id = browser.open_tab(window, pinned=True)
        context.ledger.touch(tab_id)

        result = await scheduler.arm(tab_id)

        assert result.outcome == ArmOutcome.NOT_ARCHIVABLE
        assert alarms.alarms == {}

    @pytest.mark.asyncio
    async def test_grouped_tab_not_scheduled(
        self,
        browser: InMemoryBrowser,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
    ) -> None:
        tab_id = browser.open_tab(window, group_id=7)
        context.ledger.touch(tab_id)

        result = await scheduler.arm(tab_id)

        assert result.outcome == ArmOutcome.NOT_ARCHIVABLE

    @pytest.mark.asyncio
    async def test_untracked_tab_not_scheduled(
        self,
        window: int,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        """No ledger entry means no alarm."""
        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.NOT_ARCHIVABLE
        assert alarms.alarms == {}

    @pytest.mark.asyncio
    async def test_missing_tab(self, scheduler: ExpirationScheduler, alarms: FakeAlarmService) -> None:
        result = await scheduler.arm(99)

        assert result.outcome == ArmOutcome.TAB_GONE
        assert alarm_name(99) in alarms.cleared

    @pytest.mark.asyncio
    async def test_disabled_or_invalid_is_skipped(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        assert (await scheduler.arm(TAB_ID_NONE)).outcome == ArmOutcome.SKIPPED

        context.replace_settings(minutes_settings(60, auto_archive_enabled=False))
        context.ledger.touch(2)
        assert (await scheduler.arm(2)).outcome == ArmOutcome.SKIPPED
        assert alarms.created == []

    @pytest.mark.asyncio
    async def test_due_tab_goes_to_due_handler(
        self,
        window: int,
        context: ArchiverContext,
        clock: FakeClock,
        alarms: FakeAlarmService,
    ) -> None:
        on_due = AsyncMock()
        scheduler = ExpirationScheduler(context, on_due=on_due)
        context.ledger.touch(2)
        clock.advance(60 * MINUTE_MS)

        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.DUE_NOW
        on_due.assert_awaited_once()
        assert on_due.await_args.args[0] == 2
        assert alarms.created == []

    @pytest.mark.asyncio
    async def test_nearly_due_tab_gets_minimum_delay_alarm(
        self,
        window: int,
        context: ArchiverContext,
        browser: InMemoryBrowser,
        clock: FakeClock,
        alarms: FakeAlarmService,
    ) -> None:
        """A tab under a second short of the threshold keeps its state."""
        scheduler = ExpirationScheduler(context)
        scheduler.set_due_handler(EvictionExecutor(context, scheduler).evict)
        context.ledger.touch(2)
        clock.advance(60 * MINUTE_MS - 500)

        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.SCHEDULED
        assert result.delay_ms == context.tuning.min_alarm_delay_ms
        assert alarms.alarms == {alarm_name(2): context.tuning.min_alarm_delay_ms}
        assert context.ledger.get(2) is not None
        assert browser.has_tab(2)

        # Once past the threshold the same tab is archived
        clock.advance(10 * MINUTE_MS)
        assert (await scheduler.arm(2)).outcome == ArmOutcome.DUE_NOW
        assert not browser.has_tab(2)

    @pytest.mark.asyncio
    async def test_due_tab_without_handler_gets_minimum_delay(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        clock: FakeClock,
        alarms: FakeAlarmService,
    ) -> None:
        context.ledger.touch(2)
        clock.advance(2 * 60 * MINUTE_MS)

        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.SCHEDULED
        assert alarms.alarms[alarm_name(2)] == context.tuning.min_alarm_delay_ms

    @pytest.mark.asyncio
    async def test_alarm_error_reported_as_failed(
        self,
        window: int,
        context: ArchiverContext,
        scheduler: ExpirationScheduler,
        alarms: FakeAlarmService,
    ) -> None:
        context.ledger.touch(2)
        alarms.create_alarm = AsyncMock(side_effect=RuntimeError("quota"))  # type: ignore[method-assign]

        result = await scheduler.arm(2)

        assert result.outcome == ArmOutcome.FAILED


class TestInterleaving:
    """Overlapping arm/disarm calls converge on at most one alarm."""

    @pytest.fixture
    def slow_context(self, alarms: FakeAlarmService, clock: FakeClock) -> ArchiverContext:
        browser = SlowBrowser()
        window_id = browser.open_window()
        browser.open_tab(window_id)
        ctx = ArchiverContext.create(browser, alarms, clock, settings=minutes_settings(60))
        ctx.ledger.touch(2)
        return ctx

    @pytest.mark.asyncio
    async def test_disarm_during_arm_wins(
        self, slow_context: ArchiverContext, alarms: FakeAlarmService
    ) -> None:
        scheduler = ExpirationScheduler(slow_context)

        arm_result, _ = await asyncio.gather(scheduler.arm(2), scheduler.disarm(2))

        assert arm_result.outcome == ArmOutcome.SUPERSEDED
        assert alarms.alarms == {}

    @pytest.mark.asyncio
    async def test_concurrent_arms_leave_one_alarm(
        self, slow_context: ArchiverContext, alarms: FakeAlarmService
    ) -> None:
        scheduler = ExpirationScheduler(slow_context)

        first, second = await asyncio.gather(scheduler.arm(2), scheduler.arm(2))

        assert first.outcome == ArmOutcome.SUPERSEDED
        assert second.outcome == ArmOutcome.SCHEDULED
        assert list(alarms.alarms) == [alarm_name(2)]


class TestDisarm:
    """Tests for disarm and disarm_all."""

    @pytest.mark.asyncio
    async def test_disarm_is_safe_without_alarm(self, scheduler: ExpirationScheduler) -> None:
        assert not await scheduler.disarm(5)
        assert not await scheduler.disarm(TAB_ID_NONE)

    @pytest.mark.asyncio
    async def test_disarm_all_leaves_foreign_alarms(
        self, scheduler: ExpirationScheduler, alarms: FakeAlarmService
    ) -> None:
        alarms.alarms.update({alarm_name(1): 1.0, alarm_name(2): 2.0, "someOtherAlarm": 3.0})

        cleared = await scheduler.disarm_all()

        assert cleared == 2
        assert list(alarms.alarms) == ["someOtherAlarm"]
