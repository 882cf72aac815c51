"""Pytest fixtures for tab archiver tests."""

from __future__ import annotations

import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio

from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.adapters.json_settings_store import JsonSettingsStore
from tab_archiver.config import Settings, override_settings, reset_settings
from tab_archiver.factory import ServiceContainer, ServiceFactory
from tab_archiver.services.context import ArchiverContext, ArchiverTuning
from tests.fakes import FakeAlarmService, FakeClock, minutes_settings

# ---------------------------------------------------------------------------
# Basic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def temp_storage() -> Generator[Path, None, None]:
    """Provide temporary storage directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_storage: Path) -> Generator[Settings, None, None]:
    """Provide process settings pointing at temp storage."""
    settings = Settings(
        settings_path=temp_storage / "settings.json",
        log_level="DEBUG",
    )
    override_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alarms(clock: FakeClock) -> FakeAlarmService:
    return FakeAlarmService(clock)


@pytest_asyncio.fixture
async def browser() -> AsyncGenerator[InMemoryBrowser, None]:
    """In-memory browser; its event pump is stopped after the test."""
    b = InMemoryBrowser()
    yield b
    await b.close()


@pytest.fixture
def tuning() -> ArchiverTuning:
    return ArchiverTuning()


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def context(
    browser: InMemoryBrowser,
    alarms: FakeAlarmService,
    clock: FakeClock,
    tuning: ArchiverTuning,
) -> ArchiverContext:
    """Archiver context with a 60 minute threshold already loaded."""
    return ArchiverContext.create(
        browser, alarms, clock, settings=minutes_settings(60), tuning=tuning
    )


@pytest.fixture
def settings_store(temp_storage: Path) -> JsonSettingsStore:
    return JsonSettingsStore(temp_storage / "store" / "settings.json")


@pytest.fixture
def services(
    test_settings: Settings,
    browser: InMemoryBrowser,
    alarms: FakeAlarmService,
    clock: FakeClock,
    settings_store: JsonSettingsStore,
) -> ServiceContainer:
    """Fully wired services over the fakes, with a 60 minute threshold loaded."""
    container = ServiceFactory(
        test_settings,
        browser=browser,
        alarms=alarms,
        settings_store=settings_store,
        clock=clock,
    ).create_all()
    container.context.replace_settings(minutes_settings(60))
    return container
