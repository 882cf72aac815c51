"""Service factory for dependency injection and initialization.

This module creates and wires all archiver services. It centralizes
configuration and dependency injection so the CLI, the simulator and the
tests all build the archiver the same way.

Usage:
    from tab_archiver.factory import ServiceFactory

    factory = ServiceFactory(settings, browser=browser)
    services = factory.create_all()
    await services.runtime.start()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tab_archiver.adapters.asyncio_alarms import AsyncioAlarmService
from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.adapters.json_settings_store import JsonSettingsStore
from tab_archiver.config import Settings
from tab_archiver.core.utils import SystemClock
from tab_archiver.services.context import ArchiverContext, ArchiverTuning
from tab_archiver.services.dispatcher import EventDispatcher
from tab_archiver.services.eviction import EvictionExecutor
from tab_archiver.services.reconciliation import ReconciliationScan
from tab_archiver.services.reorder import ReorderEngine
from tab_archiver.services.runtime import ArchiverRuntime
from tab_archiver.services.scheduler import ExpirationScheduler

if TYPE_CHECKING:
    from tab_archiver.core.utils import Clock
    from tab_archiver.ports.alarms import AlarmServicePort
    from tab_archiver.ports.browser import BrowserPort
    from tab_archiver.ports.settings_store import SettingsStorePort

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Container for all initialized services.

    Attributes:
        context: Shared archiver state (ports, ledger, settings snapshot).
        scheduler: Archive alarm scheduler.
        executor: Eviction executor.
        reorder: Window reorder engine.
        reconciliation: Full reconciliation scan.
        dispatcher: Event dispatcher.
        runtime: Lifecycle owner that subscribes the dispatcher.
        settings_store: Where archive settings are loaded from.
    """

    context: ArchiverContext
    scheduler: ExpirationScheduler
    executor: EvictionExecutor
    reorder: ReorderEngine
    reconciliation: ReconciliationScan
    dispatcher: EventDispatcher
    runtime: ArchiverRuntime
    settings_store: SettingsStorePort

    @property
    def browser(self) -> BrowserPort:
        return self.context.browser

    @property
    def alarms(self) -> AlarmServicePort:
        return self.context.alarms


class ServiceFactory:
    """Factory for creating and wiring all services.

    Example:
        factory = ServiceFactory(settings)
        services = factory.create_all()
        # Use services.runtime, services.dispatcher, etc.
    """

    def __init__(
        self,
        settings: Settings,
        browser: BrowserPort | None = None,
        alarms: AlarmServicePort | None = None,
        settings_store: SettingsStorePort | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            settings: Application settings.
            browser: Optional browser override (defaults to InMemoryBrowser).
            alarms: Optional alarm service override.
            settings_store: Optional settings store override.
            clock: Optional clock override (defaults to SystemClock).
        """
        self._settings = settings
        self._injected_browser = browser
        self._injected_alarms = alarms
        self._injected_store = settings_store
        self._injected_clock = clock

    def create_tuning(self) -> ArchiverTuning:
        """Retry budgets and delays from application settings."""
        return ArchiverTuning(
            archive_max_attempts=self._settings.archive_max_attempts,
            archive_retry_delay_seconds=self._settings.archive_retry_delay_seconds,
            move_max_attempts=self._settings.move_max_attempts,
            move_retry_delay_seconds=self._settings.move_retry_delay_seconds,
            min_alarm_delay_ms=self._settings.min_alarm_delay_ms,
            reorder_debounce_ms=self._settings.reorder_debounce_ms,
        )

    def create_settings_store(self) -> JsonSettingsStore:
        """Create the JSON settings store at the configured path."""
        return JsonSettingsStore(
            self._settings.settings_path,
            lock_timeout=self._settings.settings_lock_timeout_seconds,
        )

    def create_all(self) -> ServiceContainer:
        """Create all services with proper dependency wiring.

        Returns:
            ServiceContainer with all services initialized.
        """
        clock = self._injected_clock or SystemClock()
        browser = self._injected_browser or InMemoryBrowser()
        alarms = self._injected_alarms or AsyncioAlarmService(
            time_scale=getattr(clock, "time_scale", 1.0)
        )
        store = self._injected_store or self.create_settings_store()

        context = ArchiverContext.create(browser, alarms, clock, tuning=self.create_tuning())
        scheduler = ExpirationScheduler(context)
        executor = EvictionExecutor(context, scheduler)
        # Tabs already due when armed are evicted on the spot
        scheduler.set_due_handler(executor.evict)
        reorder = ReorderEngine(context)
        reconciliation = ReconciliationScan(context, scheduler, reorder)
        dispatcher = EventDispatcher(context, scheduler, executor, reorder, reconciliation)
        runtime = ArchiverRuntime(context, dispatcher, scheduler, reconciliation, store)

        logger.debug(f"Archiver services created (tuning: {context.tuning})")
        return ServiceContainer(
            context=context,
            scheduler=scheduler,
            executor=executor,
            reorder=reorder,
            reconciliation=reconciliation,
            dispatcher=dispatcher,
            runtime=runtime,
            settings_store=store,
        )
