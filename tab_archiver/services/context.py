"""Process-wide archiver state, passed explicitly to every service.

One ArchiverContext is created when the runtime starts and discarded when
it stops. Nothing in the services reads module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tab_archiver.core.ledger import ActivityLedger
from tab_archiver.core.models import ArchiveSettings

if TYPE_CHECKING:
    from tab_archiver.core.utils import Clock
    from tab_archiver.ports.alarms import AlarmServicePort
    from tab_archiver.ports.browser import BrowserPort


@dataclass
class ArchiverTuning:
    """Retry budgets and delays used by the services.

    Attributes:
        archive_max_attempts: Close attempts for a drag-locked tab.
        archive_retry_delay_seconds: Pause between close attempts.
        move_max_attempts: Move attempts per tab while sorting.
        move_retry_delay_seconds: Pause between move attempts.
        min_alarm_delay_ms: Floor for every scheduled archive alarm.
        reorder_debounce_ms: Delay before sorting a window after a tab closes.
    """

    archive_max_attempts: int = 5
    archive_retry_delay_seconds: float = 1.0
    move_max_attempts: int = 100
    move_retry_delay_seconds: float = 0.1
    min_alarm_delay_ms: int = 1000
    reorder_debounce_ms: int = 100


@dataclass
class ArchiverContext:
    """Everything the services share.

    Attributes:
        browser: The Resource Manager adapter.
        alarms: The alarm service adapter.
        clock: Time source for ledger stamps and retry sleeps.
        ledger: Last-active timestamps.
        settings: Current settings snapshot; None until loaded.
        tuning: Retry and delay parameters.
    """

    browser: BrowserPort
    alarms: AlarmServicePort
    clock: Clock
    ledger: ActivityLedger
    settings: ArchiveSettings | None = None
    tuning: ArchiverTuning = field(default_factory=ArchiverTuning)

    @classmethod
    def create(
        cls,
        browser: BrowserPort,
        alarms: AlarmServicePort,
        clock: Clock,
        settings: ArchiveSettings | None = None,
        tuning: ArchiverTuning | None = None,
    ) -> ArchiverContext:
        """Build a context with an empty ledger bound to ``clock``."""
        return cls(
            browser=browser,
            alarms=alarms,
            clock=clock,
            ledger=ActivityLedger(clock),
            settings=settings,
            tuning=tuning or ArchiverTuning(),
        )

    def replace_settings(self, settings: ArchiveSettings | None) -> ArchiveSettings:
        """Swap in a new snapshot; None reverts to defaults."""
        self.settings = settings if settings is not None else ArchiveSettings()
        return self.settings
