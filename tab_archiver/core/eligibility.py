"""Archive eligibility rules.

Pure functions: no I/O, no clock reads. Callers pass ``now_ms`` and the
tab's effective-activity flag, which both come from outside.
"""

from __future__ import annotations

import logging

from tab_archiver.core.models import ArchiveSettings, Tab, TimeUnit

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE


def threshold_ms(settings: ArchiveSettings) -> int:
    """Inactivity threshold in milliseconds.

    Example:
        >>> threshold_ms(ArchiveSettings(archive_time_value=5, archive_time_unit="minutes"))
        300000
    """
    unit_ms = MS_PER_MINUTE if settings.archive_time_unit == TimeUnit.MINUTES else MS_PER_HOUR
    return settings.archive_time_value * unit_ms


def protection_reason(
    tab: Tab,
    last_active_ms: int | None,
    settings: ArchiveSettings,
    effectively_active: bool,
) -> str | None:
    """Why a tab must not be archived regardless of how long it was idle.

    Returns:
        A short reason, or None if only the idle time still matters.
    """
    if not settings.auto_archive_enabled:
        return "auto-archive disabled"
    if tab.pinned:
        return "pinned"
    if tab.grouped:
        return "grouped"
    if tab.incognito and not settings.archive_in_incognito:
        return "incognito"
    if effectively_active:
        return "effectively active"
    # Unknown history never archives
    if last_active_ms is None:
        return "no last active time"
    return None


def is_archivable(
    tab: Tab,
    last_active_ms: int | None,
    settings: ArchiveSettings,
    effectively_active: bool,
    now_ms: int,
) -> bool:
    """Decide whether a tab may be archived right now.

    Args:
        tab: Current view of the tab.
        last_active_ms: Ledger timestamp, or None if the tab was never seen.
        settings: Current archive settings.
        effectively_active: Whether the tab is the selected tab of the
            focused window.
        now_ms: Current epoch milliseconds.

    Returns:
        True only when every protection rule passes and the tab has been
        inactive for at least the configured threshold.
    """
    reason = protection_reason(tab, last_active_ms, settings, effectively_active)
    if reason is not None:
        logger.debug(f"Tab {tab.id} not archivable: {reason}")
        return False
    assert last_active_ms is not None

    limit_ms = threshold_ms(settings)
    inactive_ms = now_ms - last_active_ms
    archivable = inactive_ms >= limit_ms
    logger.debug(
        f"Tab {tab.id} inactive for {inactive_ms}ms "
        f"(threshold: {limit_ms}ms). Archivable: {archivable}"
    )
    return archivable


def remaining_ms(settings: ArchiveSettings, last_active_ms: int, now_ms: int) -> int:
    """Time left before a tab crosses the threshold (never negative)."""
    return max(0, threshold_ms(settings) - (now_ms - last_active_ms))
