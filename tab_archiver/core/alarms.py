"""Archive alarm naming.

Alarm names are the only link between a fired alarm and its tab, so the
mapping must stay reversible: ``tab_id_from_alarm(alarm_name(x)) == x``
for every integer ``x``.
"""

from __future__ import annotations

import re

ARCHIVE_ALARM_PREFIX = "archiveTimer_tab_"

_TAB_ID_PATTERN = re.compile(r"-?\d+")


def alarm_name(tab_id: int) -> str:
    """Build the archive alarm name for a tab.

    Example:
        >>> alarm_name(42)
        'archiveTimer_tab_42'
    """
    return f"{ARCHIVE_ALARM_PREFIX}{tab_id}"


def is_archive_alarm(name: str) -> bool:
    """Whether ``name`` was produced by :func:`alarm_name`."""
    return tab_id_from_alarm(name) is not None


def tab_id_from_alarm(name: str) -> int | None:
    """Recover the tab ID from an archive alarm name.

    Returns:
        The tab ID, or None if the alarm is not an archive alarm.

    Example:
        >>> tab_id_from_alarm("archiveTimer_tab_42")
        42
        >>> tab_id_from_alarm("someOtherAlarm") is None
        True
    """
    if not name.startswith(ARCHIVE_ALARM_PREFIX):
        return None
    suffix = name[len(ARCHIVE_ALARM_PREFIX) :]
    if not _TAB_ID_PATTERN.fullmatch(suffix):
        return None
    return int(suffix)
