"""Effective-activity probe.

A tab is effectively active when it is the selected tab of its window and
that window has input focus. Focus is looked up live on every check; a
cached focus state could go stale between events.
"""

from __future__ import annotations

import logging

from tab_archiver.core.errors import WindowNotFoundError
from tab_archiver.core.models import Tab
from tab_archiver.ports.browser import BrowserPort

logger = logging.getLogger(__name__)


async def is_effectively_active(browser: BrowserPort, tab: Tab) -> bool:
    """Whether ``tab`` is what the user is looking at right now.

    A window that no longer exists, or a failed lookup, counts as not
    active.
    """
    if not tab.active:
        return False
    try:
        window = await browser.get_window(tab.window_id)
    except WindowNotFoundError:
        logger.debug(f"Window {tab.window_id} of tab {tab.id} is gone; treating as inactive")
        return False
    except Exception as e:
        logger.warning(f"Error getting window for tab {tab.id}: {e}")
        return False
    return window.focused
