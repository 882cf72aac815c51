"""Protocol interface for the browser (the Resource Manager).

The archiver never owns tab or window state. It asks the browser for a
fresh view before every decision and acts through the calls below.
Using typing.Protocol enables structural subtyping (duck typing with type
checking), so any adapter with these methods plugs in.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from tab_archiver.core.models import ArchiverEvent, Tab, Window

EventListener = Callable[[ArchiverEvent], Awaitable[None]]


class BrowserPort(Protocol):
    """Protocol for listing, inspecting, closing and moving tabs.

    Implementations must provide all methods defined here.
    The InMemoryBrowser is the reference implementation.
    """

    async def list_tabs(
        self,
        window_id: int | None = None,
        active: bool | None = None,
    ) -> list[Tab]:
        """List tabs, optionally filtered.

        Args:
            window_id: Only tabs in this window.
            active: Only tabs whose active flag equals this value.

        Returns:
            Matching tabs ordered by window then index.
        """
        ...

    async def get_tab(self, tab_id: int) -> Tab:
        """Get a tab by ID.

        Raises:
            TabNotFoundError: If the tab doesn't exist.
        """
        ...

    async def remove_tab(self, tab_id: int) -> None:
        """Close a tab.

        Raises:
            TabNotFoundError: If the tab doesn't exist.
            TabEditLockedError: If tabs cannot be edited right now.
            ResourceManagerError: For any other failure.
        """
        ...

    async def move_tab(self, tab_id: int, index: int) -> Tab:
        """Move a tab to ``index`` within its window.

        Returns:
            The moved tab.

        Raises:
            TabNotFoundError: If the tab doesn't exist.
            TabEditLockedError: If tabs cannot be edited right now.
            ResourceManagerError: For any other failure.
        """
        ...

    async def list_windows(
        self,
        populate: bool = False,
        window_types: Sequence[str] = ("normal",),
    ) -> list[Window]:
        """List windows of the given types, with their tabs if ``populate``."""
        ...

    async def get_window(self, window_id: int) -> Window:
        """Get a window by ID.

        Raises:
            WindowNotFoundError: If the window doesn't exist.
        """
        ...

    async def get_focused_window_id(self) -> int:
        """ID of the focused window, or WINDOW_ID_NONE if none has focus."""
        ...

    def add_listener(self, listener: EventListener) -> None:
        """Subscribe to tab/window lifecycle events."""
        ...

    def remove_listener(self, listener: EventListener) -> None:
        """Unsubscribe a listener added with add_listener."""
        ...
