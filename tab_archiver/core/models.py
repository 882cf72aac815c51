"""Data models for the tab archiver."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Sentinels used by the browser for "no such thing"
TAB_ID_NONE = -1
TAB_GROUP_ID_NONE = -1
WINDOW_ID_NONE = -1

TabStatus = Literal["loading", "complete"]
WindowType = Literal["normal", "popup", "panel", "app", "devtools"]


class TimeUnit(str, Enum):
    """Unit of the archive threshold."""

    MINUTES = "minutes"
    HOURS = "hours"


class ArchiveSettings(BaseModel):
    """User-facing archiver settings.

    Immutable snapshot: a settings change replaces the whole object. Field
    aliases are camelCase so the stored JSON matches the settings page.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    auto_archive_enabled: bool = Field(
        default=True,
        description="Close inactive tabs automatically",
    )
    archive_time_value: int = Field(
        default=12,
        ge=1,
        description="Inactivity threshold, in archive_time_unit",
    )
    archive_time_unit: TimeUnit = Field(
        default=TimeUnit.HOURS,
        description="Unit of archive_time_value",
    )
    archive_in_incognito: bool = Field(
        default=False,
        description="Also archive incognito tabs",
    )
    tab_sorting_enabled: bool = Field(
        default=True,
        description="Keep ungrouped tabs after grouped tabs",
    )


class Tab(BaseModel):
    """Read-only view of a browser tab, fetched fresh for every decision."""

    model_config = ConfigDict(frozen=True)

    id: int
    window_id: int
    index: int = Field(..., ge=0)
    pinned: bool = False
    group_id: int = TAB_GROUP_ID_NONE
    incognito: bool = False
    active: bool = False
    url: str = ""
    title: str = ""
    status: TabStatus = "complete"

    @property
    def grouped(self) -> bool:
        """Whether the tab belongs to a tab group."""
        return self.group_id != TAB_GROUP_ID_NONE


class Window(BaseModel):
    """A browser window. ``tabs`` is only filled when listed with populate."""

    model_config = ConfigDict(frozen=True)

    id: int
    focused: bool = False
    type: WindowType = "normal"
    incognito: bool = False
    tabs: list[Tab] | None = None


class TabChange(BaseModel):
    """Attributes that changed in a tab update; unchanged ones stay None."""

    model_config = ConfigDict(frozen=True)

    status: TabStatus | None = None
    pinned: bool | None = None
    group_id: int | None = None
    url: str | None = None
    title: str | None = None

    def changed(self) -> dict[str, object]:
        """Return only the attributes that were reported as changed."""
        return self.model_dump(exclude_none=True)


# =============================================================================
# Events
# =============================================================================


class ArchiverEvent(BaseModel):
    """Base class for every notification routed through the dispatcher."""

    model_config = ConfigDict(frozen=True)


class TabCreated(ArchiverEvent):
    tab: Tab


class TabUpdated(ArchiverEvent):
    tab_id: int
    change: TabChange
    tab: Tab


class TabActivated(ArchiverEvent):
    tab_id: int
    window_id: int


class TabMoved(ArchiverEvent):
    tab_id: int
    window_id: int
    from_index: int
    to_index: int


class TabRemoved(ArchiverEvent):
    tab_id: int
    window_id: int
    is_window_closing: bool = False


class TabGroupUpdated(ArchiverEvent):
    group_id: int
    window_id: int


class WindowFocusChanged(ArchiverEvent):
    """Focus moved to ``window_id``, or away from the browser (WINDOW_ID_NONE)."""

    window_id: int


class AlarmFired(ArchiverEvent):
    name: str


class SettingsChanged(ArchiverEvent):
    """New settings value; None means the stored value was removed."""

    settings: ArchiveSettings | None = None
