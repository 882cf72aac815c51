"""``simulate`` subcommand: replay a scripted browsing session.

The scenario runs against the in-memory browser with the real asyncio
alarm service and a clock running ``--time-scale`` times faster than real
time, so hours of idle tabs play out in seconds.

Scenario format (JSON)::

    {
      "settings": {"archiveTimeValue": 5, "archiveTimeUnit": "minutes"},
      "steps": [
        {"action": "open_window", "as": "main"},
        {"action": "open_tab", "window": "main", "url": "https://example.com", "as": "docs"},
        {"action": "set_group", "tab": "docs", "group": 1},
        {"action": "activate", "tab": "docs"},
        {"action": "wait", "minutes": 10}
      ]
    }

``as`` names the window or tab a step creates; later steps refer to it by
that name. ``settings`` uses the stored camelCase keys and may also appear
as a step (``{"action": "settings", "settings": {...}}``) to change
settings mid-session.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tab_archiver.adapters.asyncio_alarms import AsyncioAlarmService
from tab_archiver.adapters.in_memory_browser import InMemoryBrowser
from tab_archiver.adapters.json_settings_store import JsonSettingsStore
from tab_archiver.config import Settings, get_settings
from tab_archiver.core.errors import ScenarioError
from tab_archiver.core.models import TAB_GROUP_ID_NONE, WINDOW_ID_NONE, ArchiveSettings, Tab
from tab_archiver.core.utils import SystemClock
from tab_archiver.factory import ServiceFactory

StepAction = Literal[
    "open_window",
    "open_tab",
    "activate",
    "focus",
    "close_tab",
    "close_window",
    "set_group",
    "update_group",
    "pin",
    "navigate",
    "finish_loading",
    "drag",
    "lock",
    "settings",
    "wait",
]


class ScenarioStep(BaseModel):
    """One scripted user action."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    action: StepAction
    name: str | None = Field(default=None, alias="as")
    window: str | None = None
    tab: str | None = None
    url: str = "about:blank"
    index: int | None = None
    active: bool = False
    pinned: bool = True
    group: int = TAB_GROUP_ID_NONE
    failures: int = 1
    incognito: bool = False
    settings: dict[str, Any] | None = None
    seconds: float = 0.0
    minutes: float = 0.0
    hours: float = 0.0

    @property
    def wait_seconds(self) -> float:
        return self.seconds + self.minutes * 60 + self.hours * 3600


class Scenario(BaseModel):
    """A scripted browsing session."""

    model_config = ConfigDict(extra="forbid")

    settings: dict[str, Any] | None = None
    steps: list[ScenarioStep] = Field(default_factory=list)


def load_scenario(path: Path) -> Scenario:
    """Parse and validate a scenario file.

    Raises:
        ScenarioError: If the file is unreadable or malformed.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ScenarioError(f"Cannot read scenario {path}: {e}") from e
    try:
        return Scenario.model_validate(data)
    except ValidationError as e:
        raise ScenarioError(f"Invalid scenario {path}: {e}") from e


@dataclass
class SimulationReport:
    """Final state of a simulated session.

    Attributes:
        layout: Window ID -> tabs in index order.
        archived: Tab IDs the archiver closed, in order.
        names: Tab ID -> scenario name, for tabs that were named.
        stats: Runtime statistics at the end of the run.
    """

    layout: dict[int, list[Tab]]
    archived: list[int]
    names: dict[int, str] = field(default_factory=dict)
    stats: dict[str, Any] = field(default_factory=dict)

    def label(self, tab_id: int) -> str:
        name = self.names.get(tab_id)
        return f"{tab_id} ({name})" if name else str(tab_id)


class _Session:
    """Resolves scenario names and runs steps against the browser."""

    def __init__(self, browser: InMemoryBrowser, store: JsonSettingsStore, clock: SystemClock) -> None:
        self.browser = browser
        self.store = store
        self.clock = clock
        self.windows: dict[str, int] = {}
        self.tabs: dict[str, int] = {}

    def _window(self, step: ScenarioStep, index: int) -> int:
        if step.window is None:
            raise ScenarioError(f"'{step.action}' needs a window", index)
        if step.window not in self.windows:
            raise ScenarioError(f"Unknown window {step.window!r}", index)
        return self.windows[step.window]

    def _tab(self, step: ScenarioStep, index: int) -> int:
        if step.tab is None:
            raise ScenarioError(f"'{step.action}' needs a tab", index)
        if step.tab not in self.tabs:
            raise ScenarioError(f"Unknown tab {step.tab!r}", index)
        return self.tabs[step.tab]

    async def run_step(self, step: ScenarioStep, index: int) -> None:
        browser = self.browser
        action = step.action
        if action == "open_window":
            window_id = browser.open_window(incognito=step.incognito, url=step.url)
            if step.name:
                self.windows[step.name] = window_id
        elif action == "open_tab":
            tab_id = browser.open_tab(
                self._window(step, index),
                step.url,
                index=step.index,
                active=step.active,
                group_id=step.group,
            )
            if step.name:
                self.tabs[step.name] = tab_id
        elif action == "activate":
            browser.activate_tab(self._tab(step, index))
        elif action == "focus":
            browser.focus_window(
                WINDOW_ID_NONE if step.window is None else self._window(step, index)
            )
        elif action == "close_tab":
            browser.close_tab(self._tab(step, index))
        elif action == "close_window":
            browser.close_window(self._window(step, index))
        elif action == "set_group":
            browser.set_group(self._tab(step, index), step.group)
        elif action == "update_group":
            browser.update_group(step.group)
        elif action == "pin":
            browser.set_pinned(self._tab(step, index), step.pinned)
        elif action == "navigate":
            browser.navigate(self._tab(step, index), step.url)
        elif action == "finish_loading":
            browser.finish_loading(self._tab(step, index))
        elif action == "drag":
            if step.index is None:
                raise ScenarioError("'drag' needs an index", index)
            browser.drag_tab(self._tab(step, index), step.index)
        elif action == "lock":
            browser.lock_tab(self._tab(step, index), step.failures)
        elif action == "settings":
            await self.store.save(_settings_from(step.settings, index))
        elif action == "wait":
            await self.clock.sleep(step.wait_seconds)


def _settings_from(raw: dict[str, Any] | None, index: int | None = None) -> ArchiveSettings:
    defaults = ArchiveSettings().model_dump(by_alias=True, mode="json")
    try:
        return ArchiveSettings.model_validate({**defaults, **(raw or {})})
    except ValidationError as e:
        raise ScenarioError(f"Invalid settings: {e.errors()[0]['msg']}", index) from e


async def run_scenario(
    scenario: Scenario,
    *,
    time_scale: float = 60.0,
    settings: Settings | None = None,
    settings_dir: Path | None = None,
) -> SimulationReport:
    """Replay ``scenario`` and return the final browser state.

    Args:
        scenario: The session to replay.
        time_scale: How much faster than real time the session runs.
        settings: Process configuration (defaults to get_settings()).
        settings_dir: Where to keep the session's settings file
            (a temporary directory if omitted).

    Raises:
        ScenarioError: If a step refers to an unknown window or tab.
    """
    settings = settings or get_settings()
    with tempfile.TemporaryDirectory(prefix="tab-archiver-sim-") as tmp:
        store = JsonSettingsStore(Path(settings_dir or tmp) / "settings.json")
        await store.save(_settings_from(scenario.settings))

        clock = SystemClock(time_scale=time_scale)
        browser = InMemoryBrowser()
        alarms = AsyncioAlarmService(time_scale=time_scale)
        services = ServiceFactory(
            settings, browser=browser, alarms=alarms, settings_store=store, clock=clock
        ).create_all()
        session = _Session(browser, store, clock)

        await services.runtime.start()
        try:
            for index, step in enumerate(scenario.steps):
                await session.run_step(step, index)
                await browser.drain()
                await services.runtime.wait_idle()
                await browser.drain()
            stats = services.runtime.get_stats()
        finally:
            await services.runtime.stop()
            await alarms.close()
            await browser.close()

    names = {tab_id: name for name, tab_id in session.tabs.items()}
    return SimulationReport(
        layout=browser.layout(),
        archived=list(browser.removed_tab_ids),
        names=names,
        stats=stats,
    )


def format_report(report: SimulationReport) -> str:
    """Render a report as the plain-text layout printed by the CLI."""
    lines: list[str] = []
    for window_id, tabs in report.layout.items():
        lines.append(f"Window {window_id}:")
        for tab in tabs:
            flags = []
            if tab.pinned:
                flags.append("pinned")
            if tab.grouped:
                flags.append(f"group {tab.group_id}")
            if tab.active:
                flags.append("active")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            lines.append(f"  {tab.index}: tab {report.label(tab.id)} {tab.url}{suffix}")
    if not report.layout:
        lines.append("No windows open.")
    archived = ", ".join(report.label(t) for t in report.archived) or "none"
    lines.append(f"Archived: {archived}")
    return "\n".join(lines)


def run_simulate(args: argparse.Namespace) -> int:
    """Execute the simulate subcommand.

    Returns:
        Exit code (0 success, 1 error).
    """
    try:
        scenario = load_scenario(args.scenario)
        report = asyncio.run(run_scenario(scenario, time_scale=args.time_scale))
    except ScenarioError as e:
        print(f"Error: {e}")
        return 1

    print(format_report(report))
    return 0
