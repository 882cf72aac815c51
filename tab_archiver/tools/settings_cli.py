"""``settings`` subcommand: show, change or reset the stored archive settings.

Usage::

    tab-archiver settings show
    tab-archiver settings set --time-value 30 --unit minutes --no-sorting
    tab-archiver settings reset
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tab_archiver.adapters.json_settings_store import SETTINGS_KEY, JsonSettingsStore
from tab_archiver.config import get_settings, settings_summary
from tab_archiver.core.errors import SettingsStoreError
from tab_archiver.core.models import ArchiveSettings

# argparse dest -> ArchiveSettings field
_SET_FIELDS = {
    "enabled": "auto_archive_enabled",
    "time_value": "archive_time_value",
    "unit": "archive_time_unit",
    "incognito": "archive_in_incognito",
    "sorting": "tab_sorting_enabled",
}


def add_settings_parser(subparsers: Any) -> None:
    """Register ``settings show|set|reset`` on the main parser."""
    path_option = argparse.ArgumentParser(add_help=False)
    path_option.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Settings file (default: TAB_ARCHIVER_SETTINGS_PATH or ./.tab-archiver/settings.json)",
    )

    settings_parser = subparsers.add_parser(
        "settings",
        help="Show or change the archive settings",
    )
    actions = settings_parser.add_subparsers(dest="settings_command", title="actions")

    show_parser = actions.add_parser(
        "show", parents=[path_option], help="Print the stored settings as JSON"
    )
    show_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Also print the process configuration",
    )

    set_parser = actions.add_parser(
        "set", parents=[path_option], help="Change one or more settings"
    )
    enabled = set_parser.add_mutually_exclusive_group()
    enabled.add_argument("--enabled", dest="enabled", action="store_true", default=None)
    enabled.add_argument("--disabled", dest="enabled", action="store_false")
    set_parser.add_argument("--time-value", type=int, default=None, help="Inactivity threshold")
    set_parser.add_argument(
        "--unit",
        choices=["minutes", "hours"],
        default=None,
        help="Unit of --time-value",
    )
    incognito = set_parser.add_mutually_exclusive_group()
    incognito.add_argument("--incognito", dest="incognito", action="store_true", default=None)
    incognito.add_argument("--no-incognito", dest="incognito", action="store_false")
    sorting = set_parser.add_mutually_exclusive_group()
    sorting.add_argument("--sorting", dest="sorting", action="store_true", default=None)
    sorting.add_argument("--no-sorting", dest="sorting", action="store_false")

    actions.add_parser(
        "reset", parents=[path_option], help="Remove stored settings (revert to defaults)"
    )


def _open_store(args: argparse.Namespace) -> JsonSettingsStore:
    settings = get_settings()
    path = getattr(args, "path", None) or settings.settings_path
    return JsonSettingsStore(path, lock_timeout=settings.settings_lock_timeout_seconds)


def _render(settings: ArchiveSettings) -> str:
    return json.dumps({SETTINGS_KEY: settings.model_dump(by_alias=True, mode="json")}, indent=2)


def apply_updates(current: ArchiveSettings, updates: dict[str, Any]) -> ArchiveSettings:
    """Validate ``updates`` over ``current`` and return the new snapshot.

    Raises:
        pydantic.ValidationError: If the result is not valid.
    """
    return ArchiveSettings.model_validate({**current.model_dump(), **updates})


def run_settings(args: argparse.Namespace) -> int:
    """Execute the settings subcommand.

    Returns:
        Exit code (0 success, 1 error).
    """
    store = _open_store(args)
    command = args.settings_command or "show"

    if command == "show":
        settings = asyncio.run(store.load())
        print(_render(settings))
        if getattr(args, "verbose", False):
            print()
            print("Process configuration:")
            print(json.dumps(settings_summary(get_settings()), indent=2))
        return 0

    if command == "reset":
        try:
            asyncio.run(store.clear())
        except SettingsStoreError as e:
            print(f"Error: {e}")
            return 1
        print(f"Settings reset to defaults in {store.path}")
        return 0

    updates = {
        field_name: getattr(args, dest)
        for dest, field_name in _SET_FIELDS.items()
        if getattr(args, dest, None) is not None
    }
    if not updates:
        print("Nothing to change. See 'settings set --help'.")
        return 1

    try:
        new_settings = apply_updates(asyncio.run(store.load()), updates)
    except ValidationError as e:
        print(f"Invalid settings: {e.errors()[0]['msg']}")
        return 1

    try:
        asyncio.run(store.save(new_settings))
    except SettingsStoreError as e:
        print(f"Error: {e}")
        return 1

    print(_render(new_settings))
    print(f"Saved to {store.path}")
    return 0
