"""Entry point for the tab archiver CLI commands."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

logger = logging.getLogger(__name__)


def run_version() -> None:
    """Print version information."""
    from tab_archiver import __version__

    print(f"tab-archiver {__version__}")


def _setup_logging(verbose: bool) -> None:
    """Configure logging from process settings, refusing unusable ones."""
    from tab_archiver.config import get_settings, validate_startup
    from tab_archiver.core.logging import configure_logging

    settings = get_settings()
    for warning in validate_startup(settings):
        print(f"Warning: {warning}", file=sys.stderr)
    configure_logging(
        level="DEBUG" if verbose else settings.log_level.upper(),
        json_format=settings.log_format == "json",
    )


def main() -> NoReturn:
    """Main entry point with subcommand support."""
    from tab_archiver.core.errors import ConfigurationError
    from tab_archiver.tools.settings_cli import add_settings_parser, run_settings

    parser = argparse.ArgumentParser(
        prog="tab-archiver",
        description="Archive idle browser tabs and keep grouped tabs first",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    subparsers.add_parser(
        "version",
        help="Show version and exit",
    )

    add_settings_parser(subparsers)

    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Replay a scripted browsing session and print the final layout",
    )
    simulate_parser.add_argument(
        "scenario",
        type=Path,
        help="Scenario JSON file",
    )
    simulate_parser.add_argument(
        "--time-scale",
        type=float,
        default=60.0,
        help="How many times faster than real time the session runs (default: 60)",
    )

    args = parser.parse_args()

    if args.version or args.command == "version":
        run_version()
        sys.exit(0)

    try:
        _setup_logging(args.debug)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "settings":
        sys.exit(run_settings(args))
    elif args.command == "simulate":
        if args.time_scale <= 0:
            print("Error: --time-scale must be positive")
            sys.exit(1)
        from tab_archiver.tools.simulate import run_simulate

        sys.exit(run_simulate(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
