"""Structured logging for the tab archiver.

Features:
    - Dispatch context prefixes ([event=xxx][tab=yyy]) on every line logged
      while an event is being handled
    - JSON structured logging format
    - Configurable log levels and formats
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from tab_archiver.core.tracing import DispatchContext, get_current_context

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _context_prefix(ctx: DispatchContext) -> str:
    parts = [f"[event={ctx.event_name}:{ctx.event_id}]"]
    if ctx.tab_id is not None:
        parts.append(f"[tab={ctx.tab_id}]")
    if ctx.window_id is not None:
        parts.append(f"[window={ctx.window_id}]")
    return "".join(parts) + " "


class ContextFormatter(logging.Formatter):
    """Formatter that includes the current dispatch context."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_dispatch_context: bool = True,
    ) -> None:
        """Initialize the formatter.

        Args:
            fmt: Format string for log messages.
            datefmt: Date format string.
            include_dispatch_context: Whether to add the [event=...] prefix.
        """
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.include_dispatch_context = include_dispatch_context

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.include_dispatch_context:
            return message

        ctx = get_current_context()
        if ctx is None:
            return message

        prefix = _context_prefix(ctx)
        # Format: "2024-01-15 10:30:00 - logger - LEVEL - message"
        # We want: "2024-01-15 10:30:00 - logger - LEVEL - [event=xxx] message"
        parts = message.split(" - ", 3)
        if len(parts) == 4:
            return f"{parts[0]} - {parts[1]} - {parts[2]} - {prefix}{parts[3]}"
        return prefix + message


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging with dispatch context."""

    def __init__(self, include_dispatch_context: bool = True) -> None:
        super().__init__()
        self.include_dispatch_context = include_dispatch_context

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_dispatch_context:
            ctx = get_current_context()
            if ctx is not None:
                log_data["event"] = ctx.event_name
                log_data["event_id"] = ctx.event_id
                if ctx.tab_id is not None:
                    log_data["tab_id"] = ctx.tab_id
                if ctx.window_id is not None:
                    log_data["window_id"] = ctx.window_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_dispatch_context: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Use JSON format for structured logging.
        include_dispatch_context: Include [event=...][tab=...] in log lines.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = JSONFormatter(
            include_dispatch_context=include_dispatch_context
        )
    else:
        formatter = ContextFormatter(
            fmt=DEFAULT_FORMAT,
            datefmt=DEFAULT_DATEFMT,
            include_dispatch_context=include_dispatch_context,
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
