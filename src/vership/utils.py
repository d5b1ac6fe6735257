"""Shared utilities for the CLI implementation."""

from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, NoReturn, Optional

import click
from rich.console import Console, RenderableType

CHECKMARK = "\033[92;1m✔\033[0m"
CROSS = "\033[31m✘\033[0m"
INFO = "\033[94;1mi\033[0m"
WARNING = "○"
DEBUG_PREFIX = "\033[95m◆\033[0m"

CHECKMARK_PREFIX = f"{CHECKMARK} "
CROSS_PREFIX = f"{CROSS} "
INFO_PREFIX = f"{INFO} "
WARNING_PREFIX = f"{WARNING} "
DEBUG_PREFIX_WITH_SPACE = f"{DEBUG_PREFIX} "

_LOGGER_NAME = "vership"
_LOGGER = logging.getLogger(_LOGGER_NAME)

console = Console(stderr=True)


def configure_logging(debug: bool = False) -> logging.Logger:
    """Configure the shared logger used across the CLI."""
    level = logging.DEBUG if debug else logging.INFO
    _LOGGER.setLevel(level)
    while _LOGGER.handlers:
        handler = _LOGGER.handlers.pop()
        handler.close()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    _LOGGER.addHandler(handler)
    _LOGGER.propagate = False
    return _LOGGER


def _log(prefix: str, message: str, level: int) -> None:
    logger = logging.getLogger(_LOGGER_NAME)
    lines = message.splitlines() or [""]
    for line in lines:
        if line:
            logger.log(level, f"{prefix}{line}")
        else:
            logger.log(level, prefix.rstrip())


def log_info(message: str) -> None:
    """Log an informational message with the standardized prefix."""
    _log(INFO_PREFIX, message, logging.INFO)


def log_success(message: str) -> None:
    """Log a success message with the standardized prefix."""
    _log(CHECKMARK_PREFIX, message, logging.INFO)


def log_error(message: str) -> None:
    """Log an error message with the standardized prefix."""
    _log(CROSS_PREFIX, message, logging.ERROR)


def log_warning(message: str) -> None:
    """Log a warning message with the standardized prefix."""
    _log(WARNING_PREFIX, message, logging.WARNING)


def log_debug(message: str) -> None:
    """Log a debug message with the standardized prefix."""
    _log(DEBUG_PREFIX_WITH_SPACE, message, logging.DEBUG)


def abort_on_user_interrupt(exc: BaseException | None = None) -> NoReturn:
    """Log a standardized cancellation message and exit the command."""

    log_error("operation cancelled by user (Ctrl+C).")
    raise click.exceptions.Exit(130) from exc


def print_renderable(renderable: RenderableType) -> None:
    """Print a Rich renderable to the shared stderr console."""
    console.print(renderable)


def emit_output(content: str, *, newline: bool = True) -> None:
    """Emit raw command output to stdout for machine consumption."""
    click.echo(content, nl=newline, err=False)


def emit_json(payload: Any) -> None:
    """Emit a JSON document to stdout."""
    emit_output(json.dumps(payload, indent=2, ensure_ascii=False))


def utc_now() -> datetime:
    """Return the current time as a UTC-aware datetime without microseconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def coerce_datetime(value: object) -> Optional[datetime]:
    """Return a UTC-aware datetime object for ISO-like inputs, preserving None.

    Accepts datetime objects, date objects (converted to midnight UTC),
    and ISO-formatted strings (with or without time component).
    All returned datetimes are timezone-aware (UTC).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        pass
    else:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    # Try parsing as date-only and convert to midnight UTC
    try:
        d = date.fromisoformat(text)
    except ValueError:
        return None
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as an ISO-8601 string with a Z suffix for UTC."""
    if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
        iso_str = value.strftime("%Y-%m-%dT%H:%M:%S")
        if value.microsecond:
            iso_str += f".{value.microsecond:06d}".rstrip("0")
        return iso_str + "Z"
    return value.isoformat()
