"""structlog setup for lecturescan.

Lines are written to stderr so the CLI can keep stdout for JSON:
    12:30:45 INF recognition worker ready language=eng time_ms=812
    12:30:47 WRN correction timed out pid=4121 timeout_s=5.0
"""

import logging
import sys
from datetime import datetime

import structlog

_SHORT_LEVELS = {
    "debug": "DBG",
    "info": "INF",
    "warning": "WRN",
    "error": "ERR",
    "critical": "CRT",
}


def _stamp(logger, method_name, event_dict):
    """Add an HH:MM:SS timestamp and a three-letter level."""
    event_dict["timestamp"] = datetime.now().strftime("%H:%M:%S")
    level = event_dict.get("level", method_name)
    event_dict["level"] = _SHORT_LEVELS.get(level, level.upper()[:3])
    return event_dict


def _format_value(value) -> str:
    if isinstance(value, str) and " " in value:
        return f'"{value}"'
    return str(value)


def _render(logger, method_name, event_dict) -> str:
    head = [
        event_dict.pop("timestamp", ""),
        event_dict.pop("level", "???"),
        event_dict.pop("event", ""),
    ]
    fields = [f"{key}={_format_value(value)}" for key, value in event_dict.items() if not key.startswith("_")]
    return " ".join(head + fields)


def configure(level: str = "INFO", debug: bool = False) -> None:
    """Install the console renderer; ``debug`` forces DEBUG level."""
    if debug:
        level = "DEBUG"

    structlog.configure(
        processors=[structlog.stdlib.add_log_level, _stamp, _render],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger() -> structlog.BoundLogger:
    return structlog.get_logger()
