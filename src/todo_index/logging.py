"""Structured logging for todo-index.

Provides:
- StructuredLogger: keyword arguments on log calls become record fields
- JSONFormatter: one JSON object per line, for machine consumption
- HumanFormatter: compact single-line output for terminals
- configure_logging(): install a handler on the ``todo_index`` logger
- get_logger(): namespaced StructuredLogger factory

Example:
    >>> from todo_index.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", format="human")
    >>> logger = get_logger("indexer")
    >>> logger.info("Refresh complete", documents=3, items=12)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, Literal

__all__ = [
    "StructuredLogger",
    "JSONFormatter",
    "HumanFormatter",
    "configure_logging",
    "get_logger",
]

ROOT_LOGGER_NAME = "todo_index"

# Attributes present on every LogRecord; anything else was passed as extra.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    | {"message", "asctime", "taskName"}
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(_extra_fields(record))

        if record.levelno >= logging.ERROR:
            data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """Format log records for terminal reading."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{ts} {record.levelname:<7} {record.name}: {record.getMessage()}"
        extra = _extra_fields(record)
        if extra:
            line += " " + " ".join(f"{k}={v}" for k, v in extra.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# StructuredLogger
# =============================================================================


class StructuredLogger:
    """Logger wrapper that turns keyword arguments into record fields.

    Example:
        >>> logger = get_logger("parser")
        >>> logger.warning("Skipped document", identity="notes/a.md")
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def level(self) -> int:
        return self._logger.level

    def getChild(self, suffix: str) -> StructuredLogger:  # noqa: N802
        return StructuredLogger(self._logger.getChild(suffix))

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        extra = kwargs.pop("extra", None) or {}
        extra.update(kwargs)
        self._logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            stack_info=stack_info,
            extra=extra or None,
            stacklevel=3,
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: str | int = "INFO",
    format: Literal["human", "json"] = "human",
    stream: Any = None,
) -> None:
    """Configure the ``todo_index`` logger.

    Replaces any handler previously installed by this function, so it is safe
    to call more than once.

    Args:
        level: Log level name or number.
        format: "human" for terminals, "json" for log collectors.
        stream: Output stream (defaults to stderr).
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(root.handlers):
        if getattr(handler, "_todo_index_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if format == "json" else HumanFormatter())
    handler._todo_index_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a StructuredLogger under the ``todo_index`` namespace.

    Args:
        name: Component name, e.g. "indexer" or "sources.vault".

    Returns:
        StructuredLogger wrapping ``logging.getLogger("todo_index.<name>")``.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return StructuredLogger(logging.getLogger(name))
