"""Error hierarchy for todo-index.

All errors raised by todo-index collaborators derive from ``TodoIndexError``.
Errors carry a human-readable message, optional structured details, and an
optional hint describing how to fix the problem.

The refresh pipeline itself never lets these escape: a failing document is
logged and contributes no items.

Example:
    >>> from todo_index.errors import ConfigurationError
    >>> raise ConfigurationError(
    ...     "Invalid group_by value 'folder'",
    ...     hint="Use one of: file, tag, subtag, status",
    ... )
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Literal

__all__ = [
    "TodoIndexError",
    "ConfigurationError",
    "DocumentError",
    "DocumentReadError",
    "DocumentParseError",
    "log_exception",
]


# =============================================================================
# Base Error
# =============================================================================


class TodoIndexError(Exception):
    """Base exception for todo-index.

    Attributes:
        message: Human-readable error description.
        details: Structured context about the error.
        hint: Suggestion for resolving the error.
        docs_url: Link to relevant documentation.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
        docs_url: str | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.hint = hint
        self.docs_url = docs_url
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.docs_url:
            parts.append(f"Docs: {self.docs_url}")
        return "\n".join(parts)

    def __str__(self) -> str:
        return self._format()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(TodoIndexError):
    """Settings could not be loaded or failed validation."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.source = source
        details = kwargs.pop("details", None) or {}
        if source:
            details["source"] = source
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Document Errors
# =============================================================================


class DocumentError(TodoIndexError):
    """A single document could not be processed."""

    def __init__(self, message: str, *, identity: str, **kwargs: Any) -> None:
        self.identity = identity
        details = kwargs.pop("details", None) or {}
        details["identity"] = identity
        super().__init__(f"{identity}: {message}", details=details, **kwargs)


class DocumentReadError(DocumentError):
    """Reading a document's content failed."""


class DocumentParseError(DocumentError):
    """A document's content or metadata could not be parsed."""


# =============================================================================
# Helpers
# =============================================================================


def log_exception(
    logger: logging.Logger | Any,
    message: str,
    exc: BaseException,
    *,
    level: Literal["debug", "info", "warning", "error"] = "warning",
    include_traceback: bool = True,
) -> None:
    """Log an exception with its type and message.

    Args:
        logger: Logger (stdlib or StructuredLogger) to write to.
        message: Context describing what failed.
        exc: The exception that was caught.
        level: Log level name.
        include_traceback: Append the formatted traceback at DEBUG verbosity.
    """
    log = getattr(logger, level)
    text = f"{message}: {type(exc).__name__}: {exc}"
    if include_traceback and exc.__traceback__ is not None:
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        text = f"{text}\n{tb}"
    log(text)
