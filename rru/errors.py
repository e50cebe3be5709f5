"""Exception hierarchy for rru.

Parsing failures all derive from :class:`ParseError` so callers can abort on
any of them with a single ``except``; the subclasses tell a corrupted fetch
(:class:`TokenizationError`) apart from a document that uses constructs the
builder does not support (:class:`UnexpectedEventError`).
"""
from __future__ import annotations

from typing import Any, Optional

__all__ = [
    "RruError",
    "ParseError",
    "TokenizationError",
    "UnexpectedEventError",
    "MissingRootError",
    "TruncatedDocumentError",
    "MismatchedCloseError",
    "DepthLimitError",
    "RetrievalError",
    "MetadataError",
    "RenameConflictError",
]


class RruError(RuntimeError):
    """Base exception for every failure raised by this package."""


class ParseError(RruError):
    """Raised when a document cannot be turned into a tree."""


class TokenizationError(ParseError):
    """Raised when the event source cannot produce the next event."""

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)
        self.line = line
        self.column = column


class UnexpectedEventError(ParseError):
    """Raised for an event kind the builder does not handle at that position."""

    def __init__(self, event: Any, context: str) -> None:
        super().__init__(f"Unhandled event {event} {context}")
        self.event = event


class MissingRootError(ParseError):
    """Raised when the event stream ends before any element starts."""


class TruncatedDocumentError(ParseError):
    """Raised when the event stream ends while elements are still open."""


class MismatchedCloseError(ParseError):
    """Raised in strict mode when a close event names the wrong element."""

    def __init__(self, expected: str, found: str) -> None:
        super().__init__(f"expected closing tag for <{expected}>, found </{found}>")
        self.expected = expected
        self.found = found


class DepthLimitError(ParseError):
    """Raised when element nesting exceeds the configured maximum depth."""


class RetrievalError(RruError):
    """Raised when metadata text cannot be read from disk or fetched."""


class MetadataError(RruError):
    """Raised when a parsed document does not have the expected structure."""


class RenameConflictError(RruError):
    """Raised when a rename target already exists next to its source."""
