"""
Exceptions raised while preparing and delivering CSV exports.
"""

from typing import Any, Optional


class CsvExportError(Exception):
    """Base exception for export errors."""

    pass


class InvalidExportRequestError(CsvExportError, ValueError):
    """Raised when an export request is misconfigured."""

    pass


class StreamConsumedError(CsvExportError):
    """Raised when an export stream is iterated a second time."""

    pass


class QueryEngineNotConfiguredError(CsvExportError):
    """Raised when a SQL statement is exported by an adapter without an engine."""

    pass


class RowDecodeError(CsvExportError):
    """Raised when a serialized row cannot be decoded."""

    def __init__(self, message: str, raw: Optional[Any] = None):
        super().__init__(message)
        self.raw = raw


class UnresolvedFieldError(CsvExportError, KeyError):
    """Raised when the resolver output lacks a field named by the heading map."""

    def __init__(self, field: str, available: Optional[list[str]] = None):
        super().__init__(f"Resolver did not produce field {field!r}")
        self.field = field
        self.available = available or []

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0])
