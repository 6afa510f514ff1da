"""
Streaming CSV export of database queries as HTTP attachments.
"""

from csvexport.export.adapter import CsvExportAdapter
from csvexport.export.encoder import CsvEncoder
from csvexport.export.exceptions import (
    CsvExportError,
    InvalidExportRequestError,
    QueryEngineNotConfiguredError,
    RowDecodeError,
    StreamConsumedError,
    UnresolvedFieldError,
)
from csvexport.export.models import ExportOutput, ExportRequest, RowResolver, identity_resolver
from csvexport.export.response import CsvExportResponse
from csvexport.export.stream import CsvExportStream, StreamState

__all__ = [
    "CsvExportAdapter",
    "CsvEncoder",
    "CsvExportResponse",
    "CsvExportStream",
    "StreamState",
    "ExportOutput",
    "ExportRequest",
    "RowResolver",
    "identity_resolver",
    "CsvExportError",
    "InvalidExportRequestError",
    "QueryEngineNotConfiguredError",
    "RowDecodeError",
    "StreamConsumedError",
    "UnresolvedFieldError",
]
