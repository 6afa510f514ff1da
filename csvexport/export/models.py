"""
Request and result types of the CSV export adapter.
"""

import codecs
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Callable, Iterable, Mapping, Optional, Union

from sqlalchemy.sql.expression import Executable

from csvexport.core.config import settings
from csvexport.export.exceptions import InvalidExportRequestError
from csvexport.export.stream import CsvExportStream

# Maps one query row to field id -> cell value
RowResolver = Callable[[Any], Mapping[str, Any]]

QueryHandle = Union[Executable, AsyncIterable[Any], Iterable[Any]]


def identity_resolver(row: Any) -> dict[str, Any]:
    """Resolver for rows that already carry their field ids as keys."""
    return dict(row)


@dataclass
class ExportRequest:
    """
    Everything needed to stream one query as a CSV attachment.

    Attributes:
        filename: Attachment name, placed verbatim in Content-Disposition
        query: SQLAlchemy statement, or an (async) iterable of rows
        heading_map: Field id -> column heading; its order is the column order
        resolver: Maps one row to field id -> cell value
        delimiter: Field separator, defaults to CSV_DEFAULT_DELIMITER
        encoding: Output encoding, defaults to CSV_ENCODING
    """

    filename: str
    query: QueryHandle
    heading_map: Mapping[str, str]
    resolver: RowResolver = identity_resolver
    delimiter: Optional[str] = None
    encoding: Optional[str] = None

    def __post_init__(self) -> None:
        if self.delimiter is None:
            self.delimiter = settings.csv_default_delimiter
        if self.encoding is None:
            self.encoding = settings.csv_encoding

        if isinstance(self.query, (str, bytes)):
            raise InvalidExportRequestError("Wrap raw SQL in sqlalchemy.text() before exporting it")
        if not self.filename:
            raise InvalidExportRequestError("Filename must not be empty")
        if "\r" in self.filename or "\n" in self.filename:
            raise InvalidExportRequestError("Filename must not contain line breaks")
        if not self.heading_map:
            raise InvalidExportRequestError("Heading map must name at least one field")
        if len(self.delimiter) != 1:
            raise InvalidExportRequestError(
                f"Delimiter must be a single character, got {self.delimiter!r}"
            )
        if not callable(self.resolver):
            raise InvalidExportRequestError("Resolver must be callable")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise InvalidExportRequestError(f"Unknown encoding: {self.encoding}") from e

    @property
    def headings(self) -> list[str]:
        """Column headings in output order, each heading once."""
        return list(dict.fromkeys(self.heading_map.values()))

    @property
    def response_headers(self) -> dict[str, str]:
        """HTTP headers announcing the CSV attachment."""
        return {
            "Content-Type": "text/csv",
            "Content-Disposition": f"attachment; filename={self.filename}",
        }


@dataclass
class ExportOutput:
    """A live CSV byte stream and the headers to send ahead of it."""

    filename: str
    stream: CsvExportStream
    response_headers: dict[str, str] = field(default_factory=dict)
