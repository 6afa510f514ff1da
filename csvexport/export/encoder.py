"""
CSV sink turning ordered records into encoded byte chunks.

Formatting is left to the standard library ``csv`` writer; this module only
buffers its output and encodes it incrementally so that a byte order mark
(``utf-8-sig``) is emitted once, at the very start of the file.

The record terminator separates records: it is written before every record
but the first, and after the last one only when ``end_row_delimiter`` is set.
"""

import codecs
import csv
import io
from typing import Any, Optional, Sequence

from csvexport.core.config import settings


class CsvEncoder:
    """
    Encodes one CSV document, record by record.

    Args:
        headings: Column headings, written first when ``headers`` is set
        delimiter: Field separator
        headers: Whether to emit the header row
        encoding: Target text encoding
        line_terminator: Record terminator
        end_row_delimiter: Whether the last record is terminated too
    """

    def __init__(
        self,
        headings: Sequence[str],
        delimiter: str = ",",
        headers: bool = True,
        encoding: str = "utf-8",
        line_terminator: str = "",
        end_row_delimiter: Optional[bool] = None,
    ):
        self.headings = list(headings)
        self.headers = headers
        self.line_terminator = line_terminator or settings.csv_line_terminator
        if end_row_delimiter is None:
            end_row_delimiter = settings.csv_include_end_row_delimiter
        self.end_row_delimiter = end_row_delimiter
        self._buffer = io.StringIO()
        self._writer = csv.writer(
            self._buffer,
            delimiter=delimiter,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator=self.line_terminator,
        )
        self._encoder = codecs.getincrementalencoder(encoding)()
        self._header_written = False
        self._records = 0

    def header(self) -> bytes:
        """Return the encoded header row, or nothing when headers are disabled."""
        if not self.headers or self._header_written:
            return b""
        self._header_written = True
        return self._encode_row(self.headings)

    def encode(self, values: Sequence[Any]) -> bytes:
        """Return one encoded record; the header row is prepended if still due."""
        if len(values) != len(self.headings):
            raise ValueError(
                f"Record has {len(values)} fields, expected {len(self.headings)}"
            )
        return self.header() + self._encode_row(values)

    def close(self) -> bytes:
        """Flush the encoder; the header is emitted here for an empty document."""
        data = self.header()
        tail = self.line_terminator if self.end_row_delimiter and self._records else ""
        return data + self._encoder.encode(tail, final=True)

    def _encode_row(self, values: Sequence[Any]) -> bytes:
        self._writer.writerow(values)
        text = self._buffer.getvalue()[: -len(self.line_terminator)]
        self._buffer.seek(0)
        self._buffer.truncate(0)

        if self._records:
            text = self.line_terminator + text
        self._records += 1
        return self._encoder.encode(text)
