"""
Streams query results to HTTP clients as CSV attachments.

The adapter glues three collaborators together: SQLAlchemy streams the rows,
the ``csv`` module formats them, and the ASGI server carries the bytes. The
only logic of its own is reshaping each row into the requested columns.
"""

import asyncio
import json
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, MutableMapping, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql.expression import Executable

from csvexport.core.config import settings
from csvexport.core.logging import audit_logger, get_logger
from csvexport.export.encoder import CsvEncoder
from csvexport.export.exceptions import (
    QueryEngineNotConfiguredError,
    RowDecodeError,
    UnresolvedFieldError,
)
from csvexport.export.models import ExportOutput, ExportRequest, QueryHandle
from csvexport.export.response import CsvExportResponse
from csvexport.export.stream import CsvExportStream

logger = get_logger(__name__)

Message = MutableMapping[str, Any]
Send = Callable[[Message], Awaitable[None]]


class CsvExportAdapter:
    """
    Prepares and delivers CSV exports of database queries.

    Usage in a FastAPI route:

        @router.get("/orders.csv")
        async def export_orders(adapter: CsvExportAdapter = Depends(get_csv_export_adapter)):
            return await adapter.respond(ExportRequest(
                filename="orders.csv",
                query=select(orders.c.id, orders.c.total),
                heading_map={"id": "Order", "total": "Total"},
                resolver=lambda row: {"id": str(row["id"]), "total": f"{row['total']:.2f}"},
            ))
    """

    def __init__(self, engine: Optional[AsyncEngine] = None, buffer_size: Optional[int] = None):
        """
        Initialize the adapter.

        Args:
            engine: Engine used to run SQLAlchemy statements
            buffer_size: Chunks buffered ahead of a slow client
        """
        self.engine = engine
        self.buffer_size = buffer_size or settings.export_buffer_size

    async def prepare(self, request: ExportRequest) -> ExportOutput:
        """
        Start streaming the query into a CSV stream.

        Rows are pulled right away by a background task; errors while doing so
        are raised to whoever consumes the returned stream.

        Args:
            request: What to export and how to lay it out

        Returns:
            The live stream and the response headers to send before it

        Raises:
            QueryEngineNotConfiguredError: For a statement without an engine
        """
        if isinstance(request.query, Executable) and self.engine is None:
            raise QueryEngineNotConfiguredError(
                "Adapter has no database engine to execute the export query"
            )

        encoder = CsvEncoder(
            request.headings,
            delimiter=request.delimiter,
            headers=True,
            encoding=request.encoding,
        )
        stream = CsvExportStream(buffer_size=self.buffer_size)
        task = asyncio.create_task(
            self._produce(request, encoder, stream),
            name=f"csv-export:{request.filename}",
        )
        stream.attach_producer(task)

        audit_logger.log_export_prepared(
            request.filename,
            columns=len(request.heading_map),
            delimiter=request.delimiter,
        )

        return ExportOutput(
            filename=request.filename,
            stream=stream,
            response_headers=request.response_headers,
        )

    async def deliver(self, send: Send, output: ExportOutput, status_code: int = 200) -> None:
        """
        Send the headers, then pipe the CSV stream into the response.

        Args:
            send: ASGI send callable of the response
            output: Result of ``prepare``
            status_code: HTTP status of the response

        Raises:
            Exception: Whatever ended the export early; the response body is
                truncated at that point
        """
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in output.response_headers.items()
        ]
        stream = output.stream
        try:
            await send(
                {"type": "http.response.start", "status": status_code, "headers": raw_headers}
            )
            async for chunk in stream:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        except Exception as e:
            audit_logger.log_export_failed(output.filename, e, rows=stream.rows_written)
            raise
        finally:
            await stream.aclose()

        await send({"type": "http.response.body", "body": b"", "more_body": False})

        audit_logger.log_export_completed(
            output.filename, rows=stream.rows_written, bytes_sent=stream.bytes_sent
        )

    async def respond(self, request: ExportRequest, status_code: int = 200) -> CsvExportResponse:
        """Prepare an export and wrap it in a response a route handler can return."""
        output = await self.prepare(request)
        return CsvExportResponse(self, output, status_code=status_code)

    async def _produce(
        self, request: ExportRequest, encoder: CsvEncoder, stream: CsvExportStream
    ) -> None:
        try:
            await stream.put(encoder.header())
            async with aclosing(self._iter_rows(request.query)) as rows:
                async for row in rows:
                    await stream.put(encoder.encode(self._format_row(request, row)))
                    stream.rows_written += 1
            await stream.put(encoder.close())
        except Exception as e:
            logger.debug(f"Export {request.filename} stopped after {stream.rows_written} rows: {e}")
            await stream.fail(e)
        else:
            await stream.finish()

    async def _iter_rows(self, query: QueryHandle) -> AsyncIterator[Any]:
        if isinstance(query, Executable):
            if self.engine is None:
                raise QueryEngineNotConfiguredError(
                    "Adapter has no database engine to execute the export query"
                )
            async with self.engine.connect() as connection:
                result = await connection.stream(query)
                async for row in result:
                    yield dict(row._mapping)
        elif hasattr(query, "__aiter__"):
            async for row in query:
                yield row
        else:
            for row in query:
                yield row

    @staticmethod
    def _format_row(request: ExportRequest, row: Any) -> list[Any]:
        """
        Decode and resolve one row, then re-key it by heading.

        Field ids sharing a heading fill a single column: it keeps the
        position of the first id and the value of the last one.
        """
        if isinstance(row, (str, bytes, bytearray)):
            try:
                row = json.loads(row)
            except ValueError as e:
                raise RowDecodeError(f"Malformed serialized row: {e}", raw=row) from e

        resolved = request.resolver(row)

        record: dict[str, Any] = {}
        for key, heading in request.heading_map.items():
            try:
                record[heading] = resolved[key]
            except KeyError:
                raise UnresolvedFieldError(key, list(resolved)) from None
        return list(record.values())
