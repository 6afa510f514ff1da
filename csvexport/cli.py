"""
CSV export - command line interface

Streams the result of a SQL query into a CSV file without a web server.

Usage:
    csvexport export "SELECT id, name FROM users" -c id=ID -c name=Name -o users.csv
    csvexport export "SELECT * FROM orders" -c id -c total=Total --delimiter ";"
"""

import asyncio
import sys
from pathlib import Path
from typing import BinaryIO, Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import text

from csvexport.core.config import settings
from csvexport.core.logging import get_logger
from csvexport.db.session import create_engine_from_settings
from csvexport.export.adapter import CsvExportAdapter
from csvexport.export.models import ExportRequest, identity_resolver

app = typer.Typer(help="CSV export - stream query results into CSV files")
# stdout may carry the CSV itself
console = Console(stderr=True)
logger = get_logger(__name__)


def parse_columns(columns: list[str]) -> dict[str, str]:
    """
    Build the heading map from ``field=Heading`` options.

    A bare ``field`` uses the field name as its heading.

    Raises:
        typer.BadParameter: On an empty field name
    """
    heading_map: dict[str, str] = {}
    for column in columns:
        field, _, heading = column.partition("=")
        field = field.strip()
        if not field:
            raise typer.BadParameter(f"Missing field name in {column!r}", param_hint="--column")
        heading_map[field] = heading or field
    return heading_map


async def run_export(
    sql: str,
    heading_map: dict[str, str],
    sink: BinaryIO,
    filename: str,
    delimiter: Optional[str] = None,
    encoding: Optional[str] = None,
    database_url: Optional[str] = None,
) -> tuple[int, int]:
    """
    Export one query into a binary file object.

    Returns:
        Rows written and bytes written
    """
    engine = create_engine_from_settings(database_url)
    try:
        adapter = CsvExportAdapter(engine=engine)
        output = await adapter.prepare(
            ExportRequest(
                filename=filename,
                query=text(sql),
                heading_map=heading_map,
                resolver=identity_resolver,
                delimiter=delimiter,
                encoding=encoding,
            )
        )
        stream = output.stream
        try:
            async for chunk in stream:
                sink.write(chunk)
        finally:
            await stream.aclose()
        sink.flush()
        return stream.rows_written, stream.bytes_sent
    finally:
        await engine.dispose()


@app.callback()
def main() -> None:
    """
    CSV export - stream query results into CSV files.
    """


@app.command()
def export(
    sql: str = typer.Argument(..., help="SQL query to export"),
    column: list[str] = typer.Option(
        ...,
        "--column",
        "-c",
        help="Exported column as field=Heading (repeatable, order is kept)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Target file (default: stdout)",
    ),
    delimiter: Optional[str] = typer.Option(
        None,
        "--delimiter",
        "-d",
        help=f"Field separator (default: {settings.csv_default_delimiter!r})",
    ),
    encoding: Optional[str] = typer.Option(
        None,
        "--encoding",
        help=f"Output encoding (default: {settings.csv_encoding})",
    ),
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Async SQLAlchemy URL (default: DATABASE_URL)",
    ),
) -> None:
    """
    Export the rows of a SQL query as CSV.
    """
    heading_map = parse_columns(column)

    try:
        if output is None:
            rows, size = asyncio.run(
                run_export(
                    sql, heading_map, sys.stdout.buffer, "export.csv",
                    delimiter=delimiter, encoding=encoding, database_url=database_url,
                )
            )
        else:
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, "wb") as f:
                rows, size = asyncio.run(
                    run_export(
                        sql, heading_map, f, output.name,
                        delimiter=delimiter, encoding=encoding, database_url=database_url,
                    )
                )

    except KeyboardInterrupt:
        console.print("[yellow]Export aborted by user[/yellow]")
        raise typer.Exit(130)

    except Exception as e:
        console.print(f"[red]ERROR: {e}[/red]")
        logger.exception("Export failed")
        raise typer.Exit(1)

    table = Table(title="Export finished")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("File", str(output) if output else "<stdout>")
    table.add_row("Columns", str(len(heading_map)))
    table.add_row("Rows", str(rows))
    table.add_row("Bytes", str(size))
    console.print(table)


if __name__ == "__main__":
    app()
