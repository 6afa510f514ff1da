"""
Download routes for configured database tables.

Only tables listed in EXPORT_TABLES are served; their columns are reflected
from the database on each request.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import MetaData, Table, select
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.ext.asyncio import AsyncEngine

from csvexport.api.dependencies import get_csv_export_adapter
from csvexport.core.config import settings
from csvexport.core.logging import get_logger
from csvexport.export import (
    CsvExportAdapter,
    CsvExportResponse,
    ExportRequest,
    InvalidExportRequestError,
)

logger = get_logger(__name__)

router = APIRouter()


async def reflect_table(engine: AsyncEngine, table_name: str) -> Table:
    """
    Load a table definition from the database.

    Raises:
        NoSuchTableError: If the database has no such table
    """
    metadata = MetaData()
    async with engine.connect() as connection:
        return await connection.run_sync(
            lambda sync_connection: Table(table_name, metadata, autoload_with=sync_connection)
        )


@router.get("/{table_name}.csv")
async def export_table(
    table_name: str,
    columns: Optional[str] = Query(default=None, description="Comma-separated column subset"),
    delimiter: Optional[str] = Query(default=None, description="Field separator"),
    adapter: CsvExportAdapter = Depends(get_csv_export_adapter),
) -> CsvExportResponse:
    """
    Download a configured table as a CSV attachment.

    Columns are headed by their names and rows ordered by primary key.

    Args:
        table_name: Table listed in EXPORT_TABLES
        columns: Restrict the export to these columns, in this order
        delimiter: Overrides CSV_DEFAULT_DELIMITER
        adapter: Export adapter bound to the application engine

    Returns:
        Streaming CSV response
    """
    if table_name not in settings.export_tables or adapter.engine is None:
        raise HTTPException(status_code=404, detail=f"No export for table {table_name}")

    try:
        table = await reflect_table(adapter.engine, table_name)
    except NoSuchTableError:
        logger.warning("Configured export table is missing", extra={"table": table_name})
        raise HTTPException(status_code=404, detail=f"No export for table {table_name}")

    if columns:
        names = [name.strip() for name in columns.split(",") if name.strip()]
        unknown = [name for name in names if name not in table.c]
        if unknown:
            raise HTTPException(
                status_code=400, detail=f"Unknown columns: {', '.join(unknown)}"
            )
    else:
        names = list(table.c.keys())

    query = select(*(table.c[name] for name in names)).order_by(*table.primary_key.columns)

    try:
        request = ExportRequest(
            filename=f"{table_name}.csv",
            query=query,
            heading_map={name: name for name in names},
            delimiter=delimiter,
        )
    except InvalidExportRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return await adapter.respond(request)
