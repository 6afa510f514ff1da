"""
FastAPI application serving CSV downloads.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from csvexport.api import exports
from csvexport.api.dependencies import reset_csv_export_adapter
from csvexport.core.config import settings
from csvexport.core.logging import get_logger, setup_logging
from csvexport.db.session import dispose_engine

API_VERSION = "1.0.0"

setup_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the configured exports; release the database engine on shutdown."""
    logger.info(
        "Starting CSV export API",
        extra={"version": API_VERSION, "export_tables": settings.export_tables},
    )

    yield

    reset_csv_export_adapter()
    await dispose_engine()
    logger.info("CSV export API stopped")


app = FastAPI(
    title="CSV Export API",
    description="Streams database tables to clients as CSV attachments",
    version=API_VERSION,
    docs_url="/docs" if settings.enable_api_docs else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Browsers only let scripts read the attachment name when it is exposed
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(exports.router, prefix="/exports", tags=["exports"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": API_VERSION}


@app.get("/")
async def root() -> dict[str, Any]:
    """
    List the available downloads.

    Returns:
        Download path per configured table
    """
    return {
        "message": "CSV Export API",
        "exports": [f"/exports/{name}.csv" for name in settings.export_tables],
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Any, exc: Exception) -> JSONResponse:
    """
    Turn errors raised before a response started into a JSON 500.

    Exports failing mid-stream have already sent their headers; those end as
    truncated downloads instead.
    """
    logger.error(
        "Unhandled exception",
        extra={"path": str(request.url), "method": request.method, "error": str(exc)},
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "csvexport.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
