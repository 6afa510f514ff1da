"""
HTTP tests: exports returned from FastAPI routes.
"""

from typing import Iterator

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from csvexport.api.dependencies import get_csv_export_adapter
from csvexport.api.main import app as main_app
from csvexport.core.config import settings
from csvexport.export import CsvExportAdapter, ExportRequest
from csvexport.tests.helpers import async_rows

ROWS = [
    {"id": 1, "name": "A", "internal": "x"},
    {"id": 2, "name": "B", "internal": "y"},
]


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/people.csv")
    async def export_people(
        delimiter: str = ",",
        adapter: CsvExportAdapter = Depends(get_csv_export_adapter),
    ):
        return await adapter.respond(
            ExportRequest(
                filename="people.csv",
                query=async_rows(ROWS),
                heading_map={"id": "ID", "name": "Name"},
                resolver=lambda row: {"id": str(row["id"]), "name": row["name"]},
                delimiter=delimiter,
            )
        )

    @app.get("/broken.csv")
    async def export_broken(adapter: CsvExportAdapter = Depends(get_csv_export_adapter)):
        return await adapter.respond(
            ExportRequest(
                filename="broken.csv",
                query=async_rows(ROWS[:1], error=RuntimeError("cursor closed")),
                heading_map={"id": "ID"},
            )
        )

    app.dependency_overrides[get_csv_export_adapter] = lambda: CsvExportAdapter()
    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(build_app())


class TestExportRoutes:
    """Test suite for CSV responses."""

    def test_download(self, client) -> None:
        response = client.get("/people.csv")

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv"
        assert response.headers["content-disposition"] == "attachment; filename=people.csv"
        assert response.text == "ID,Name\n1,A\n2,B"

    def test_delimiter_from_query_string(self, client) -> None:
        response = client.get("/people.csv", params={"delimiter": ";"})

        assert response.text == "ID;Name\n1;A\n2;B"

    def test_mid_stream_failure_reaches_server(self, client) -> None:
        with pytest.raises(RuntimeError, match="cursor closed"):
            client.get("/broken.csv")


class TestMainApp:
    """Test suite for the service endpoints."""

    def test_health(self) -> None:
        with TestClient(main_app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self) -> None:
        with TestClient(main_app) as client:
            response = client.get("/")

        assert response.json()["message"] == "CSV Export API"


@pytest.fixture
def exports_client(sqlite_url, monkeypatch) -> Iterator[TestClient]:
    """Service app reading the seeded database, with ``people`` configured."""
    monkeypatch.setattr(settings, "export_tables", ["people", "missing"])
    engine = create_async_engine(sqlite_url, poolclass=NullPool)
    main_app.dependency_overrides[get_csv_export_adapter] = lambda: CsvExportAdapter(engine=engine)

    with TestClient(main_app) as client:
        yield client

    main_app.dependency_overrides.clear()


class TestTableExports:
    """Test suite for the configured table downloads."""

    def test_download_table(self, exports_client) -> None:
        response = exports_client.get("/exports/people.csv")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == "attachment; filename=people.csv"
        assert response.text == (
            'id,name,email\n1,Ada,ada@example.com\n2,Grace,\n3,"Linus, Jr.",linus@example.com'
        )

    def test_column_subset_and_delimiter(self, exports_client) -> None:
        response = exports_client.get(
            "/exports/people.csv", params={"columns": "name,id", "delimiter": ";"}
        )

        assert response.text == "name;id\nAda;1\nGrace;2\nLinus, Jr.;3"

    def test_unknown_column(self, exports_client) -> None:
        response = exports_client.get("/exports/people.csv", params={"columns": "id,salary"})

        assert response.status_code == 400
        assert "salary" in response.json()["detail"]

    def test_invalid_delimiter(self, exports_client) -> None:
        response = exports_client.get("/exports/people.csv", params={"delimiter": "::"})

        assert response.status_code == 400

    def test_table_not_configured(self, exports_client) -> None:
        response = exports_client.get("/exports/sqlite_master.csv")

        assert response.status_code == 404

    def test_configured_table_missing_from_database(self, exports_client) -> None:
        response = exports_client.get("/exports/missing.csv")

        assert response.status_code == 404

    def test_root_lists_exports(self, exports_client) -> None:
        response = exports_client.get("/")

        assert response.json()["exports"] == ["/exports/people.csv", "/exports/missing.csv"]
