"""
Pytest configuration and fixtures.
"""

from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine

from csvexport.tests.helpers import AsgiRecorder, metadata, people


@pytest.fixture
def heading_map() -> dict[str, str]:
    """Heading map of the two-column sample export."""
    return {"id": "ID", "name": "Name"}


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    """Two plain rows."""
    return [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]


@pytest.fixture
def recorder() -> AsgiRecorder:
    return AsgiRecorder()


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """Seed a SQLite file and return its async URL."""
    db_file = tmp_path / "people.db"

    engine = create_engine(f"sqlite:///{db_file}")
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(
            people.insert(),
            [
                {"id": 1, "name": "Ada", "email": "ada@example.com"},
                {"id": 2, "name": "Grace", "email": None},
                {"id": 3, "name": "Linus, Jr.", "email": "linus@example.com"},
            ],
        )
    engine.dispose()

    return f"sqlite+aiosqlite:///{db_file}"
