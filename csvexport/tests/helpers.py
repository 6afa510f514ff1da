"""
Shared test doubles: an ASGI recorder, async row sources and a sample table.
"""

from typing import Any, AsyncIterator, Iterable, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table

metadata = MetaData()

people = Table(
    "people",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=True),
)


class AsgiRecorder:
    """ASGI send callable that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def start(self) -> dict[str, Any]:
        return self.messages[0]

    @property
    def headers(self) -> dict[str, str]:
        return {k.decode("latin-1"): v.decode("latin-1") for k, v in self.start["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(m["body"] for m in self.messages if m["type"] == "http.response.body")

    @property
    def finished(self) -> bool:
        last = self.messages[-1]
        return last["type"] == "http.response.body" and not last["more_body"]


async def async_rows(
    rows: Iterable[Any], error: Optional[BaseException] = None
) -> AsyncIterator[Any]:
    """Yield rows asynchronously, then raise ``error`` if given."""
    for row in rows:
        yield row
    if error is not None:
        raise error
