"""
Starlette response carrying a prepared CSV export.
"""

from typing import TYPE_CHECKING

from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from csvexport.export.models import ExportOutput

if TYPE_CHECKING:
    from csvexport.export.adapter import CsvExportAdapter


class CsvExportResponse(Response):
    """
    Response whose body is a live CSV export stream.

    Route handlers return it like any other response; when the server calls
    it, the adapter sends the headers and then pipes the stream.
    """

    media_type = "text/csv"

    def __init__(
        self,
        adapter: "CsvExportAdapter",
        output: ExportOutput,
        status_code: int = 200,
    ) -> None:
        self.adapter = adapter
        self.output = output
        self.status_code = status_code
        self.background = None
        self.init_headers(output.response_headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.adapter.deliver(send, self.output, status_code=self.status_code)

        if self.background is not None:
            await self.background()
