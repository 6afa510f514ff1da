"""
FastAPI dependency providers.
"""

from typing import Optional

from csvexport.db.session import get_engine
from csvexport.export.adapter import CsvExportAdapter

_adapter: Optional[CsvExportAdapter] = None


def get_csv_export_adapter() -> CsvExportAdapter:
    """
    Provide the shared export adapter bound to the application engine.

    Route handlers declare ``adapter: CsvExportAdapter = Depends(get_csv_export_adapter)``.
    """
    global _adapter
    if _adapter is None:
        _adapter = CsvExportAdapter(engine=get_engine())
    return _adapter


def reset_csv_export_adapter() -> None:
    """Forget the shared adapter, e.g. after the engine was disposed."""
    global _adapter
    _adapter = None
