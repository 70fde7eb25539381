"""
app/services package marker.
"""

from app.services.csv_import_service import CSVImportService, ImportState
from app.services.errors import ImportSourceError, UnsupportedAssetError
from app.services.import_hooks import ImportHooks, NoOpImportHooks
from app.services.record_writer import RECORD_WRITTEN_EVENT, RecordWriter

__all__ = [
    "CSVImportService",
    "ImportHooks",
    "ImportSourceError",
    "ImportState",
    "NoOpImportHooks",
    "RECORD_WRITTEN_EVENT",
    "RecordWriter",
    "UnsupportedAssetError",
]
