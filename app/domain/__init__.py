"""
app/domain package marker.
"""

from app.domain.import_record import (
    AttachedAsset,
    DecodedRecord,
    DestinationCategory,
    ImportOutcome,
    ImportSummary,
    MappingEntry,
    MappingTable,
    RowIssue,
)

__all__ = [
    "AttachedAsset",
    "DecodedRecord",
    "DestinationCategory",
    "ImportOutcome",
    "ImportSummary",
    "MappingEntry",
    "MappingTable",
    "RowIssue",
]
