"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.imported_record import (
    ImportedRecord,
    RecordAsset,
    RecordField,
    RecordOwner,
    RecordRelation,
)

__all__ = [
    "ImportedRecord",
    "RecordAsset",
    "RecordField",
    "RecordOwner",
    "RecordRelation",
]
