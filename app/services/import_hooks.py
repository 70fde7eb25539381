"""
app/services/import_hooks.py

Extension points invoked by the import driver and record writer.
"""

from __future__ import annotations

from typing import Any, Protocol

from app.domain.import_record import DecodedRecord
from app.mappers.mapping_document import ParsedMappingDocument


class ImportHooks(Protocol):
    """
    Callbacks that may rewrite the mapping document or a record before it is stored.
    """

    def filter_mapping_document(self, document: ParsedMappingDocument) -> ParsedMappingDocument | None:
        """
        Return the document to validate; ``None`` aborts the run.
        """

    def before_upsert(
        self,
        fields: dict[str, Any],
        record: DecodedRecord,
        *,
        row_number: int,
    ) -> dict[str, Any]:
        """
        Return the primary fields to store for one row.
        """


class NoOpImportHooks:
    """
    Default hooks that leave documents and records unchanged.
    """

    def filter_mapping_document(self, document: ParsedMappingDocument) -> ParsedMappingDocument | None:
        return document

    def before_upsert(
        self,
        fields: dict[str, Any],
        record: DecodedRecord,
        *,
        row_number: int,
    ) -> dict[str, Any]:
        return fields
