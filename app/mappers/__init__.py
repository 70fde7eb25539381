"""
app/mappers package marker.
"""

from app.mappers.mapping_document import (
    MappingDocumentError,
    MappingEntryDocument,
    ParsedMappingDocument,
    load_mapping_document,
    parse_mapping_document,
    parse_mapping_json,
)
from app.mappers.row_decoder import ColumnCountMismatchError, RowDecoder
from app.mappers.sanitizers import DEFAULT_SANITIZERS, SanitizerRegistry

__all__ = [
    "DEFAULT_SANITIZERS",
    "ColumnCountMismatchError",
    "MappingDocumentError",
    "MappingEntryDocument",
    "ParsedMappingDocument",
    "RowDecoder",
    "SanitizerRegistry",
    "load_mapping_document",
    "parse_mapping_document",
    "parse_mapping_json",
]
