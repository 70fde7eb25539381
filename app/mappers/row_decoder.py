"""
app/mappers/row_decoder.py

Decodes raw CSV rows into category-grouped records using a validated mapping table.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from app.domain.import_record import DecodedRecord, MappingEntry, MappingTable
from app.mappers.sanitizers import SanitizerRegistry


class ColumnCountMismatchError(ValueError):
    """
    Raised in strict mode when a row's width differs from the header's.
    """

    def __init__(self, *, row_number: int, expected: int, actual: int) -> None:
        super().__init__(
            f"Row #{row_number}: Expected {expected} columns. Actual: {actual}. Skipping."
        )
        self.row_number = row_number
        self.expected = expected
        self.actual = actual


class RowDecoder:
    """
    Pure row transform: split, sanitize and merge cell values per mapping entry.
    """

    def __init__(self, table: MappingTable, *, sanitizers: SanitizerRegistry | None = None) -> None:
        self._table = table
        self._sanitizers = sanitizers or SanitizerRegistry()

    def decode(
        self,
        row: Sequence[str],
        *,
        row_number: int,
        strict: bool = False,
    ) -> DecodedRecord:
        if strict and len(row) != len(self._table):
            raise ColumnCountMismatchError(
                row_number=row_number,
                expected=len(self._table),
                actual=len(row),
            )

        record = DecodedRecord()
        for index, entry in self._table.mapped_columns:
            if entry.is_ignored:
                continue
            cell = row[index] if index < len(row) else ""
            record.merge_value(entry.category, entry.name, self.decode_cell(entry, cell))
        return record

    def decode_cell(self, entry: MappingEntry, cell: str | None) -> Any:
        """
        Decode one cell; delimiter-configured entries always produce a list.
        """

        raw = "" if cell is None else cell
        if entry.delimiter is not None:
            return [self._sanitizers.apply(entry.sanitize, part) for part in raw.split(entry.delimiter)]
        return self._sanitizers.apply(entry.sanitize, raw)
