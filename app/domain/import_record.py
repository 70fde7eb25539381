"""
app/domain/import_record.py

Domain models shared by the mapping, decoding and writing stages of a CSV import.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


class DestinationCategory:
    PRIMARY = "primary"
    SIDEFIELD = "sidefield"
    RELATIONAL = "relational"
    ASSET = "asset"

    ALL: tuple[str, ...] = (PRIMARY, SIDEFIELD, RELATIONAL, ASSET)


@dataclass(frozen=True)
class MappingEntry:
    """
    Validated binding of one CSV header to a destination field.
    """

    header: str
    category: str
    name: str | None
    sanitize: tuple[str, ...] = ()
    delimiter: str | None = None

    @property
    def is_ignored(self) -> bool:
        return self.name is None

    def describe(self) -> dict[str, Any]:
        return {
            "header": self.header,
            "type": self.category,
            "name": self.name,
            "sanitize": ",".join(self.sanitize),
            "delimiter": self.delimiter,
        }


@dataclass(frozen=True)
class MappingTable:
    """
    Column-aligned mapping used to decode rows.

    ``columns`` holds one slot per CSV column; ``None`` marks a column that is
    not mapped and must be skipped. ``entries`` keeps every validated entry
    keyed by header, in mapping-document order.
    """

    headers: tuple[str, ...]
    columns: tuple[MappingEntry | None, ...]
    entries: Mapping[str, MappingEntry]

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[MappingEntry | None]:
        return iter(self.columns)

    @property
    def mapped_columns(self) -> list[tuple[int, MappingEntry]]:
        return [(index, entry) for index, entry in enumerate(self.columns) if entry is not None]

    @property
    def unbound_headers(self) -> list[str]:
        """
        Mapping headers that did not match any CSV column.
        """

        bound = {entry.header for entry in self.columns if entry is not None}
        return [header for header in self.entries if header not in bound]

    @classmethod
    def aligned(
        cls,
        *,
        entries: Mapping[str, MappingEntry | None],
        headers: Sequence[str] | None = None,
    ) -> MappingTable:
        """
        Build a table aligned to ``headers`` (or to the document order when omitted).
        """

        validated = {header: entry for header, entry in entries.items() if entry is not None}
        column_headers = tuple(headers) if headers is not None else tuple(entries)
        return cls(
            headers=column_headers,
            columns=tuple(validated.get(header) for header in column_headers),
            entries=validated,
        )


@dataclass
class DecodedRecord:
    """
    One decoded CSV row grouped by destination category.
    """

    sections: dict[str, dict[str, Any]] = field(default_factory=dict)

    def section(self, category: str) -> dict[str, Any]:
        return self.sections.get(category, {})

    def has_section(self, category: str) -> bool:
        return category in self.sections

    def merge_value(self, category: str, name: str, value: Any) -> None:
        """
        Store ``value`` under ``[category][name]``, concatenating with an earlier value.
        """

        bucket = self.sections.setdefault(category, {})
        if name in bucket and bucket[name] is not None:
            previous = bucket[name]
            previous_values = previous if isinstance(previous, list) else [previous]
            current_values = value if isinstance(value, list) else [value]
            bucket[name] = [*previous_values, *current_values]
            return
        bucket[name] = value

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {category: dict(values) for category, values in self.sections.items()}


@dataclass(frozen=True)
class AttachedAsset:
    """
    One asset stored against an imported record.
    """

    key: str
    asset_id: Any
    source: str
    file_name: str


@dataclass
class ImportOutcome:
    """
    Result of writing one decoded row.
    """

    row_number: int
    succeeded: bool
    entity_id: Any = None
    created: bool = False
    primary: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    relations: dict[str, list[Any]] = field(default_factory=dict)
    assets: list[AttachedAsset] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def written_ids(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "fields": sorted(self.fields),
            "relations": sorted(self.relations),
            "asset_ids": [asset.asset_id for asset in self.assets],
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "entity_id": self.entity_id,
            "created": self.created,
            "primary": dict(self.primary),
            "fields": dict(self.fields),
            "relations": {name: list(values) for name, values in self.relations.items()},
            "assets": [
                {
                    "key": asset.key,
                    "asset_id": asset.asset_id,
                    "source": asset.source,
                    "file_name": asset.file_name,
                }
                for asset in self.assets
            ],
            "written": self.written_ids,
        }


@dataclass(frozen=True)
class RowIssue:
    """
    One row- or field-level problem reported during an import run.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ImportSummary:
    """
    End-of-run import summary.
    """

    processed: int
    succeeded: int
    failed: int
    decode_failures: int = 0
    write_failures: int = 0
    dry_run: bool = False
    issues: list[RowIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.decode_failures == 0 and self.write_failures == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "decode_failures": self.decode_failures,
            "write_failures": self.write_failures,
            "dry_run": self.dry_run,
            "ok": self.ok,
            "issues": [
                {
                    "row_number": issue.row_number,
                    "message": issue.message,
                    "column": issue.column,
                    "value": issue.value,
                }
                for issue in self.issues
            ],
        }
