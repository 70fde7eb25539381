"""
app/validators/mapping_validator.py

Validation of header-to-destination mapping documents against a record schema.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.domain.import_record import DestinationCategory, MappingEntry, MappingTable
from app.domain.record_schema import RecordSchema
from app.mappers.mapping_document import (
    MappingEntryDocument,
    ParsedMappingDocument,
    parse_mapping_document,
)


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    header: str | None = None
    name: str | None = None
    context: dict[str, Any] | None = None


class MappingValidationError(ValueError):
    """
    Raised when a mapping document has one or more rule violations.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    @property
    def messages(self) -> list[str]:
        return [error.message for error in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "header": error.header,
                    "name": error.name,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingValidator:
    """
    Validates a mapping document and produces a column-aligned mapping table.
    """

    def __init__(self, schema: RecordSchema) -> None:
        self._schema = schema

    def validate(
        self,
        document: ParsedMappingDocument | Mapping[str, Any],
        *,
        headers: Sequence[str] | None = None,
    ) -> MappingTable:
        """
        Validate every entry and raise with the full list of problems, if any.
        """

        parsed = document if isinstance(document, ParsedMappingDocument) else parse_mapping_document(document)
        errors: list[MappingErrorDetail] = []
        entries: dict[str, MappingEntry | None] = {}

        for header, problems in parsed.problems.items():
            for problem in problems:
                errors.append(
                    MappingErrorDetail(
                        code="malformed_entry",
                        message=f"{header}: Malformed mapping entry ({problem}).",
                        header=header,
                    )
                )

        for header, entry_document in parsed.entries.items():
            if entry_document is None:
                entries[header] = None
                continue
            errors.extend(self._validate_entry(header, entry_document))
            entries[header] = MappingEntry(
                header=header,
                category=entry_document.type or "",
                name=entry_document.name,
                sanitize=tuple(entry_document.sanitize),
                delimiter=entry_document.delimiter,
            )

        errors.extend(self._check_duplicates(entries))

        if errors:
            raise MappingValidationError(
                message=f"Errors in the mapping document ({len(errors)} found).",
                errors=errors,
            )

        return MappingTable.aligned(entries=entries, headers=headers)

    def _validate_entry(self, header: str, entry: MappingEntryDocument) -> list[MappingErrorDetail]:
        schema = self._schema
        category = entry.type
        errors: list[MappingErrorDetail] = []

        if category not in schema.categories:
            errors.append(
                MappingErrorDetail(
                    code="unsupported_category",
                    message=(
                        f"{header}: {category} is an unsupported field type. "
                        f"Possible types are {', '.join(schema.categories)}."
                    ),
                    header=header,
                    name=entry.name,
                    context={"type": category},
                )
            )

        if entry.delimiter is not None and not schema.allows_delimiter(category):
            errors.append(
                MappingErrorDetail(
                    code="delimiter_not_supported",
                    message=f"{header}: {category} fields do not support a delimiter.",
                    header=header,
                    name=entry.name,
                )
            )

        if category == DestinationCategory.PRIMARY and not schema.is_primary_field(entry.name):
            errors.append(
                MappingErrorDetail(
                    code="invalid_primary_field",
                    message=f"{header}: Invalid {schema.kind} field {entry.name} used.",
                    header=header,
                    name=entry.name,
                )
            )

        for sanitizer in entry.sanitize:
            if not schema.sanitizer_exists(sanitizer):
                errors.append(
                    MappingErrorDetail(
                        code="unknown_sanitizer",
                        message=(
                            f"{header}: {sanitizer} is an undefined sanitize function. "
                            "Ensure your sanitize functions exist."
                        ),
                        header=header,
                        name=entry.name,
                        context={"sanitize": sanitizer},
                    )
                )

        if (
            category == DestinationCategory.RELATIONAL
            and schema.supports_relations
            and not schema.relation_exists(entry.name)
        ):
            errors.append(
                MappingErrorDetail(
                    code="unknown_relation",
                    message=f"{header}: {entry.name} is not a registered relation.",
                    header=header,
                    name=entry.name,
                    context={"known_relations": sorted(schema.relations)},
                )
            )

        return errors

    def _check_duplicates(self, entries: Mapping[str, MappingEntry | None]) -> list[MappingErrorDetail]:
        bindings: dict[tuple[str, str | None], list[str]] = defaultdict(list)
        for header, entry in entries.items():
            if entry is None:
                continue
            bindings[(entry.category, entry.name)].append(header)

        errors: list[MappingErrorDetail] = []
        for (category, name), headers in bindings.items():
            if len(headers) < 2 or self._schema.allows_multiple_bindings(category):
                continue
            errors.append(
                MappingErrorDetail(
                    code="duplicate_binding",
                    message=(
                        f"{headers[0]}: Duplicate entries found for `{category}:{name}`. "
                        f"Other entries: {', '.join(headers[1:])}."
                    ),
                    header=headers[0],
                    name=name,
                    context={"headers": list(headers)},
                )
            )
        return errors
