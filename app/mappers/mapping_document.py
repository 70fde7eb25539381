"""
app/mappers/mapping_document.py

Parsing of the JSON mapping document into per-header entry documents.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class MappingDocumentError(ValueError):
    """
    Raised when the mapping document cannot be read or is not a JSON object.
    """


class MappingEntryDocument(BaseModel):
    """
    One header's raw mapping with defaults filled for omitted keys.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str | None = None
    sanitize: tuple[str, ...] = Field(default_factory=tuple)
    name: str | None = None
    delimiter: str | None = None

    @field_validator("sanitize", mode="before")
    @classmethod
    def _normalize_sanitize(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("delimiter", mode="before")
    @classmethod
    def _normalize_delimiter(cls, value: Any) -> Any:
        if value == "":
            return None
        return value


class ParsedMappingDocument(BaseModel):
    """
    Mapping document after shape parsing.

    ``entries`` keeps header order; a ``None`` entry is an explicit skip.
    ``problems`` collects per-header shape errors for the validator to report.
    """

    entries: dict[str, MappingEntryDocument | None]
    problems: dict[str, list[str]] = Field(default_factory=dict)


def parse_mapping_document(raw: Any) -> ParsedMappingDocument:
    """
    Fill defaults for every header of an already-decoded mapping document.
    """

    if not isinstance(raw, Mapping) or not raw:
        raise MappingDocumentError("Could not get mapping data: expected a non-empty JSON object.")

    entries: dict[str, MappingEntryDocument | None] = {}
    problems: dict[str, list[str]] = {}
    for header, value in raw.items():
        key = str(header)
        if value is None:
            entries[key] = None
            continue
        if not isinstance(value, Mapping):
            problems[key] = [f"expected an object, got {type(value).__name__}"]
            continue
        try:
            entries[key] = MappingEntryDocument.model_validate(dict(value))
        except ValidationError as exc:
            problems[key] = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]

    return ParsedMappingDocument(entries=entries, problems=problems)


def parse_mapping_json(text: str | bytes) -> ParsedMappingDocument:
    """
    Decode a JSON mapping document from text.
    """

    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MappingDocumentError(f"Unable to read JSON data from mapping document ({exc}).") from exc
    return parse_mapping_document(raw)


def load_mapping_document(path: str | Path) -> ParsedMappingDocument:
    """
    Read and decode a JSON mapping document from disk.
    """

    mapping_path = Path(path)
    try:
        text = mapping_path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise MappingDocumentError(f"{mapping_path}: Unable to read mapping file ({exc}).") from exc
    try:
        return parse_mapping_json(text)
    except MappingDocumentError as exc:
        raise MappingDocumentError(f"{mapping_path}: {exc}") from exc
