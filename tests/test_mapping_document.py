from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.mappers.mapping_document import (
    MappingDocumentError,
    load_mapping_document,
    parse_mapping_document,
    parse_mapping_json,
)


class TestParseMappingDocument:
    def test_defaults_are_filled(self) -> None:
        parsed = parse_mapping_document({"Title": {"type": "primary", "name": "title"}})

        entry = parsed.entries["Title"]
        assert entry is not None
        assert entry.sanitize == ()
        assert entry.delimiter is None
        assert parsed.problems == {}

    def test_single_sanitize_string_becomes_chain(self) -> None:
        parsed = parse_mapping_document({"Tags": {"type": "relational", "name": "tag", "sanitize": "trim"}})

        assert parsed.entries["Tags"].sanitize == ("trim",)

    def test_empty_delimiter_means_no_split(self) -> None:
        parsed = parse_mapping_document({"Tags": {"type": "relational", "name": "tag", "delimiter": ""}})

        assert parsed.entries["Tags"].delimiter is None

    def test_null_value_is_skip_marker(self) -> None:
        parsed = parse_mapping_document({"Notes": None, "Title": {"type": "primary", "name": "title"}})

        assert list(parsed.entries) == ["Notes", "Title"]
        assert parsed.entries["Notes"] is None

    def test_non_object_entry_is_a_problem(self) -> None:
        parsed = parse_mapping_document({"Title": ["primary"]})

        assert "Title" not in parsed.entries
        assert parsed.problems["Title"] == ["expected an object, got list"]

    @pytest.mark.parametrize("raw", [{}, [], "title", None])
    def test_rejects_non_object_documents(self, raw: object) -> None:
        with pytest.raises(MappingDocumentError):
            parse_mapping_document(raw)


class TestMappingJSON:
    def test_parse_json_text(self) -> None:
        parsed = parse_mapping_json(json.dumps({"isbn": {"type": "sidefield", "name": "isbn"}}))

        assert parsed.entries["isbn"].type == "sidefield"

    def test_invalid_json_is_fatal(self) -> None:
        with pytest.raises(MappingDocumentError, match="Unable to read JSON data"):
            parse_mapping_json("{not json")

    def test_load_from_file_with_bom(self, tmp_path: Path) -> None:
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps({"title": {"type": "primary", "name": "title"}}), encoding="utf-8-sig")

        parsed = load_mapping_document(path)

        assert parsed.entries["title"].name == "title"

    def test_missing_file_is_fatal(self, tmp_path: Path) -> None:
        with pytest.raises(MappingDocumentError, match="Unable to read mapping file"):
            load_mapping_document(tmp_path / "absent.json")
