"""
tests/test_record_writer.py

Pytest unit tests for RecordWriter against the in-memory record store.

Coverage
--------
- Primary upsert: defaults, owner resolution, merge with existing records
- Hard row failures: missing natural key, store errors
- Side-fields: idempotent writes, per-field failures
- Relations and assets, including unsupported formats and fetch errors
- Post-write notification and before_upsert hook
"""

from __future__ import annotations

from typing import Any

import pytest

from app.config import ImportRunConfig
from app.connectors.asset_fetcher import AssetFetchError, FetchedAsset
from app.domain.import_record import DecodedRecord
from app.domain.record_schema import document_schema, term_schema
from app.repositories.memory_record_store import InMemoryRecordStore
from app.repositories.record_store import StoreError
from app.services.record_writer import RECORD_WRITTEN_EVENT, RecordWriter

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
BASE_URL = "https://cdn.example.com/"


class FakeAssetFetcher:
    def __init__(self, assets: dict[str, bytes] | None = None) -> None:
        self.assets = dict(assets or {})
        self.calls: list[str] = []

    def fetch(self, url: str) -> FetchedAsset:
        self.calls.append(url)
        if url not in self.assets:
            raise AssetFetchError(f"Unable to download {url} (HTTP 404).")
        return FetchedAsset(content=self.assets[url], content_type=None, url=url)


class FailingFieldStore(InMemoryRecordStore):
    def set_field(self, entity_id: Any, key: str, value: Any) -> None:
        if key == "isbn":
            raise StoreError("Could not update field 'isbn'.", causes=["disk full"])
        super().set_field(entity_id, key, value)


class FailingUpsertStore(InMemoryRecordStore):
    def upsert(self, draft: Any) -> Any:
        raise StoreError("Could not store book.", causes=["constraint violated", "connection reset"])


class UppercaseTitleHooks:
    def filter_mapping_document(self, document: Any) -> Any:
        return document

    def before_upsert(self, fields: dict[str, Any], record: DecodedRecord, *, row_number: int) -> dict[str, Any]:
        return {**fields, "title": str(fields["title"]).upper()}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(owners={"alice": 7})


@pytest.fixture()
def fetcher() -> FakeAssetFetcher:
    return FakeAssetFetcher(
        {
            f"{BASE_URL}dune.png": PNG_BYTES,
            f"{BASE_URL}back.png": PNG_BYTES,
            f"{BASE_URL}doc.pdf": b"%PDF-1.7",
        }
    )


@pytest.fixture()
def config() -> ImportRunConfig:
    return ImportRunConfig(
        record_kind="book",
        default_owner="1",
        default_status="publish",
        asset_base_url=BASE_URL,
    )


def _writer(store: InMemoryRecordStore, config: ImportRunConfig, fetcher: Any = None, **kwargs: Any) -> RecordWriter:
    return RecordWriter(
        schema=kwargs.pop("schema", document_schema()),
        store=store,
        config=config,
        asset_fetcher=fetcher,
        **kwargs,
    )


def _record(**sections: dict[str, Any]) -> DecodedRecord:
    return DecodedRecord(sections={name: dict(values) for name, values in sections.items()})


# ---------------------------------------------------------------------------
# Primary entity
# ---------------------------------------------------------------------------


class TestPrimaryEntity:
    def test_creates_record_with_defaults(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(primary={"title": "Dune"}), row_number=1)

        assert outcome.succeeded
        assert outcome.created
        entity = store.entities[outcome.entity_id]
        assert entity.kind == "book"
        assert entity.fields == {"title": "Dune", "author": 1, "status": "publish"}

    def test_row_values_win_over_defaults(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        record = _record(primary={"title": "Dune", "status": "draft", "author": "42"})

        outcome = _writer(store, config).write(record, row_number=1)

        assert store.entities[outcome.entity_id].fields["status"] == "draft"
        assert store.entities[outcome.entity_id].fields["author"] == 42

    def test_owner_username_is_resolved(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(primary={"title": "Dune", "author": "alice"}), row_number=1)

        assert store.entities[outcome.entity_id].fields["author"] == 7
        assert outcome.warnings == []

    def test_unknown_owner_falls_back_to_default(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(primary={"title": "Dune", "author": "bob"}), row_number=4)

        assert outcome.succeeded
        assert store.entities[outcome.entity_id].fields["author"] == 1
        assert outcome.warnings == ["Row #4: Unknown owner 'bob'."]

    def test_non_integer_default_owner_is_ignored(self, store: InMemoryRecordStore) -> None:
        config = ImportRunConfig(record_kind="book", default_owner="admin")

        outcome = _writer(store, config).write(_record(primary={"title": "Dune"}), row_number=1)

        assert "author" not in store.entities[outcome.entity_id].fields

    def test_existing_record_is_merged(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        writer = _writer(store, config)
        first = writer.write(
            _record(primary={"title": "Dune", "content": "old", "excerpt": "spice", "status": "draft"}),
            row_number=1,
        )
        second = writer.write(_record(primary={"title": "Dune", "content": "new"}), row_number=2)

        assert second.succeeded
        assert not second.created
        assert second.entity_id == first.entity_id
        assert len(store.entities) == 1
        assert store.entities[first.entity_id].fields == {
            "title": "Dune",
            "content": "new",
            "excerpt": "spice",
            "status": "publish",
            "author": 1,
        }

    def test_stored_status_is_kept_without_a_default(self, store: InMemoryRecordStore) -> None:
        config = ImportRunConfig(record_kind="book", default_status="")
        writer = _writer(store, config)
        first = writer.write(_record(primary={"title": "Dune", "status": "draft"}), row_number=1)

        writer.write(_record(primary={"title": "Dune", "content": "new"}), row_number=2)

        assert store.entities[first.entity_id].fields["status"] == "draft"

    def test_unknown_primary_names_are_not_carried(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(primary={"title": "Dune", "bogus": "x"}), row_number=1)

        assert "bogus" not in store.entities[outcome.entity_id].fields

    def test_missing_natural_key_fails_row(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(
            _record(primary={"title": "  ", "content": "x"}, sidefield={"isbn": "1"}),
            row_number=2,
        )

        assert not outcome.succeeded
        assert outcome.warnings == ["Row #2: Missing required field 'title'. Skipping."]
        assert store.mutations == []
        assert store.events == []

    def test_missing_primary_section_fails_row(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(sidefield={"isbn": "1"}), row_number=1)

        assert not outcome.succeeded
        assert store.mutations == []

    def test_upsert_store_error_logs_each_cause(self, config: ImportRunConfig) -> None:
        store = FailingUpsertStore()

        outcome = _writer(store, config).write(_record(primary={"title": "Dune"}), row_number=5)

        assert not outcome.succeeded
        assert "Row #5: constraint violated" in outcome.warnings
        assert "Row #5: connection reset" in outcome.warnings

    def test_before_upsert_hook_rewrites_fields(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config, hooks=UppercaseTitleHooks()).write(
            _record(primary={"title": "Dune"}),
            row_number=1,
        )

        entity = store.entities[outcome.entity_id]
        assert entity.fields["title"] == "DUNE"
        assert entity.natural_key == "DUNE"

    def test_term_schema_has_no_owner_or_status(self, store: InMemoryRecordStore) -> None:
        config = ImportRunConfig(schema_kind="term", record_kind="genre", default_owner="1")

        outcome = _writer(store, config, schema=term_schema()).write(
            _record(primary={"name": "SciFi", "description": "Space"}),
            row_number=1,
        )

        entity = store.entities[outcome.entity_id]
        assert entity.natural_key == "SciFi"
        assert entity.fields == {"name": "SciFi", "description": "Space"}

    @pytest.mark.parametrize(("raw", "expected"), [("12", 12), (" 7 ", 7), ("none", 0)])
    def test_term_parent_id_becomes_integer_parent(self, store: InMemoryRecordStore, raw: str, expected: int) -> None:
        config = ImportRunConfig(schema_kind="term", record_kind="genre")

        outcome = _writer(store, config, schema=term_schema()).write(
            _record(primary={"name": "Space Opera", "parent_id": raw}),
            row_number=1,
        )

        assert store.entities[outcome.entity_id].fields == {"name": "Space Opera", "parent": expected}


# ---------------------------------------------------------------------------
# Side-fields and relations
# ---------------------------------------------------------------------------


class TestSideFieldsAndRelations:
    def test_unchanged_side_field_is_not_rewritten(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        writer = _writer(store, config)
        record = _record(primary={"title": "Dune"}, sidefield={"isbn": "123"})

        writer.write(record, row_number=1)
        second = writer.write(record, row_number=2)

        set_field_calls = [args for operation, args in store.mutations if operation == "set_field"]
        assert len(set_field_calls) == 1
        assert second.fields == {"isbn": "123"}

    def test_side_field_failure_does_not_stop_other_stages(self, config: ImportRunConfig) -> None:
        store = FailingFieldStore()
        record = _record(
            primary={"title": "Dune"},
            sidefield={"isbn": "123", "pages": 412},
            relational={"tag": ["scifi"]},
        )

        outcome = _writer(store, config).write(record, row_number=3)

        assert outcome.succeeded
        assert outcome.fields == {"pages": 412}
        assert outcome.relations == {"tag": ["scifi"]}
        assert "Row #3: disk full" in outcome.warnings

    def test_relations_are_set_as_lists(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        record = _record(primary={"title": "Dune"}, relational={"tag": ["scifi", "", "classic"], "category": "novels"})

        outcome = _writer(store, config).write(record, row_number=1)

        relations = store.entities[outcome.entity_id].relations
        assert relations == {"tag": ["scifi", "classic"], "category": ["novels"]}

    def test_blank_relation_is_skipped(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(_record(primary={"title": "Dune"}, relational={"tag": [""]}), row_number=1)

        assert outcome.relations == {}
        assert store.entities[outcome.entity_id].relations == {}


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class TestAssets:
    def test_representative_asset(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
        fetcher: FakeAssetFetcher,
    ) -> None:
        record = _record(primary={"title": "Dune Messiah", "excerpt": "Sequel"}, asset={"featured_image": "dune.png"})

        outcome = _writer(store, config, fetcher).write(record, row_number=1)

        assert fetcher.calls == [f"{BASE_URL}dune.png"]
        [attached] = outcome.assets
        assert attached.file_name == "dune-messiah.png"
        asset = store.assets[attached.asset_id]
        assert asset.parent_id == outcome.entity_id
        assert asset.metadata["title"] == "Dune Messiah"
        assert asset.metadata["excerpt"] == "Sequel"
        assert asset.metadata["mime_type"] == "image/png"
        assert store.entities[outcome.entity_id].representative_asset_id == attached.asset_id

    def test_other_asset_keys_store_id_in_side_field(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
        fetcher: FakeAssetFetcher,
    ) -> None:
        record = _record(primary={"title": "Dune"}, asset={"back_cover": "back.png"})

        outcome = _writer(store, config, fetcher).write(record, row_number=1)

        [attached] = outcome.assets
        entity = store.entities[outcome.entity_id]
        assert entity.side_fields["book_back_cover_asset_id"] == attached.asset_id
        assert entity.representative_asset_id is None

    def test_empty_asset_value_skips_fetch(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
        fetcher: FakeAssetFetcher,
    ) -> None:
        outcome = _writer(store, config, fetcher).write(
            _record(primary={"title": "Dune"}, asset={"featured_image": ""}),
            row_number=1,
        )

        assert outcome.succeeded
        assert fetcher.calls == []
        assert outcome.warnings == []

    def test_unsupported_format_is_skipped(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
        fetcher: FakeAssetFetcher,
    ) -> None:
        outcome = _writer(store, config, fetcher).write(
            _record(primary={"title": "Dune"}, asset={"featured_image": "doc.pdf"}),
            row_number=1,
        )

        assert outcome.succeeded
        assert outcome.assets == []
        assert store.assets == {}
        assert "is not a gif, jpeg or png image" in outcome.warnings[0]

    def test_fetch_failure_is_skipped(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
        fetcher: FakeAssetFetcher,
    ) -> None:
        outcome = _writer(store, config, fetcher).write(
            _record(primary={"title": "Dune"}, asset={"featured_image": ["missing.png", "dune.png"]}),
            row_number=1,
        )

        assert outcome.succeeded
        assert len(outcome.assets) == 1
        assert outcome.warnings == [
            f"Row #1: Asset 'featured_image' skipped: Unable to download {BASE_URL}missing.png (HTTP 404)."
        ]

    def test_without_fetcher_assets_are_skipped(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(
            _record(primary={"title": "Dune"}, asset={"featured_image": "dune.png"}),
            row_number=1,
        )

        assert outcome.succeeded
        assert outcome.warnings == ["Row #1: Asset 'featured_image' skipped: no asset fetcher is configured"]


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------


class TestNotification:
    def test_record_written_event(self, store: InMemoryRecordStore, config: ImportRunConfig) -> None:
        outcome = _writer(store, config).write(
            _record(primary={"title": "Dune"}, sidefield={"isbn": "1"}),
            row_number=9,
        )

        [(event_name, payload)] = store.events
        assert event_name == RECORD_WRITTEN_EVENT
        assert payload["record_kind"] == "book"
        assert payload["outcome"]["row_number"] == 9
        assert payload["outcome"]["entity_id"] == outcome.entity_id
        assert payload["outcome"]["fields"] == {"isbn": "1"}
        assert payload["outcome"]["written"] == {
            "entity_id": outcome.entity_id,
            "fields": ["isbn"],
            "relations": [],
            "asset_ids": [],
        }

    def test_failing_listener_does_not_change_result(
        self,
        store: InMemoryRecordStore,
        config: ImportRunConfig,
    ) -> None:
        def explode(event_name: str, payload: dict[str, Any]) -> None:
            raise RuntimeError("listener down")

        store.subscribe(RECORD_WRITTEN_EVENT, explode)

        outcome = _writer(store, config).write(_record(primary={"title": "Dune"}), row_number=1)

        assert outcome.succeeded
        assert outcome.warnings == []
