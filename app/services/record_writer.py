"""
app/services/record_writer.py

Persists one decoded row: primary entity, side-fields, relations, assets,
then a post-write notification.

Only the primary upsert decides whether a row succeeds. Every later stage is
best-effort: failures are logged, added to the outcome's warnings, and the
remaining writes still run.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any

from app.config import ImportRunConfig
from app.connectors.asset_fetcher import AssetFetcher, AssetFetchError
from app.domain.import_record import AttachedAsset, DecodedRecord, DestinationCategory, ImportOutcome
from app.domain.record_schema import RecordSchema
from app.mappers.sanitizers import slugify, to_int
from app.repositories.record_store import EntityDraft, EntityId, RecordStore, StoreError
from app.services.errors import UnsupportedAssetError
from app.services.image_formats import ImageFormat, asset_file_name, sniff_image_format
from app.services.import_hooks import ImportHooks, NoOpImportHooks

logger = logging.getLogger(__name__)

RECORD_WRITTEN_EVENT = "record_written"

_INTEGER_PATTERN = re.compile(r"^\s*\d+\s*$")


class RecordWriter:
    """
    Write decoded records through a ``RecordStore`` under one schema's policy.
    """

    def __init__(
        self,
        *,
        schema: RecordSchema,
        store: RecordStore,
        config: ImportRunConfig,
        asset_fetcher: AssetFetcher | None = None,
        hooks: ImportHooks | None = None,
    ) -> None:
        self._schema = schema
        self._store = store
        self._config = config
        self._asset_fetcher = asset_fetcher
        self._hooks = hooks or NoOpImportHooks()

    def write(self, record: DecodedRecord, *, row_number: int) -> ImportOutcome:
        outcome = ImportOutcome(row_number=row_number, succeeded=False)

        fields = self._write_primary(record, outcome)
        if fields is None:
            return outcome

        self._write_side_fields(record, outcome)
        self._write_relations(record, outcome)
        self._write_assets(record, outcome, fields)
        self._notify(outcome)
        return outcome

    # ------------------------------------------------------------------
    # Stage 1: primary entity
    # ------------------------------------------------------------------

    def _write_primary(self, record: DecodedRecord, outcome: ImportOutcome) -> dict[str, Any] | None:
        row_number = outcome.row_number
        key_field = self._schema.natural_key_field
        if not record.has_section(DestinationCategory.PRIMARY):
            self._fail(outcome, f"Row #{row_number}: No primary fields mapped. Skipping.")
            return None

        primary = record.section(DestinationCategory.PRIMARY)
        natural_key = primary.get(key_field)
        if _is_blank(natural_key):
            self._fail(outcome, f"Row #{row_number}: Missing required field '{key_field}'. Skipping.")
            return None

        fields = {name: value for name, value in primary.items() if self._schema.is_primary_field(name)}
        self._resolve_owner_field(fields, outcome)
        self._coerce_parent_field(fields)

        try:
            existing = self._store.find_by_natural_key(self._config.record_kind, str(natural_key))
        except StoreError as exc:
            self._fail_with_causes(outcome, f"Row #{row_number}: Lookup failed.", exc)
            return None

        self._apply_defaults(fields)
        if existing is not None:
            fields = {**existing.fields, **fields}

        try:
            fields = self._hooks.before_upsert(dict(fields), record, row_number=row_number)
        except Exception as exc:  # noqa: BLE001
            logger.warning("before_upsert hook failed row=%s error=%s", row_number, exc)

        draft = EntityDraft(
            kind=self._config.record_kind,
            natural_key=str(fields.get(key_field) or natural_key),
            fields=fields,
            id=existing.id if existing is not None else None,
        )
        try:
            entity_id = self._store.upsert(draft)
        except StoreError as exc:
            self._fail_with_causes(outcome, f"Row #{row_number}: Could not write '{draft.natural_key}'.", exc)
            return None

        outcome.succeeded = True
        outcome.entity_id = entity_id
        outcome.created = existing is None
        outcome.primary = dict(fields)
        logger.debug(
            "Record upserted row=%s kind=%s id=%s created=%s",
            row_number,
            draft.kind,
            entity_id,
            outcome.created,
        )
        return fields

    def _resolve_owner_field(self, fields: dict[str, Any], outcome: ImportOutcome) -> None:
        owner_field = self._schema.owner_field
        if owner_field is None or owner_field not in fields:
            return

        owner = self._resolve_owner(fields.pop(owner_field), outcome)
        if owner is not None:
            fields[owner_field] = owner

    def _coerce_parent_field(self, fields: dict[str, Any]) -> None:
        # parent_id is an input alias; the stored field is the integer parent.
        source, target = self._schema.parent_id_field, self._schema.parent_field
        if source is None or target is None or source not in fields:
            return
        fields[target] = to_int(fields.pop(source))

    def _apply_defaults(self, fields: dict[str, Any]) -> None:
        """
        Fill owner and status the row leaves blank, before merging, so a
        configured default also replaces the stored record's value.
        """

        owner_field = self._schema.owner_field
        default_owner = self._config.default_owner
        if owner_field and _is_blank(fields.get(owner_field)) and _is_integer_like(default_owner):
            fields[owner_field] = int(str(default_owner).strip())

        status_field = self._schema.status_field
        if status_field and _is_blank(fields.get(status_field)) and self._config.default_status:
            fields[status_field] = self._config.default_status

    def _resolve_owner(self, value: Any, outcome: ImportOutcome) -> EntityId | None:
        if _is_blank(value):
            return None
        if _is_integer_like(value):
            return int(str(value).strip())
        try:
            owner = self._store.resolve_owner(str(value).strip())
        except StoreError as exc:
            self._warn(outcome, f"Row #{outcome.row_number}: Could not resolve owner '{value}': {exc.message}")
            return None
        if owner is None:
            self._warn(outcome, f"Row #{outcome.row_number}: Unknown owner '{value}'.")
        return owner

    # ------------------------------------------------------------------
    # Stages 2-3: side-fields and relations
    # ------------------------------------------------------------------

    def _write_side_fields(self, record: DecodedRecord, outcome: ImportOutcome) -> None:
        for key, value in record.section(DestinationCategory.SIDEFIELD).items():
            try:
                if self._store.get_field(outcome.entity_id, key) == value:
                    outcome.fields[key] = value
                    continue
                self._store.set_field(outcome.entity_id, key, value)
            except StoreError as exc:
                self._warn_with_causes(outcome, f"Row #{outcome.row_number}: Could not write field '{key}'.", exc)
                continue
            outcome.fields[key] = value

    def _write_relations(self, record: DecodedRecord, outcome: ImportOutcome) -> None:
        for relation, value in record.section(DestinationCategory.RELATIONAL).items():
            values = [item for item in _as_list(value) if not _is_blank(item)]
            if not values:
                continue
            try:
                self._store.set_relations(outcome.entity_id, relation, values)
            except StoreError as exc:
                self._warn_with_causes(
                    outcome,
                    f"Row #{outcome.row_number}: Could not set relation '{relation}'.",
                    exc,
                )
                continue
            outcome.relations[relation] = values

    # ------------------------------------------------------------------
    # Stage 4: assets
    # ------------------------------------------------------------------

    def _write_assets(self, record: DecodedRecord, outcome: ImportOutcome, fields: dict[str, Any]) -> None:
        for key, value in record.section(DestinationCategory.ASSET).items():
            for source in _as_list(value):
                if _is_blank(source):
                    continue
                try:
                    self._attach_asset(key, str(source).strip(), outcome, fields)
                except (AssetFetchError, UnsupportedAssetError) as exc:
                    self._warn(outcome, f"Row #{outcome.row_number}: Asset '{key}' skipped: {exc}")
                except StoreError as exc:
                    self._warn_with_causes(
                        outcome,
                        f"Row #{outcome.row_number}: Could not store asset '{key}'.",
                        exc,
                    )

    def _attach_asset(self, key: str, source: str, outcome: ImportOutcome, fields: dict[str, Any]) -> None:
        if self._asset_fetcher is None:
            raise AssetFetchError("no asset fetcher is configured")

        url = f"{self._config.asset_base_url}{source}"
        fetched = self._asset_fetcher.fetch(url)
        image_format = sniff_image_format(fetched.content)
        if image_format is None:
            raise UnsupportedAssetError(f"{url} is not a gif, jpeg or png image")

        title = str(fields.get(self._schema.natural_key_field) or "")
        file_name = asset_file_name(slugify(title), image_format)
        asset_id = self._store.attach_asset(
            outcome.entity_id,
            fetched.content,
            file_name,
            self._asset_metadata(title, url, image_format, outcome, fields),
        )

        if key == self._schema.representative_asset_key:
            self._store.set_representative_asset(outcome.entity_id, asset_id)
        else:
            field_key = f"{self._config.record_kind}_{key}_asset_id"
            self._store.set_field(outcome.entity_id, field_key, _plain_id(asset_id))
            outcome.fields[field_key] = _plain_id(asset_id)

        outcome.assets.append(AttachedAsset(key=key, asset_id=asset_id, source=source, file_name=file_name))

    def _asset_metadata(
        self,
        title: str,
        url: str,
        image_format: ImageFormat,
        outcome: ImportOutcome,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        excerpt_field = self._schema.excerpt_field
        owner_field = self._schema.owner_field
        return {
            "title": title,
            "excerpt": fields.get(excerpt_field) if excerpt_field else None,
            "parent_id": _plain_id(outcome.entity_id),
            "owner": _plain_id(fields.get(owner_field)) if owner_field else None,
            "mime_type": image_format.mime_type,
            "source_url": url,
        }

    # ------------------------------------------------------------------
    # Stage 5: notification
    # ------------------------------------------------------------------

    def _notify(self, outcome: ImportOutcome) -> None:
        payload = {"record_kind": self._config.record_kind, "outcome": outcome.to_payload()}
        try:
            self._store.notify(RECORD_WRITTEN_EVENT, payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Record notification failed row=%s event=%s error=%s",
                outcome.row_number,
                RECORD_WRITTEN_EVENT,
                exc,
            )

    # ------------------------------------------------------------------
    # Failure bookkeeping
    # ------------------------------------------------------------------

    def _fail(self, outcome: ImportOutcome, message: str) -> None:
        outcome.succeeded = False
        self._warn(outcome, message)

    def _fail_with_causes(self, outcome: ImportOutcome, message: str, exc: StoreError) -> None:
        outcome.succeeded = False
        self._warn_with_causes(outcome, message, exc)

    def _warn(self, outcome: ImportOutcome, message: str) -> None:
        logger.warning(message)
        outcome.warnings.append(message)

    def _warn_with_causes(self, outcome: ImportOutcome, message: str, exc: StoreError) -> None:
        self._warn(outcome, message)
        for cause in exc.all_messages():
            self._warn(outcome, f"Row #{outcome.row_number}: {cause}")


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [value]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_integer_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(_INTEGER_PATTERN.match(value))


def _plain_id(value: Any) -> Any:
    # JSON columns cannot hold UUID objects.
    if isinstance(value, uuid.UUID):
        return str(value)
    return value
