"""
app/repositories/sqlalchemy_record_store.py

SQLAlchemy-backed ``RecordStore`` over the imported-record tables.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from collections import defaultdict
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_utils import log_event
from app.repositories.record_store import EntityDraft, EntityId, EventListener, StoredEntity, StoreError
from db.models.imported_record import ImportedRecord, RecordAsset, RecordField, RecordOwner, RecordRelation

logger = logging.getLogger(__name__)


class SQLAlchemyRecordStore:
    """
    Persist imported records through one SQLAlchemy session.

    Every mutating call commits on its own so a failing row never rolls back
    rows written before it.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    def find_by_natural_key(self, kind: str, key: str) -> StoredEntity | None:
        stmt = select(ImportedRecord).where(
            ImportedRecord.kind == kind,
            ImportedRecord.natural_key == key,
        )
        with self._store_errors(f"Could not look up {kind} '{key}'."):
            record = self._session.execute(stmt).scalar_one_or_none()
        if record is None:
            return None
        return StoredEntity(
            id=record.id,
            kind=record.kind,
            natural_key=record.natural_key,
            fields=dict(record.fields_json or {}),
        )

    def upsert(self, draft: EntityDraft) -> EntityId:
        if not draft.natural_key:
            raise StoreError("Cannot store an entity without a natural key.")

        if draft.id is not None:
            record = self._require(draft.id)
            record.natural_key = draft.natural_key
            record.fields_json = dict(draft.fields)
        else:
            record = ImportedRecord(
                kind=draft.kind,
                natural_key=draft.natural_key,
                fields_json=dict(draft.fields),
            )
            self._session.add(record)

        self._commit(f"Could not store {draft.kind} '{draft.natural_key}'.")
        return record.id

    def get_field(self, entity_id: EntityId, key: str) -> Any:
        stmt = select(RecordField.value_json).where(
            RecordField.record_id == _as_uuid(entity_id),
            RecordField.key == key,
        )
        with self._store_errors(f"Could not read field '{key}'."):
            return self._session.execute(stmt).scalar_one_or_none()

    def set_field(self, entity_id: EntityId, key: str, value: Any) -> None:
        record_id = self._require(entity_id).id
        stmt = select(RecordField).where(RecordField.record_id == record_id, RecordField.key == key)
        with self._store_errors(f"Could not read field '{key}'."):
            row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            self._session.add(RecordField(record_id=record_id, key=key, value_json=value))
        else:
            row.value_json = value
        self._commit(f"Could not update field '{key}'.")

    def set_relations(self, entity_id: EntityId, relation: str, values: Sequence[Any]) -> None:
        record_id = self._require(entity_id).id
        stmt = select(RecordRelation).where(
            RecordRelation.record_id == record_id,
            RecordRelation.relation == relation,
        )
        with self._store_errors(f"Could not read relation '{relation}'."):
            row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            self._session.add(RecordRelation(record_id=record_id, relation=relation, values_json=list(values)))
        else:
            row.values_json = list(values)
        self._commit(f"Could not set relation '{relation}'.")

    def attach_asset(
        self,
        entity_id: EntityId,
        content: bytes,
        file_name: str,
        metadata: dict[str, Any],
    ) -> EntityId:
        record_id = self._require(entity_id).id
        asset = RecordAsset(
            record_id=record_id,
            file_name=file_name,
            mime_type=metadata.get("mime_type"),
            file_size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            content=content,
            metadata_json={key: value for key, value in metadata.items() if key != "mime_type"},
        )
        self._session.add(asset)
        self._commit(f"Could not attach asset '{file_name}'.")
        return asset.id

    def set_representative_asset(self, entity_id: EntityId, asset_id: EntityId) -> None:
        record = self._require(entity_id)
        with self._store_errors(f"Could not load asset {asset_id}."):
            asset = self._session.get(RecordAsset, _as_uuid(asset_id))
        if asset is None or asset.record_id != record.id:
            raise StoreError(f"Asset {asset_id} is not attached to record {record.id}.")
        record.representative_asset_id = asset.id
        self._commit("Could not set the representative asset.")

    def resolve_owner(self, value: str) -> EntityId | None:
        stmt = select(RecordOwner.id).where(RecordOwner.username == value)
        with self._store_errors(f"Could not resolve owner '{value}'."):
            return self._session.execute(stmt).scalar_one_or_none()

    def notify(self, event_name: str, payload: dict[str, Any]) -> None:
        log_event(logger, logging.INFO, "record_store_notification", name=event_name, payload=payload)
        for listener in self._listeners.get(event_name, []):
            listener(event_name, payload)

    def _require(self, entity_id: EntityId) -> ImportedRecord:
        try:
            record_id = _as_uuid(entity_id)
        except ValueError as exc:
            raise StoreError(f"Invalid record id {entity_id!r}.") from exc
        with self._store_errors(f"Could not load record {entity_id}."):
            record = self._session.get(ImportedRecord, record_id)
        if record is None:
            raise StoreError(f"Record {entity_id} does not exist.")
        return record

    @contextmanager
    def _store_errors(self, message: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(message, causes=[str(getattr(exc, "orig", None) or exc)]) from exc

    def _commit(self, message: str) -> None:
        with self._store_errors(message):
            self._session.commit()


def _as_uuid(value: EntityId) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
