"""
app/repositories/memory_record_store.py

Process-local record store used for dry runs and tests.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from app.repositories.record_store import EntityDraft, EntityId, EventListener, StoredEntity, StoreError


@dataclass
class MemoryEntity:
    id: int
    kind: str
    natural_key: str
    fields: dict[str, Any]
    side_fields: dict[str, Any] = field(default_factory=dict)
    relations: dict[str, list[Any]] = field(default_factory=dict)
    representative_asset_id: int | None = None


@dataclass
class MemoryAsset:
    id: int
    parent_id: int
    file_name: str
    content: bytes
    metadata: dict[str, Any]


class InMemoryRecordStore:
    """
    Dictionary-backed ``RecordStore`` implementation.

    Every mutating call is appended to ``mutations`` as ``(operation, args)``.
    """

    def __init__(self, *, owners: dict[str, int] | None = None) -> None:
        self._ids = itertools.count(1)
        self.entities: dict[int, MemoryEntity] = {}
        self.assets: dict[int, MemoryAsset] = {}
        self.owners: dict[str, int] = dict(owners or {})
        self.mutations: list[tuple[str, tuple[Any, ...]]] = []
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    def find_by_natural_key(self, kind: str, key: str) -> StoredEntity | None:
        for entity in self.entities.values():
            if entity.kind == kind and entity.natural_key == key:
                return StoredEntity(
                    id=entity.id,
                    kind=entity.kind,
                    natural_key=entity.natural_key,
                    fields=dict(entity.fields),
                )
        return None

    def upsert(self, draft: EntityDraft) -> EntityId:
        if not draft.natural_key:
            raise StoreError("Cannot store an entity without a natural key.")
        if draft.id is not None:
            entity = self._require(draft.id)
            entity.fields = dict(draft.fields)
            entity.natural_key = draft.natural_key
        else:
            entity = MemoryEntity(
                id=next(self._ids),
                kind=draft.kind,
                natural_key=draft.natural_key,
                fields=dict(draft.fields),
            )
            self.entities[entity.id] = entity
        self.mutations.append(("upsert", (entity.id, draft.natural_key)))
        return entity.id

    def get_field(self, entity_id: EntityId, key: str) -> Any:
        return self._require(entity_id).side_fields.get(key)

    def set_field(self, entity_id: EntityId, key: str, value: Any) -> None:
        self._require(entity_id).side_fields[key] = value
        self.mutations.append(("set_field", (entity_id, key, value)))

    def set_relations(self, entity_id: EntityId, relation: str, values: Sequence[Any]) -> None:
        self._require(entity_id).relations[relation] = list(values)
        self.mutations.append(("set_relations", (entity_id, relation, tuple(values))))

    def attach_asset(
        self,
        entity_id: EntityId,
        content: bytes,
        file_name: str,
        metadata: dict[str, Any],
    ) -> EntityId:
        parent = self._require(entity_id)
        asset = MemoryAsset(
            id=next(self._ids),
            parent_id=parent.id,
            file_name=file_name,
            content=content,
            metadata=dict(metadata),
        )
        self.assets[asset.id] = asset
        self.mutations.append(("attach_asset", (entity_id, asset.id, file_name)))
        return asset.id

    def set_representative_asset(self, entity_id: EntityId, asset_id: EntityId) -> None:
        entity = self._require(entity_id)
        if asset_id not in self.assets:
            raise StoreError(f"Asset {asset_id} does not exist.")
        entity.representative_asset_id = int(asset_id)
        self.mutations.append(("set_representative_asset", (entity_id, asset_id)))

    def resolve_owner(self, value: str) -> EntityId | None:
        return self.owners.get(value)

    def notify(self, event_name: str, payload: dict[str, Any]) -> None:
        self.events.append((event_name, payload))
        for listener in self._listeners.get(event_name, []):
            listener(event_name, payload)

    def _require(self, entity_id: EntityId) -> MemoryEntity:
        entity = self.entities.get(entity_id)  # type: ignore[arg-type]
        if entity is None:
            raise StoreError(f"Entity {entity_id} does not exist.")
        return entity
