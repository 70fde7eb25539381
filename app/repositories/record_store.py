"""
app/repositories/record_store.py

Capability interface the record writer needs from a destination datastore.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

EntityId = Union[int, str, uuid.UUID]
EventListener = Callable[[str, dict[str, Any]], None]


class StoreError(RuntimeError):
    """
    Raised by a record store when a read or write fails; may carry several causes.
    """

    def __init__(self, message: str, *, causes: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.causes = tuple(causes)

    def all_messages(self) -> list[str]:
        return [self.message, *self.causes]


@dataclass(frozen=True)
class StoredEntity:
    """
    Snapshot of an existing entity looked up by natural key.
    """

    id: EntityId
    kind: str
    natural_key: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EntityDraft:
    """
    Primary-entity payload handed to ``RecordStore.upsert``.

    ``id`` is set when the draft updates an existing entity.
    """

    kind: str
    natural_key: str
    fields: dict[str, Any]
    id: EntityId | None = None


class RecordStore(Protocol):
    """
    Destination datastore used by the record writer.
    """

    def find_by_natural_key(self, kind: str, key: str) -> StoredEntity | None:
        ...

    def upsert(self, draft: EntityDraft) -> EntityId:
        ...

    def get_field(self, entity_id: EntityId, key: str) -> Any:
        ...

    def set_field(self, entity_id: EntityId, key: str, value: Any) -> None:
        ...

    def set_relations(self, entity_id: EntityId, relation: str, values: Sequence[Any]) -> None:
        ...

    def attach_asset(
        self,
        entity_id: EntityId,
        content: bytes,
        file_name: str,
        metadata: dict[str, Any],
    ) -> EntityId:
        ...

    def set_representative_asset(self, entity_id: EntityId, asset_id: EntityId) -> None:
        ...

    def resolve_owner(self, value: str) -> EntityId | None:
        ...

    def notify(self, event_name: str, payload: dict[str, Any]) -> None:
        ...
