"""
app/repositories package marker.
"""

from app.repositories.memory_record_store import InMemoryRecordStore
from app.repositories.record_store import (
    EntityDraft,
    EntityId,
    EventListener,
    RecordStore,
    StoredEntity,
    StoreError,
)
from app.repositories.sqlalchemy_record_store import SQLAlchemyRecordStore

__all__ = [
    "EntityDraft",
    "EntityId",
    "EventListener",
    "InMemoryRecordStore",
    "RecordStore",
    "SQLAlchemyRecordStore",
    "StoreError",
    "StoredEntity",
]
