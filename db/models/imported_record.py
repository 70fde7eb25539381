"""
db/models/imported_record.py

Records created or updated by CSV imports, with their side-fields,
relations and attached assets.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, LargeBinary, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, TimestampMixin


class RecordOwner(Base, TimestampMixin):
    """
    Account that can own imported records, resolvable by username.
    """

    __tablename__ = "record_owners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class ImportedRecord(Base, TimestampMixin):
    """
    Primary entity keyed by (kind, natural_key).

    ``fields_json`` holds the primary fields (title, status, author, ...).
    """

    __tablename__ = "imported_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Record kind, e.g. a document type or a taxonomy name",
    )
    natural_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Title or name used to match existing records",
    )
    fields_json: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    representative_asset_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────

    side_fields: Mapped[list["RecordField"]] = relationship(
        "RecordField",
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    relations: Mapped[list["RecordRelation"]] = relationship(
        "RecordRelation",
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assets: Mapped[list["RecordAsset"]] = relationship(
        "RecordAsset",
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("kind", "natural_key", name="uq_imported_records_kind_natural_key"),
        Index("ix_imported_records_kind", "kind"),
    )


class RecordField(Base):
    __tablename__ = "record_fields"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("imported_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value_json: Mapped[Any] = mapped_column(JSONType, nullable=True)

    record: Mapped["ImportedRecord"] = relationship("ImportedRecord", back_populates="side_fields")

    __table_args__ = (
        UniqueConstraint("record_id", "key", name="uq_record_fields_record_key"),
    )


class RecordRelation(Base):
    __tablename__ = "record_relations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("imported_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    relation: Mapped[str] = mapped_column(String(120), nullable=False)
    values_json: Mapped[list[Any]] = mapped_column(JSONType, nullable=False, default=list)

    record: Mapped["ImportedRecord"] = relationship("ImportedRecord", back_populates="relations")

    __table_args__ = (
        UniqueConstraint("record_id", "relation", name="uq_record_relations_record_relation"),
    )


class RecordAsset(Base, TimestampMixin):
    """
    Binary asset (image) attached to an imported record.
    """

    __tablename__ = "record_assets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("imported_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    record: Mapped["ImportedRecord"] = relationship("ImportedRecord", back_populates="assets")

    __table_args__ = (
        Index("ix_record_assets_record_id", "record_id"),
    )
