"""create imported record tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "record_owners",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=120), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_record_owners")),
        sa.UniqueConstraint("username", name="uq_record_owners_username"),
    )

    op.create_table(
        "imported_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "kind",
            sa.String(length=64),
            nullable=False,
            comment="Record kind, e.g. a document type or a taxonomy name",
        ),
        sa.Column(
            "natural_key",
            sa.String(length=255),
            nullable=False,
            comment="Title or name used to match existing records",
        ),
        sa.Column("fields_json", JSON_TYPE, nullable=False),
        sa.Column("representative_asset_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_imported_records")),
        sa.UniqueConstraint("kind", "natural_key", name="uq_imported_records_kind_natural_key"),
    )
    op.create_index("ix_imported_records_kind", "imported_records", ["kind"], unique=False)

    op.create_table(
        "record_fields",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value_json", JSON_TYPE, nullable=True),
        sa.ForeignKeyConstraint(
            ["record_id"],
            ["imported_records.id"],
            name=op.f("fk_record_fields_record_id_imported_records"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_record_fields")),
        sa.UniqueConstraint("record_id", "key", name="uq_record_fields_record_key"),
    )

    op.create_table(
        "record_relations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=False),
        sa.Column("relation", sa.String(length=120), nullable=False),
        sa.Column("values_json", JSON_TYPE, nullable=False),
        sa.ForeignKeyConstraint(
            ["record_id"],
            ["imported_records.id"],
            name=op.f("fk_record_relations_record_id_imported_records"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_record_relations")),
        sa.UniqueConstraint("record_id", "relation", name="uq_record_relations_record_relation"),
    )

    op.create_table(
        "record_assets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=120), nullable=True),
        sa.Column("file_size_bytes", sa.Integer(), nullable=False),
        sa.Column("checksum", sa.String(length=64), nullable=False),
        sa.Column("content", sa.LargeBinary(), nullable=False),
        sa.Column("metadata_json", JSON_TYPE, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["record_id"],
            ["imported_records.id"],
            name=op.f("fk_record_assets_record_id_imported_records"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_record_assets")),
    )
    op.create_index("ix_record_assets_record_id", "record_assets", ["record_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_record_assets_record_id", table_name="record_assets")
    op.drop_table("record_assets")
    op.drop_table("record_relations")
    op.drop_table("record_fields")
    op.drop_index("ix_imported_records_kind", table_name="imported_records")
    op.drop_table("imported_records")
    op.drop_table("record_owners")
