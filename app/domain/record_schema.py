"""
app/domain/record_schema.py

Kind-specific import policy: which primary fields exist, which relations are
known, and how the natural key and owner are named.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from app.domain.import_record import DestinationCategory
from app.mappers.sanitizers import SanitizerRegistry

DOCUMENT_FIELDS: tuple[str, ...] = (
    "author",
    "category",
    "content",
    "date",
    "date_gmt",
    "excerpt",
    "slug",
    "password",
    "status",
    "title",
    "menu_order",
    "comment_status",
    "ping_status",
    "pinged",
    "tags_input",
    "to_ping",
    "tax_input",
)

TERM_FIELDS: tuple[str, ...] = (
    "name",
    "alias_of",
    "description",
    "parent",
    "parent_id",
    "slug",
)

REPRESENTATIVE_ASSET_KEY = "featured_image"


class SchemaKind:
    DOCUMENT = "document"
    TERM = "term"

    ALL: tuple[str, ...] = (DOCUMENT, TERM)


@dataclass(frozen=True)
class RecordSchema:
    """
    Target schema descriptor consumed by the mapping validator and record writer.
    """

    kind: str
    primary_fields: frozenset[str]
    natural_key_field: str
    relations: frozenset[str] = frozenset()
    supports_relations: bool = True
    owner_field: str | None = None
    status_field: str | None = None
    excerpt_field: str | None = None
    parent_id_field: str | None = None
    parent_field: str | None = None
    representative_asset_key: str = REPRESENTATIVE_ASSET_KEY
    sanitizers: SanitizerRegistry = field(default_factory=SanitizerRegistry)

    @property
    def categories(self) -> tuple[str, ...]:
        if self.supports_relations:
            return DestinationCategory.ALL
        return tuple(
            category for category in DestinationCategory.ALL if category != DestinationCategory.RELATIONAL
        )

    def is_primary_field(self, name: str | None) -> bool:
        return name is not None and name in self.primary_fields

    def relation_exists(self, name: str | None) -> bool:
        return self.supports_relations and name is not None and name in self.relations

    def sanitizer_exists(self, name: str) -> bool:
        return self.sanitizers.is_known(name)

    @staticmethod
    def allows_delimiter(category: str | None) -> bool:
        return category != DestinationCategory.PRIMARY

    @staticmethod
    def allows_multiple_bindings(category: str | None) -> bool:
        return category != DestinationCategory.PRIMARY


def document_schema(
    *,
    relations: Iterable[str] = ("category", "tag"),
    sanitizers: SanitizerRegistry | None = None,
) -> RecordSchema:
    """
    Schema for title-keyed documents that carry relations (categories, tags).
    """

    return RecordSchema(
        kind=SchemaKind.DOCUMENT,
        primary_fields=frozenset(DOCUMENT_FIELDS),
        natural_key_field="title",
        relations=frozenset(name.strip() for name in relations if name and name.strip()),
        supports_relations=True,
        owner_field="author",
        status_field="status",
        excerpt_field="excerpt",
        sanitizers=sanitizers or SanitizerRegistry(),
    )


def term_schema(*, sanitizers: SanitizerRegistry | None = None) -> RecordSchema:
    """
    Schema for name-keyed taxonomy terms; terms cannot carry relations.
    """

    return RecordSchema(
        kind=SchemaKind.TERM,
        primary_fields=frozenset(TERM_FIELDS),
        natural_key_field="name",
        supports_relations=False,
        excerpt_field="description",
        parent_id_field="parent_id",
        parent_field="parent",
        sanitizers=sanitizers or SanitizerRegistry(),
    )


def build_record_schema(
    *,
    kind: str,
    relations: Iterable[str] = (),
    sanitizers: SanitizerRegistry | None = None,
) -> RecordSchema:
    normalized = kind.strip().lower()
    if normalized == SchemaKind.DOCUMENT:
        return document_schema(relations=relations, sanitizers=sanitizers)
    if normalized == SchemaKind.TERM:
        return term_schema(sanitizers=sanitizers)
    raise ValueError(f"Unsupported schema kind '{kind}'. Allowed values: {list(SchemaKind.ALL)}.")
