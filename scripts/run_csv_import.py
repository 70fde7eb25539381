"""
Run a CSV import from CLI.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence

from app.config import build_run_config
from app.connectors.asset_fetcher import get_asset_fetcher
from app.domain.record_schema import SchemaKind
from app.logging_utils import configure_logging
from app.mappers.mapping_document import MappingDocumentError, load_mapping_document
from app.repositories.memory_record_store import InMemoryRecordStore
from app.repositories.sqlalchemy_record_store import SQLAlchemyRecordStore
from app.services.csv_import_service import CSVImportService
from app.services.errors import ImportSourceError
from app.validators.mapping_validator import MappingValidationError
from db.session import SessionLocal


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import records from a CSV file using a JSON mapping document.")
    parser.add_argument("file", help="CSV file to import.")
    parser.add_argument("--mapping", required=True, help="Path to the JSON mapping document.")
    parser.add_argument("--schema", dest="schema_kind", choices=SchemaKind.ALL, default=None)
    parser.add_argument("--kind", dest="record_kind", default=None, help="Record kind, e.g. post or category.")
    parser.add_argument("--relations", default=None, help="Comma-separated relation names known to the schema.")
    parser.add_argument("--strict", action="store_true", default=None, help="Skip rows whose width differs from the header.")
    parser.add_argument("--dry-run", action="store_true", help="Validate and decode without writing.")
    parser.add_argument("--verbose", action="store_true", help="Log the mapping table and decoded rows.")
    parser.add_argument("--author", dest="default_owner", default=None, help="Default owner id for new records.")
    parser.add_argument("--status", dest="default_status", default=None, help="Default status for new records.")
    parser.add_argument("--asset-base-url", dest="asset_base_url", default=None)
    parser.add_argument("--delimiter", default=None)
    parser.add_argument("--enclosure", dest="quotechar", default=None)
    parser.add_argument("--escape", dest="escapechar", default=None)
    parser.add_argument("--no-header", dest="has_header", action="store_false", help="Name columns C1..Cn.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    relations = None
    if args.relations is not None:
        relations = tuple(name.strip() for name in args.relations.split(",") if name.strip())

    config = build_run_config(
        schema_kind=args.schema_kind,
        record_kind=args.record_kind,
        relations=relations,
        strict=args.strict,
        dry_run=args.dry_run,
        verbose=args.verbose,
        default_owner=args.default_owner,
        default_status=args.default_status,
        asset_base_url=args.asset_base_url,
        delimiter=args.delimiter,
        quotechar=args.quotechar,
        escapechar=args.escapechar,
        has_header=args.has_header,
    )

    try:
        document = load_mapping_document(args.mapping)
        if config.dry_run:
            service = CSVImportService(store=InMemoryRecordStore())
            summary = service.run(args.file, document, config)
        else:
            with SessionLocal() as db:
                service = CSVImportService(store=SQLAlchemyRecordStore(db), asset_fetcher=get_asset_fetcher())
                summary = service.run(args.file, document, config)
    except MappingValidationError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 1
    except (MappingDocumentError, ImportSourceError) as exc:
        print(json.dumps({"message": str(exc)}, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
