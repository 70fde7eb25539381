"""
app/api/routers/csv_import.py

CSV import HTTP endpoints.
"""

from __future__ import annotations

import io
import logging
from typing import Literal

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_csv_import_service, get_csv_upload
from app.config import build_run_config
from app.mappers.mapping_document import MappingDocumentError, parse_mapping_json
from app.schemas.csv_import import ImportSummaryResponse
from app.services.csv_import_service import CSVImportService
from app.services.errors import ImportSourceError
from app.validators.mapping_validator import MappingValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["imports"])


@router.post("/imports/csv", response_model=ImportSummaryResponse)
def import_csv(
    file: UploadFile = Depends(get_csv_upload),
    mapping: str = Form(..., description="JSON mapping document: header -> {type, sanitize, name, delimiter}"),
    schema_kind: Literal["document", "term"] | None = Query(default=None, alias="schema"),
    kind: str | None = Query(default=None, description="Record kind, e.g. post or category"),
    relations: str | None = Query(default=None, description="Comma-separated relation names"),
    strict: bool | None = Query(default=None),
    dry_run: bool = Query(default=False),
    author: str | None = Query(default=None, description="Default owner for records without one"),
    record_status: str | None = Query(default=None, alias="status"),
    asset_base_url: str | None = Query(default=None),
    delimiter: str | None = Query(default=None, min_length=1, max_length=1),
    quotechar: str | None = Query(default=None, alias="enclosure", min_length=1, max_length=1),
    escapechar: str | None = Query(default=None, alias="escape", max_length=1),
    has_header: bool = Query(default=True),
    verbose: bool = Query(default=False, description="Log the mapping table and decoded rows"),
    import_service: CSVImportService = Depends(get_csv_import_service),
) -> ImportSummaryResponse:
    """
    Import one CSV file using the submitted mapping document.
    """

    config = build_run_config(
        schema_kind=schema_kind,
        record_kind=kind,
        relations=tuple(name.strip() for name in relations.split(",") if name.strip()) if relations else None,
        strict=strict,
        dry_run=dry_run,
        default_owner=author,
        default_status=record_status,
        asset_base_url=asset_base_url,
        delimiter=delimiter,
        quotechar=quotechar,
        escapechar=escapechar,
        has_header=has_header,
        verbose=verbose,
    )

    raw_file = file.file
    raw_file.seek(0)
    text_stream: io.TextIOWrapper | None = None
    try:
        document = parse_mapping_json(mapping)
        text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
        summary = import_service.run(text_stream, document, config)
    except MappingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except (MappingDocumentError, ImportSourceError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                pass
        file.file.close()

    logger.info(
        "CSV import finished filename=%s processed=%s failed=%s",
        file.filename,
        summary.processed,
        summary.failed,
    )
    return ImportSummaryResponse.from_summary(summary)
