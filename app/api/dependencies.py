"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and service wiring.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.connectors.asset_fetcher import get_asset_fetcher
from app.repositories.sqlalchemy_record_store import SQLAlchemyRecordStore
from app.services.csv_import_service import CSVImportService
from db.session import get_db

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith((".csv", ".tsv", ".txt"))
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_csv_import_service(db: Session = Depends(get_db)) -> CSVImportService:
    """
    Build an import service bound to the request's database session.
    """

    return CSVImportService(
        store=SQLAlchemyRecordStore(db),
        asset_fetcher=get_asset_fetcher(),
    )
