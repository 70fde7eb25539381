"""
app/main.py

FastAPI entry point for the CSV record importer.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.logging_utils import configure_logging, log_event
from app.schemas.csv_import import HealthResponse

logger = logging.getLogger(__name__)


def _validate_database_url() -> str:
    """
    Resolve the record store URL before any connection is attempted.
    """

    from db.config import resolve_database_url

    try:
        return resolve_database_url()
    except RuntimeError:
        logger.critical("Startup aborted: the record store has no database URL.")
        raise


def _check_record_store() -> None:
    """
    Connect to the record store and confirm every imported-record table and
    column exists. Does NOT auto-migrate.
    """

    from sqlalchemy import inspect as sa_inspect, text
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401 - registers tables on Base.metadata
    from db.base import Base
    from db.session import get_engine

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        inspector = sa_inspect(engine)
        live_tables = set(inspector.get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Record store database unavailable.") from exc

    problems: list[str] = []
    for table_name, table in sorted(Base.metadata.tables.items()):
        if table_name not in live_tables:
            problems.append(f"table {table_name} is missing")
            continue
        live_columns = {column["name"] for column in inspector.get_columns(table_name)}
        problems.extend(
            f"column {table_name}.{column.name} is missing"
            for column in table.columns
            if column.name not in live_columns
        )

    if problems:
        log_event(logger, logging.CRITICAL, "record_store_schema_mismatch", problems=problems)
        raise RuntimeError(
            f"Record store schema mismatch ({'; '.join(problems)}). "
            "Run 'alembic upgrade head' and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Refuse to serve imports until the record store is reachable and migrated."""
    _validate_database_url()
    _check_record_store()
    logger.info("Record store ready")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging()

    application = FastAPI(
        title="CSV Record Importer API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import csv_import_router

    application.include_router(csv_import_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok")

    return application


app = create_app()
