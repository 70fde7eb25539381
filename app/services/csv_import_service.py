"""
app/services/csv_import_service.py

Import driver: reads the CSV source, validates the mapping once, then decodes
and writes every data row, tallying results into an ``ImportSummary``.

Run lifecycle (``ImportState``):

    INIT -> HEADER_READ -> VALIDATING -> ROW_LOOP -> SUMMARIZED

Fatal problems (unreadable source, bad mapping document, invalid mapping)
raise before the row loop starts. Inside the loop a row can only fail on its
own; the run always reaches SUMMARIZED.
"""

from __future__ import annotations

import csv
import itertools
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TextIO, Union

from app.config import ImportRunConfig
from app.connectors.asset_fetcher import AssetFetcher
from app.domain.import_record import ImportSummary, MappingTable, RowIssue
from app.domain.record_schema import RecordSchema, build_record_schema
from app.logging_utils import log_event
from app.mappers.mapping_document import MappingDocumentError, ParsedMappingDocument, parse_mapping_document
from app.mappers.row_decoder import ColumnCountMismatchError, RowDecoder
from app.mappers.sanitizers import SanitizerRegistry
from app.repositories.record_store import RecordStore
from app.services.errors import ImportSourceError
from app.services.import_hooks import ImportHooks, NoOpImportHooks
from app.services.record_writer import RecordWriter
from app.validators.mapping_validator import MappingValidator

logger = logging.getLogger(__name__)

CSVSource = Union[str, Path, TextIO]


class ImportState:
    INIT = "init"
    HEADER_READ = "header_read"
    VALIDATING = "validating"
    ROW_LOOP = "row_loop"
    SUMMARIZED = "summarized"


class CSVImportService:
    """
    Coordinates reading, mapping validation, decoding and writing for one CSV file.
    """

    def __init__(
        self,
        *,
        store: RecordStore,
        asset_fetcher: AssetFetcher | None = None,
        hooks: ImportHooks | None = None,
        sanitizers: SanitizerRegistry | None = None,
    ) -> None:
        self._store = store
        self._asset_fetcher = asset_fetcher
        self._hooks = hooks or NoOpImportHooks()
        self._sanitizers = sanitizers or SanitizerRegistry()
        self.state = ImportState.INIT
        self.mapping_table: MappingTable | None = None

    def run(
        self,
        source: CSVSource,
        mapping: ParsedMappingDocument | Mapping[str, Any],
        config: ImportRunConfig,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> ImportSummary:
        self.state = ImportState.INIT
        self.mapping_table = None

        with _open_source(source) as stream:
            reader = csv.reader(
                stream,
                delimiter=config.delimiter,
                quotechar=config.quotechar,
                escapechar=config.escapechar or None,
            )
            try:
                headers, rows = self._read_header(reader, has_header=config.has_header)
                self.state = ImportState.HEADER_READ

                self.state = ImportState.VALIDATING
                schema = build_record_schema(
                    kind=config.schema_kind,
                    relations=config.relations,
                    sanitizers=self._sanitizers,
                )
                table = self._validate_mapping(mapping, headers, schema, config)
                self.mapping_table = table

                self.state = ImportState.ROW_LOOP
                summary = self._process_rows(rows, table, schema, config, should_stop=should_stop)
            except UnicodeDecodeError as exc:
                raise ImportSourceError("CSV must be UTF-8 encoded.") from exc
            except csv.Error as exc:
                raise ImportSourceError(f"Invalid CSV format: {exc}") from exc

        self.state = ImportState.SUMMARIZED
        self._log_summary(summary)
        return summary

    # ------------------------------------------------------------------
    # Header and mapping
    # ------------------------------------------------------------------

    def _read_header(
        self,
        reader: Iterator[list[str]],
        *,
        has_header: bool,
    ) -> tuple[list[str], Iterable[list[str]]]:
        first_row = next((row for row in reader if not _is_blank_row(row)), None)
        if first_row is None:
            raise ImportSourceError("CSV header row is missing.")

        if has_header:
            return [header.strip() for header in first_row], reader

        headers = [f"C{index}" for index in range(1, len(first_row) + 1)]
        return headers, itertools.chain([first_row], reader)

    def _validate_mapping(
        self,
        mapping: ParsedMappingDocument | Mapping[str, Any],
        headers: Sequence[str],
        schema: RecordSchema,
        config: ImportRunConfig,
    ) -> MappingTable:
        document = mapping if isinstance(mapping, ParsedMappingDocument) else parse_mapping_document(mapping)
        filtered = self._hooks.filter_mapping_document(document)
        if filtered is None:
            raise MappingDocumentError("Mapping document was rejected by the filter_mapping_document hook.")

        table = MappingValidator(schema).validate(filtered, headers=headers)

        for header in table.unbound_headers:
            logger.warning("Mapping header not found in CSV header=%r", header)

        if config.verbose or config.dry_run:
            for entry in table.entries.values():
                log_event(logger, logging.INFO, "mapping_entry", **entry.describe())
        return table

    # ------------------------------------------------------------------
    # Row loop
    # ------------------------------------------------------------------

    def _process_rows(
        self,
        rows: Iterable[list[str]],
        table: MappingTable,
        schema: RecordSchema,
        config: ImportRunConfig,
        *,
        should_stop: Callable[[], bool] | None,
    ) -> ImportSummary:
        decoder = RowDecoder(table, sanitizers=self._sanitizers)
        writer = RecordWriter(
            schema=schema,
            store=self._store,
            config=config,
            asset_fetcher=self._asset_fetcher,
            hooks=self._hooks,
        )

        processed = 0
        succeeded = 0
        decode_failures = 0
        write_failures = 0
        issues: list[RowIssue] = []

        for row in rows:
            if _is_blank_row(row):
                continue
            if should_stop is not None and should_stop():
                logger.info("Import stopped before row=%s", processed + 1)
                break

            processed += 1
            row_number = processed
            try:
                record = decoder.decode(row, row_number=row_number, strict=config.strict)
            except ColumnCountMismatchError as exc:
                decode_failures += 1
                logger.warning(str(exc))
                self._record_issue(issues, RowIssue(row_number=row_number, message=str(exc)), config)
                continue

            if config.dry_run:
                succeeded += 1
                if config.verbose:
                    log_event(logger, logging.INFO, "decoded_row", row_number=row_number, record=record.as_dict())
                continue

            outcome = writer.write(record, row_number=row_number)
            if outcome.succeeded:
                succeeded += 1
            else:
                write_failures += 1
            for warning in outcome.warnings:
                self._record_issue(issues, RowIssue(row_number=row_number, message=warning), config)

        return ImportSummary(
            processed=processed,
            succeeded=succeeded,
            failed=decode_failures + write_failures,
            decode_failures=decode_failures,
            write_failures=write_failures,
            dry_run=config.dry_run,
            issues=issues,
        )

    def _record_issue(self, issues: list[RowIssue], issue: RowIssue, config: ImportRunConfig) -> None:
        if len(issues) < max(1, config.max_reported_issues):
            issues.append(issue)

    def _log_summary(self, summary: ImportSummary) -> None:
        if summary.failed:
            logger.warning(
                "Wrote %d/%d records. Failed: %d.",
                summary.succeeded,
                summary.processed,
                summary.failed,
            )
        else:
            logger.info("Wrote %d records.", summary.succeeded)
        log_event(
            logger,
            logging.INFO,
            "csv_import_summary",
            processed=summary.processed,
            succeeded=summary.succeeded,
            failed=summary.failed,
            dry_run=summary.dry_run,
        )


@contextmanager
def _open_source(source: CSVSource) -> Iterator[TextIO]:
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            handle = path.open("r", encoding="utf-8-sig", newline="")
        except OSError as exc:
            raise ImportSourceError(f"Could not open file: {path} ({exc})") from exc
        with handle:
            yield handle
        return

    if hasattr(source, "read"):
        yield source
        return

    raise ImportSourceError(f"Unsupported CSV source type: {type(source).__name__}")


def _is_blank_row(row: Sequence[str]) -> bool:
    return not row or all(not cell.strip() for cell in row)
