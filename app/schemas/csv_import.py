"""
app/schemas/csv_import.py

Response schemas for CSV import endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.domain.import_record import ImportSummary


class ImportIssueResponse(BaseModel):
    """
    API response model for one row- or field-level import issue.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class ImportSummaryResponse(BaseModel):
    """
    API response model for a CSV import run.
    """

    processed: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    decode_failures: int = Field(default=0, ge=0)
    write_failures: int = Field(default=0, ge=0)
    dry_run: bool = False
    ok: bool
    issues: list[ImportIssueResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: ImportSummary) -> ImportSummaryResponse:
        return cls.model_validate(summary.to_dict())


class HealthResponse(BaseModel):
    status: str
