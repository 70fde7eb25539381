"""
app/schemas package marker.
"""

from app.schemas.csv_import import HealthResponse, ImportIssueResponse, ImportSummaryResponse

__all__ = [
    "HealthResponse",
    "ImportIssueResponse",
    "ImportSummaryResponse",
]
