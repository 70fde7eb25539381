"""
Service-layer exceptions for CSV import runs.
"""

from __future__ import annotations


class ImportSourceError(RuntimeError):
    """Raised when the CSV source cannot be opened or has no readable header."""


class UnsupportedAssetError(ValueError):
    """Raised when a downloaded asset is not a supported image format."""
