"""
app/config.py

Application-level configuration helpers.

Environment variables only provide defaults. Every import run receives an
explicit ``ImportRunConfig``; core components never read the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_csv_char_env(name: str, default: str) -> str:
    # Delimiter-like settings are single characters and may legitimately be whitespace.
    _load_env_once()
    value = os.getenv(name)
    if value is None or len(value) != 1:
        return default
    return value


def _split_names(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class ImportSettings:
    """
    Environment-driven defaults for CSV import runs.
    """

    schema_kind: str = "document"
    record_kind: str = "post"
    relations: tuple[str, ...] = ("category", "tag")
    default_owner: str | None = None
    default_status: str = "publish"
    asset_base_url: str = ""
    csv_delimiter: str = ","
    csv_enclosure: str = '"'
    csv_escape: str = "\\"
    csv_strict: bool = False
    max_reported_issues: int = 500


@dataclass(frozen=True)
class AssetHTTPSettings:
    """
    HTTP behavior settings for asset downloads.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    user_agent: str = "csv-record-importer/1.0"


@dataclass(frozen=True)
class ImportRunConfig:
    """
    Explicit configuration for one import run.
    """

    schema_kind: str = "document"
    record_kind: str = "post"
    relations: tuple[str, ...] = ("category", "tag")
    strict: bool = False
    dry_run: bool = False
    verbose: bool = False
    default_owner: str | None = None
    default_status: str | None = "publish"
    asset_base_url: str = ""
    delimiter: str = ","
    quotechar: str = '"'
    escapechar: str | None = "\\"
    has_header: bool = True
    max_reported_issues: int = 500

    def with_overrides(self, **overrides: Any) -> ImportRunConfig:
        """
        Return a copy with every non-None override applied.
        """

        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import defaults from environment variables.
    """

    return ImportSettings(
        schema_kind=_get_str_env("IMPORT_SCHEMA_KIND", "document").lower(),
        record_kind=_get_str_env("IMPORT_RECORD_KIND", "post"),
        relations=_split_names(_get_str_env("IMPORT_RELATIONS", "category,tag")),
        default_owner=_get_optional_str_env("IMPORT_DEFAULT_OWNER"),
        default_status=_get_str_env("IMPORT_DEFAULT_STATUS", "publish"),
        asset_base_url=_get_str_env("IMPORT_ASSET_BASE_URL", ""),
        csv_delimiter=_get_csv_char_env("CSV_DELIMITER", ","),
        csv_enclosure=_get_csv_char_env("CSV_ENCLOSURE", '"'),
        csv_escape=_get_csv_char_env("CSV_ESCAPE", "\\"),
        csv_strict=_get_bool_env("CSV_STRICT", False),
        max_reported_issues=max(1, _get_int_env("IMPORT_MAX_REPORTED_ISSUES", 500)),
    )


@lru_cache(maxsize=1)
def get_asset_http_settings() -> AssetHTTPSettings:
    """
    Return asset download HTTP settings from environment variables.
    """

    return AssetHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("ASSET_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("ASSET_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("ASSET_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("ASSET_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        user_agent=_get_str_env("ASSET_HTTP_USER_AGENT", "csv-record-importer/1.0"),
    )


def build_run_config(settings: ImportSettings | None = None, **overrides: Any) -> ImportRunConfig:
    """
    Build a run configuration from settings defaults plus caller overrides.
    """

    base = settings or get_import_settings()
    config = ImportRunConfig(
        schema_kind=base.schema_kind,
        record_kind=base.record_kind,
        relations=base.relations,
        default_owner=base.default_owner,
        default_status=base.default_status,
        asset_base_url=base.asset_base_url,
        delimiter=base.csv_delimiter,
        quotechar=base.csv_enclosure,
        escapechar=base.csv_escape,
        strict=base.csv_strict,
        max_reported_issues=base.max_reported_issues,
    )
    return config.with_overrides(**overrides)


def get_log_level() -> str:
    return _get_str_env("LOG_LEVEL", "INFO").upper()
