"""
db/config.py

Database URL resolution for the importer, its migrations and its CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES = (".env", ".env.local")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})

_DRIVER_PREFIXES = (
    ("postgres://", "postgresql+psycopg://"),
    ("postgresql://", "postgresql+psycopg://"),
)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files(root: Path | None = None) -> list[Path]:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` under ``root``.

    Variables already present in the process environment win. Returns the
    files that were read.
    """

    base = root or PROJECT_ROOT
    loaded: list[Path] = []
    for filename in ENV_FILENAMES:
        env_path = base / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is not None and parsed[0] not in os.environ:
                os.environ[parsed[0]] = parsed[1]
        loaded.append(env_path)
    return loaded


def normalize_database_url(url: str) -> str:
    """
    Pin bare PostgreSQL URLs to the psycopg driver; other URLs pass through.
    """

    url = url.strip()
    for prefix, replacement in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def resolve_database_url() -> str:
    """
    Resolve the record store URL.

    Priority:
    1) IMPORT_DATABASE_URL
    2) DATABASE_URL
    3) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    4) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("IMPORT_DATABASE_URL", "DATABASE_URL"):
        direct_url = (os.getenv(name) or "").strip()
        if direct_url:
            return normalize_database_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = (os.getenv("CLOUD_DATABASE_URL") or "").strip()
    if environment in CLOUD_ENVIRONMENTS and cloud_url:
        return normalize_database_url(cloud_url)

    local_url = (os.getenv("LOCAL_DATABASE_URL") or "").strip()
    if local_url:
        return normalize_database_url(local_url)

    raise RuntimeError(
        "No database URL configured for the record store. Set IMPORT_DATABASE_URL "
        "or DATABASE_URL, or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
