from __future__ import annotations

import os
from pathlib import Path

import pytest

from db.config import load_env_files, normalize_database_url, resolve_database_url

URL_VARIABLES = ("IMPORT_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL", "ENVIRONMENT")


@pytest.fixture(autouse=True)
def clean_url_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in URL_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@db/records", "postgresql+psycopg://u:p@db/records"),
        ("postgresql://u:p@db/records", "postgresql+psycopg://u:p@db/records"),
        ("postgresql+psycopg://u:p@db/records", "postgresql+psycopg://u:p@db/records"),
        (" sqlite:///records.db ", "sqlite:///records.db"),
    ],
)
def test_normalize_database_url(raw: str, expected: str) -> None:
    assert normalize_database_url(raw) == expected


def test_import_url_wins_over_generic_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgres://generic/db")
    monkeypatch.setenv("IMPORT_DATABASE_URL", "sqlite:///imports.db")

    assert resolve_database_url() == "sqlite:///imports.db"


def test_cloud_url_needs_cloud_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLOUD_DATABASE_URL", "postgres://cloud/db")
    monkeypatch.setenv("LOCAL_DATABASE_URL", "postgres://local/db")

    assert resolve_database_url() == "postgresql+psycopg://local/db"

    monkeypatch.setenv("ENVIRONMENT", "Production")
    assert resolve_database_url() == "postgresql+psycopg://cloud/db"


def test_missing_url_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(RuntimeError, match="No database URL configured"):
        resolve_database_url()


def test_load_env_files_keeps_existing_values(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CSV_DELIMITER", ";")
    added = ("IMPORT_SCHEMA_KIND", "IMPORT_DEFAULT_STATUS")
    for name in added:
        monkeypatch.delenv(name, raising=False)
    (tmp_path / ".env").write_text(
        "# defaults\nCSV_DELIMITER=,\nexport IMPORT_SCHEMA_KIND='term'\nnot a pair\n",
        encoding="utf-8",
    )
    (tmp_path / ".env.local").write_text('IMPORT_DEFAULT_STATUS="draft"\n', encoding="utf-8")

    try:
        loaded = load_env_files(tmp_path)

        assert [path.name for path in loaded] == [".env", ".env.local"]
        assert os.environ["CSV_DELIMITER"] == ";"
        assert os.environ["IMPORT_SCHEMA_KIND"] == "term"
        assert os.environ["IMPORT_DEFAULT_STATUS"] == "draft"
    finally:
        for name in added:
            os.environ.pop(name, None)
