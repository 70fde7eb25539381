"""
tests/test_run_csv_import_cli.py

Command-line entry point in dry-run mode, which never touches the database.
"""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path
from types import ModuleType

import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "run_csv_import.py"

BOOK_MAPPING = {
    "title": {"type": "primary", "name": "title"},
    "isbn": {"type": "sidefield", "name": "isbn"},
}


@pytest.fixture(scope="module")
def cli() -> ModuleType:
    spec = importlib.util.spec_from_file_location("run_csv_import", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def mapping_path(tmp_path: Path) -> Path:
    path = tmp_path / "mapping.json"
    path.write_text(json.dumps(BOOK_MAPPING), encoding="utf-8")
    return path


def test_dry_run_prints_summary(
    cli: ModuleType,
    mapping_path: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    csv_path = tmp_path / "books.csv"
    csv_path.write_text("title,isbn\nDune,123\nEmma,456\n", encoding="utf-8")

    exit_code = cli.main([str(csv_path), "--mapping", str(mapping_path), "--kind", "book", "--dry-run"])

    assert exit_code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["processed"] == 2
    assert summary["dry_run"] is True
    assert summary["ok"] is True


def test_failed_rows_exit_non_zero(
    cli: ModuleType,
    mapping_path: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    csv_path = tmp_path / "books.csv"
    csv_path.write_text("title,isbn\nDune\n", encoding="utf-8")

    exit_code = cli.main([str(csv_path), "--mapping", str(mapping_path), "--strict", "--dry-run"])

    assert exit_code == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["decode_failures"] == 1


def test_invalid_mapping_is_fatal(
    cli: ModuleType,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    csv_path = tmp_path / "books.csv"
    csv_path.write_text("title\nDune\n", encoding="utf-8")
    mapping_path = tmp_path / "mapping.json"
    mapping_path.write_text(json.dumps({"title": {"type": "primary", "name": "headline"}}), encoding="utf-8")

    exit_code = cli.main([str(csv_path), "--mapping", str(mapping_path), "--dry-run"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ""
    assert "invalid_primary_field" in captured.err


def test_missing_csv_is_fatal(
    cli: ModuleType,
    mapping_path: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli.main([str(tmp_path / "absent.csv"), "--mapping", str(mapping_path), "--dry-run"])

    assert exit_code == 1
    assert "Could not open file" in capsys.readouterr().err
