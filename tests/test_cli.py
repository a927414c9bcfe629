"""Smoke tests for the casebook CLI.

Run with: python -m pytest tests/test_cli.py -v
"""
from __future__ import annotations

import sqlite3
import subprocess
import sys

from investigation.constants import SAVE_SCHEMA_VERSION
from investigation.core.persistence import save_key
from investigation.db.store import SqliteKeyValueStore


def _run_cli(*args: str, timeout: int = 30) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "casebook", *args],
        capture_output=True,
        text=True,
        timeout=timeout,
    )


class TestCLIHelp:
    """Verify that all subcommands register and print help without errors."""

    def test_main_help(self):
        result = _run_cli("--help")
        assert result.returncode == 0
        for name in ("validate", "migrate", "status", "reset", "serve"):
            assert name in result.stdout

    def test_validate_help(self):
        result = _run_cli("validate", "--help")
        assert result.returncode == 0
        assert "--case-dir" in result.stdout
        assert "--all" in result.stdout

    def test_serve_help(self):
        result = _run_cli("serve", "--help")
        assert result.returncode == 0
        assert "--port" in result.stdout


class TestValidate:
    def test_bundled_case_is_valid(self):
        result = _run_cli("validate", "library")
        assert result.returncode == 0, result.stdout + result.stderr
        assert result.stdout.startswith("OK   library")
        assert "culprit: klaus" in result.stdout

    def test_all_cases(self):
        result = _run_cli("validate", "--all")
        assert result.returncode == 0
        assert "OK   library" in result.stdout

    def test_broken_case_lists_errors(self, tmp_path):
        case = tmp_path / "broken"
        (case / "dialogs").mkdir(parents=True)
        (case / "phase.yaml").write_text("version: '1.0'\n", encoding="utf-8")
        result = _run_cli("validate", "--path", str(case))
        assert result.returncode == 1
        assert result.stdout.startswith("FAIL")
        assert "missing document: clues.yaml" in result.stdout
        assert "missing dialogs/" in result.stdout

    def test_malformed_yaml_reported_for_every_case(self, tmp_path):
        for name in ("first", "second"):
            case = tmp_path / name
            (case / "dialogs").mkdir(parents=True)
            (case / "phase.yaml").write_text("version: [1.0\n", encoding="utf-8")
        result = _run_cli("validate", "--all", "--case-dir", str(tmp_path))
        assert result.returncode == 1
        assert "Traceback" not in result.stderr
        assert "FAIL first" in result.stdout
        assert "FAIL second" in result.stdout
        assert "  - phase.yaml: " in result.stdout

    def test_missing_case_dir(self, tmp_path):
        result = _run_cli("validate", "--path", str(tmp_path / "nope"))
        assert result.returncode == 1
        assert "case directory not found" in result.stdout


class TestSaveSlots:
    def test_migrate_then_up_to_date(self, tmp_path):
        db = str(tmp_path / "saves.db")
        first = _run_cli("migrate", "--db", db)
        assert first.returncode == 0
        assert "applied 0001_init" in first.stdout
        second = _run_cli("migrate", "--db", db)
        assert "schema up to date" in second.stdout

    def test_status_and_reset(self, tmp_path):
        db = str(tmp_path / "saves.db")
        store = SqliteKeyValueStore(db)
        store.put(save_key("default"), {
            "version": SAVE_SCHEMA_VERSION,
            "timestamp": "2026-01-01T00:00:00+00:00",
            "case_id": "library",
            "phase": "investigation",
            "discovered_clues": ["strudel-crumbs"],
            "failed_confrontations": 1,
        })
        store.close()

        status = _run_cli("status", "--db", db)
        assert status.returncode == 0
        assert "Phase:       investigation" in status.stdout
        assert "strudel-crumbs" in status.stdout
        assert "Failures:    1" in status.stdout

        assert "Deleted save slot 'default'" in _run_cli("reset", "--db", db).stdout
        assert "No saved investigation" in _run_cli("reset", "--db", db).stdout
        assert "No saved investigation" in _run_cli("status", "--db", db).stdout

    def test_status_rejects_unknown_version(self, tmp_path):
        db = str(tmp_path / "saves.db")
        store = SqliteKeyValueStore(db)
        store.put(save_key("default"), {"version": 42})
        store.close()
        result = _run_cli("status", "--db", db)
        assert result.returncode == 1
        assert "unusable save" in result.stdout

    def test_status_rejects_corrupt_payload(self, tmp_path):
        db = str(tmp_path / "saves.db")
        store = SqliteKeyValueStore(db)
        store.put(save_key("default"), {"version": SAVE_SCHEMA_VERSION})
        store.put(save_key("other"), ["not", "a", "record"])
        store.close()
        conn = sqlite3.connect(db)
        conn.execute("UPDATE save_slots SET payload_json = '{broken' WHERE slot = ?", (save_key("default"),))
        conn.commit()
        conn.close()

        for slot in ("default", "other"):
            result = _run_cli("status", "--db", db, "--slot", slot)
            assert result.returncode == 1
            assert "Traceback" not in result.stderr
            assert "unusable save" in result.stdout
