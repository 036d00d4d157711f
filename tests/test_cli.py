# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""Tests for the sqltk command line."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import RecordingExecutor, fails_on
from sqltk.cli import app

runner = CliRunner()


@pytest.fixture
def settings_file(temp_dir: Path) -> Path:
    path = temp_dir / "appsettings.json"
    path.write_text(
        json.dumps(
            {
                "SqlDatabaseOptions": {
                    "ConnectionString": "DRIVER={ODBC Driver 18 for SQL Server};SERVER=localhost",
                    "BackupDirectory": str(temp_dir / "backup"),
                    "RestoreDirectory": str(temp_dir / "data"),
                    "ArchiveDirectory": str(temp_dir / "archive"),
                    "Databases": [{"Name": "Sales"}, {"Name": "Inventory"}],
                }
            }
        ),
        encoding="utf-8",
    )
    return path


def _use_executor(monkeypatch, executor: RecordingExecutor) -> None:
    monkeypatch.setattr("sqltk.sql.create_executor", lambda *args, **kwargs: executor)


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "backup" in result.output
    assert "restore" in result.output


def test_backup_command(monkeypatch, settings_file: Path, temp_dir: Path):
    executor = RecordingExecutor()
    _use_executor(monkeypatch, executor)

    result = runner.invoke(app, ["backup", "--config", str(settings_file)])

    assert result.exit_code == 0, result.output
    assert "Backed up 2 database(s)" in result.output
    assert "Archived bundle Backup_" in result.output
    assert len(list((temp_dir / "archive").iterdir())) == 1


def test_restore_command(monkeypatch, settings_file: Path):
    executor = RecordingExecutor()
    _use_executor(monkeypatch, executor)

    result = runner.invoke(app, ["restore", "--config", str(settings_file), "--verbose"])

    assert result.exit_code == 0, result.output
    assert "Restored 2 database(s)" in result.output
    assert len(executor.statements) == 8


def test_backup_failure_exits_non_zero(monkeypatch, settings_file: Path):
    _use_executor(monkeypatch, RecordingExecutor(fail_on=fails_on("BACKUP DATABASE")))

    result = runner.invoke(app, ["backup", "--config", str(settings_file)])

    assert result.exit_code == 1
    assert "simulated engine error" in result.output


def test_restore_failure_exits_non_zero(monkeypatch, settings_file: Path):
    _use_executor(monkeypatch, RecordingExecutor(fail_on=fails_on("SET ONLINE")))

    result = runner.invoke(app, ["restore", "--config", str(settings_file)])

    assert result.exit_code == 1
    assert "left offline" in result.output


def test_missing_config_file_exits_non_zero(temp_dir: Path):
    result = runner.invoke(app, ["backup", "--config", str(temp_dir / "missing.json")])

    assert result.exit_code == 1
    assert "file not found" in result.output


def test_environment_configuration(monkeypatch, temp_dir: Path):
    executor = RecordingExecutor()
    _use_executor(monkeypatch, executor)
    monkeypatch.delenv("SQLTK_CONFIG_FILE", raising=False)
    monkeypatch.delenv("SQLTK_ARCHIVE_DIRECTORY", raising=False)
    monkeypatch.setenv("SQLTK_CONNECTION_STRING", "DSN=sql")
    monkeypatch.setenv("SQLTK_BACKUP_DIRECTORY", str(temp_dir / "backup"))
    monkeypatch.setenv("SQLTK_RESTORE_DIRECTORY", str(temp_dir / "data"))
    monkeypatch.setenv("SQLTK_DATABASES", "Sales")

    result = runner.invoke(app, ["backup"])

    assert result.exit_code == 0, result.output
    assert "Backed up 1 database(s)" in result.output
    assert "Archived bundle" not in result.output
