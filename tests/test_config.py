# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration tests: validation, builder functions, environment and
settings-file loading.
"""

import json
from pathlib import Path

import pytest

from sqltk.builder import (
    add_database,
    archive_to,
    build_from_steps,
    create_config,
    force_online_on_failure,
    grant_directories_to,
    with_backup_directory,
    with_command_timeout,
    with_connection_string,
    with_restore_directory,
)
from sqltk.config import DatabaseSpec, RETENTION_COUNT, ToolkitConfig
from sqltk.env import config_from_settings, create_config_from_env, load_config_file
from sqltk.exceptions import ConfigurationError

DSN = "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db01;Trusted_Connection=yes"


def _config(**overrides):
    values = dict(
        backup_directory="/var/opt/mssql/backup",
        restore_directory="/var/opt/mssql/data",
        databases=["Sales"],
    )
    values.update(overrides)
    return create_config(DSN, **values)


# ============================================================================
# Validation
# ============================================================================

def test_defaults():
    config = _config()

    assert config.backup_directory == Path("/var/opt/mssql/backup")
    assert config.restore_directory == Path("/var/opt/mssql/data")
    assert config.databases == [DatabaseSpec("Sales")]
    assert config.command_timeout_seconds == 60
    assert config.archive_prefix == "Backup_"
    assert config.archive_enabled is False
    assert config.force_online_on_failure is False
    assert RETENTION_COUNT == 3


def test_config_is_frozen():
    config = _config()

    with pytest.raises(Exception):
        config.command_timeout_seconds = 5


def test_with_updates_revalidates():
    config = _config()

    assert config.with_updates(command_timeout_seconds=900).command_timeout_seconds == 900
    with pytest.raises(ConfigurationError):
        config.with_updates(command_timeout_seconds=0)


def test_all_errors_are_reported_together():
    with pytest.raises(ConfigurationError) as exc_info:
        ToolkitConfig(
            connection_string="",
            backup_directory="",
            restore_directory="",
            databases=[],
            command_timeout_seconds=-1,
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 5
    assert "connection_string is required" in errors
    assert "databases must contain at least one database" in errors


@pytest.mark.parametrize("name", ["", "..", "a/b", "a\\b", "C:", "bad*name", "tab\tname"])
def test_invalid_database_names(name):
    with pytest.raises(ConfigurationError, match="Invalid database name"):
        _config(databases=[name])


def test_duplicate_database_names_are_case_insensitive():
    with pytest.raises(ConfigurationError, match="Duplicate database name"):
        _config(databases=["Sales", "SALES"])


@pytest.mark.parametrize("prefix", ["Backup2_", "nightly/", "a\\b"])
def test_invalid_archive_prefix(prefix):
    with pytest.raises(ConfigurationError, match="Invalid archive_prefix"):
        _config(archive_prefix=prefix)


def test_backup_file_path_is_derived_from_name():
    database = DatabaseSpec("Sales")

    assert database.backup_file_name == "Sales.bak"
    assert database.resolve_backup_path("/var/backup") == Path("/var/backup/Sales.bak")


# ============================================================================
# Builder
# ============================================================================

def test_build_from_steps():
    config = build_from_steps(
        lambda c: with_connection_string(c, DSN),
        lambda c: with_backup_directory(c, "/b"),
        lambda c: with_restore_directory(c, "/r"),
        lambda c: add_database(c, "Sales"),
        lambda c: add_database(c, "Inventory"),
        lambda c: archive_to(c, "s3://offsite/sql", prefix="Nightly_", region="eu-west-1"),
        lambda c: with_command_timeout(c, 1800),
        lambda c: grant_directories_to(c, "mssql"),
        force_online_on_failure,
    )

    assert [database.name for database in config.databases] == ["Sales", "Inventory"]
    assert config.archive_directory == "s3://offsite/sql"
    assert config.archive_prefix == "Nightly_"
    assert config.archive_region == "eu-west-1"
    assert config.command_timeout_seconds == 1800
    assert config.sql_server_account == "mssql"
    assert config.force_online_on_failure is True
    assert config.archive_enabled is True


def test_builder_functions_do_not_mutate_input():
    original = {"databases": []}

    updated = add_database(original, "Sales")

    assert original == {"databases": []}
    assert updated["databases"] == [DatabaseSpec("Sales")]


def test_empty_directory_fails_validation():
    with pytest.raises(ConfigurationError, match="backup_directory is required"):
        _config(backup_directory="")


# ============================================================================
# Environment
# ============================================================================

@pytest.fixture
def sqltk_env(monkeypatch):
    monkeypatch.setenv("SQLTK_CONNECTION_STRING", DSN)
    monkeypatch.setenv("SQLTK_BACKUP_DIRECTORY", "/var/opt/mssql/backup")
    monkeypatch.setenv("SQLTK_RESTORE_DIRECTORY", "/var/opt/mssql/data")
    monkeypatch.setenv("SQLTK_DATABASES", "Sales, Inventory,")
    for variable in (
        "SQLTK_ARCHIVE_DIRECTORY",
        "SQLTK_ARCHIVE_PREFIX",
        "SQLTK_ARCHIVE_REGION",
        "SQLTK_COMMAND_TIMEOUT_SECONDS",
        "SQLTK_SQL_SERVER_ACCOUNT",
        "SQLTK_FORCE_ONLINE_ON_FAILURE",
    ):
        monkeypatch.delenv(variable, raising=False)
    return monkeypatch


def test_config_from_env(sqltk_env):
    sqltk_env.setenv("SQLTK_ARCHIVE_DIRECTORY", "/mnt/offsite")
    sqltk_env.setenv("SQLTK_COMMAND_TIMEOUT_SECONDS", "3600")
    sqltk_env.setenv("SQLTK_FORCE_ONLINE_ON_FAILURE", "yes")

    config = create_config_from_env()

    assert [database.name for database in config.databases] == ["Sales", "Inventory"]
    assert config.archive_directory == "/mnt/offsite"
    assert config.command_timeout_seconds == 3600
    assert config.force_online_on_failure is True
    assert config.archive_region is None


def test_config_from_env_requires_connection_string(sqltk_env):
    sqltk_env.delenv("SQLTK_CONNECTION_STRING")

    with pytest.raises(ConfigurationError, match="SQLTK_CONNECTION_STRING is not set"):
        create_config_from_env()


def test_config_from_env_requires_databases(sqltk_env):
    sqltk_env.setenv("SQLTK_DATABASES", " , ")

    with pytest.raises(ConfigurationError, match="No databases are configured"):
        create_config_from_env()


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_config_from_env_rejects_bad_timeout(sqltk_env, value):
    sqltk_env.setenv("SQLTK_COMMAND_TIMEOUT_SECONDS", value)

    with pytest.raises(ConfigurationError, match="SQLTK_COMMAND_TIMEOUT_SECONDS"):
        create_config_from_env()


def test_config_from_env_rejects_bad_bool(sqltk_env):
    sqltk_env.setenv("SQLTK_FORCE_ONLINE_ON_FAILURE", "maybe")

    with pytest.raises(ConfigurationError, match="SQLTK_FORCE_ONLINE_ON_FAILURE"):
        create_config_from_env()


# ============================================================================
# Settings file
# ============================================================================

def test_load_config_file(temp_dir: Path):
    settings = {
        "Logging": {"LogLevel": {"Default": "Information"}},
        "SqlDatabaseOptions": {
            "ConnectionString": DSN,
            "BackupDirectory": "D:\\Backup",
            "RestoreDirectory": "D:\\Data",
            "ArchiveDirectory": "\\\\nas\\sql",
            "CommandTimeoutSeconds": 7200,
            "Databases": [{"Name": "Sales"}, "Inventory"],
        },
    }
    path = temp_dir / "appsettings.json"
    # Settings files written by Windows editors often carry a BOM
    path.write_text(json.dumps(settings), encoding="utf-8-sig")

    config = load_config_file(path)

    assert config.connection_string == DSN
    assert [database.name for database in config.databases] == ["Sales", "Inventory"]
    assert config.archive_directory == "\\\\nas\\sql"
    assert config.command_timeout_seconds == 7200


def test_load_config_file_missing(temp_dir: Path):
    with pytest.raises(ConfigurationError, match="file not found"):
        load_config_file(temp_dir / "nope.json")


def test_load_config_file_invalid_json(temp_dir: Path):
    path = temp_dir / "appsettings.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="invalid JSON"):
        load_config_file(path)


def test_load_config_file_missing_section(temp_dir: Path):
    path = temp_dir / "appsettings.json"
    path.write_text(json.dumps({"Other": {}}), encoding="utf-8")

    with pytest.raises(ConfigurationError, match="SqlDatabaseOptions"):
        load_config_file(path)


def test_load_config_file_validates_section(temp_dir: Path):
    path = temp_dir / "appsettings.json"
    path.write_text(json.dumps({"SqlDatabaseOptions": {"ConnectionString": DSN}}), encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Configuration validation failed"):
        load_config_file(path)


def _settings(**overrides):
    return {
        "ConnectionString": DSN,
        "BackupDirectory": "/var/opt/mssql/backup",
        "RestoreDirectory": "/var/opt/mssql/data",
        "Databases": ["Sales"],
        **overrides,
    }


@pytest.mark.parametrize(
    "value, expected",
    [("false", False), ("False", False), ("0", False), ("true", True), ("yes", True), (True, True), (False, False)],
)
def test_settings_force_online_parses_text(value, expected):
    config = config_from_settings(_settings(ForceOnlineOnFailure=value))

    assert config.force_online_on_failure is expected


def test_settings_timeout_accepts_quoted_number():
    config = config_from_settings(_settings(CommandTimeoutSeconds="600"))

    assert config.command_timeout_seconds == 600


@pytest.mark.parametrize(
    "overrides, setting",
    [
        ({"CommandTimeoutSeconds": "ten minutes"}, "CommandTimeoutSeconds"),
        ({"CommandTimeoutSeconds": "-1"}, "CommandTimeoutSeconds"),
        ({"ForceOnlineOnFailure": "maybe"}, "ForceOnlineOnFailure"),
    ],
)
def test_settings_reject_unparseable_text(overrides, setting):
    with pytest.raises(ConfigurationError, match=setting):
        config_from_settings(_settings(**overrides))
