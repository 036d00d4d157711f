# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment and settings-file configuration helpers.

These helpers are small wrappers around create_config(). They make it
easy to:

- Build a configuration from SQLTK_* environment variables
- Load the "SqlDatabaseOptions" section of an appsettings.json file
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List

from sqltk.builder import create_config
from sqltk.config import DEFAULT_ARCHIVE_PREFIX, DEFAULT_COMMAND_TIMEOUT_SECONDS, ToolkitConfig
from sqltk.errors import (
    explain_invalid_bool_env,
    explain_invalid_timeout_env,
    explain_missing_databases,
    explain_missing_env,
    explain_unreadable_config_file,
)
from sqltk.exceptions import ConfigurationError

SETTINGS_SECTION = "SqlDatabaseOptions"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _require_env(variable: str) -> str:
    value = os.getenv(variable)
    if not value:
        raise ConfigurationError(explain_missing_env(variable))
    return value


def _parse_timeout(value: str | None, variable: str = "SQLTK_COMMAND_TIMEOUT_SECONDS") -> int:
    if not value:
        return DEFAULT_COMMAND_TIMEOUT_SECONDS
    try:
        seconds = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_timeout_env(value, variable)) from exc
    if seconds <= 0:
        raise ConfigurationError(explain_invalid_timeout_env(value, variable))
    return seconds


def _parse_bool(variable: str, value: str | None) -> bool:
    if not value:
        return False
    lower = value.strip().lower()
    if lower in _TRUE_VALUES:
        return True
    if lower in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_bool_env(variable, value))


def _parse_databases(value: str | None) -> List[str]:
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


def create_config_from_env() -> ToolkitConfig:
    """
    Create a ToolkitConfig from environment variables.

    Required:
        - SQLTK_CONNECTION_STRING: ODBC connection string
        - SQLTK_BACKUP_DIRECTORY: Directory for .bak files
        - SQLTK_RESTORE_DIRECTORY: Directory restored files are moved to
        - SQLTK_DATABASES: Comma-separated database names, e.g. "Sales,Inventory"

    Optional environment variables:
        - SQLTK_ARCHIVE_DIRECTORY: Local directory or s3://bucket/prefix
        - SQLTK_ARCHIVE_PREFIX: Bundle name prefix (default: Backup_)
        - SQLTK_ARCHIVE_REGION: AWS region for s3:// archives
        - SQLTK_COMMAND_TIMEOUT_SECONDS: Positive integer (default: 60)
        - SQLTK_SQL_SERVER_ACCOUNT: Owner for prepared directories
        - SQLTK_FORCE_ONLINE_ON_FAILURE: 'true' | 'false' (default: false)
    """

    connection_string = _require_env("SQLTK_CONNECTION_STRING")
    backup_directory = _require_env("SQLTK_BACKUP_DIRECTORY")
    restore_directory = _require_env("SQLTK_RESTORE_DIRECTORY")

    databases = _parse_databases(os.getenv("SQLTK_DATABASES"))
    if not databases:
        raise ConfigurationError(explain_missing_databases())

    return create_config(
        connection_string,
        backup_directory=Path(backup_directory),
        restore_directory=Path(restore_directory),
        databases=databases,
        archive_directory=os.getenv("SQLTK_ARCHIVE_DIRECTORY", ""),
        command_timeout_seconds=_parse_timeout(os.getenv("SQLTK_COMMAND_TIMEOUT_SECONDS")),
        archive_prefix=os.getenv("SQLTK_ARCHIVE_PREFIX", DEFAULT_ARCHIVE_PREFIX),
        archive_region=os.getenv("SQLTK_ARCHIVE_REGION") or None,
        sql_server_account=os.getenv("SQLTK_SQL_SERVER_ACCOUNT") or None,
        force_online_on_failure=_parse_bool(
            "SQLTK_FORCE_ONLINE_ON_FAILURE", os.getenv("SQLTK_FORCE_ONLINE_ON_FAILURE")
        ),
    )


def config_from_settings(section: Dict[str, Any]) -> ToolkitConfig:
    """
    Create a ToolkitConfig from a "SqlDatabaseOptions" settings section.

    Keys use the settings-file spelling:

        {
            "ConnectionString": "...",
            "BackupDirectory": "/var/opt/mssql/backup",
            "RestoreDirectory": "/var/opt/mssql/data",
            "ArchiveDirectory": "/mnt/offsite/sql",
            "CommandTimeoutSeconds": 600,
            "Databases": [{"Name": "Sales"}, {"Name": "Inventory"}]
        }

    Databases may also be given as plain strings.
    """
    databases: List[str] = []
    for entry in section.get("Databases") or []:
        if isinstance(entry, dict):
            databases.append(entry.get("Name", ""))
        else:
            databases.append(str(entry))

    # Quoted numbers and booleans are accepted
    timeout = section.get("CommandTimeoutSeconds", DEFAULT_COMMAND_TIMEOUT_SECONDS)
    if isinstance(timeout, str):
        timeout = _parse_timeout(timeout, "CommandTimeoutSeconds")
    force_online = section.get("ForceOnlineOnFailure", False)
    if isinstance(force_online, str):
        force_online = _parse_bool("ForceOnlineOnFailure", force_online)

    return create_config(
        section.get("ConnectionString", ""),
        backup_directory=section.get("BackupDirectory", ""),
        restore_directory=section.get("RestoreDirectory", ""),
        databases=databases,
        archive_directory=section.get("ArchiveDirectory") or "",
        command_timeout_seconds=timeout,
        archive_prefix=section.get("ArchivePrefix", DEFAULT_ARCHIVE_PREFIX),
        archive_region=section.get("ArchiveRegion"),
        sql_server_account=section.get("SqlServerAccount"),
        force_online_on_failure=bool(force_online),
    )


def load_config_file(path: Path | str, section: str = SETTINGS_SECTION) -> ToolkitConfig:
    """
    Load configuration from the given section of a JSON settings file.

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON,
            lacks the section, or the section fails validation.
    """
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8-sig"))
    except FileNotFoundError as exc:
        raise ConfigurationError(explain_unreadable_config_file(str(path), "file not found")) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(explain_unreadable_config_file(str(path), f"invalid JSON ({exc.msg})")) from exc

    options = document.get(section) if isinstance(document, dict) else None
    if not isinstance(options, dict):
        raise ConfigurationError(
            explain_unreadable_config_file(str(path), f"missing {section!r} section")
        )

    return config_from_settings(options)
