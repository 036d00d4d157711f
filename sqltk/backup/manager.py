# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Backup Manager - Full database backups.

This module prepares the backup directory and issues one native full
backup per configured database. Databases are backed up strictly one
after another; the first failure is logged and re-raised, which aborts
the remaining databases.
"""

import shutil
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, List, Type

from sqltk.config import DatabaseSpec, ToolkitConfig
from sqltk.core import ToolkitState
from sqltk.exceptions import BackupError, ToolkitError
from sqltk.sql.commands import build_backup_statement


@dataclass
class BackupResult:
    """Result of backing up every configured database."""

    run_id: str
    databases: List[str]
    backup_files: List[Path] = field(default_factory=list)
    duration_seconds: float = 0.0


def prepare_directory(
    directory: Path,
    logger: Any,
    sql_server_account: str | None = None,
    error_cls: Type[ToolkitError] = BackupError,
) -> None:
    """
    Create a directory (and its parents) if it does not exist.

    When `sql_server_account` is set, the account is made owner of the
    directory so the database service can write backups or restored
    files into it.

    Raises:
        error_cls: If the directory cannot be created or handed over
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
        if sql_server_account:
            shutil.chown(directory, user=sql_server_account)
    except (OSError, LookupError) as e:
        raise error_cls(
            f"Failed to prepare directory: {e}",
            details={"directory": str(directory), "account": sql_server_account},
        ) from e

    logger.debug(
        "directory_prepared",
        directory=str(directory),
        account=sql_server_account,
    )


async def backup_database(
    config: ToolkitConfig,
    state: ToolkitState,
    database: DatabaseSpec,
) -> Path:
    """
    Run a full backup of one database.

    Engine failures are logged with the database and path, then
    re-raised unchanged.

    Returns:
        Path of the backup file written by the server
    """
    logger = state["logger"]
    backup_path = database.resolve_backup_path(config.backup_directory)
    statement = build_backup_statement(database.name, backup_path)

    logger.debug("full_backup_started", database=database.name, backup_path=str(backup_path))

    try:
        await state["executor"].execute(statement)
    except Exception as e:
        logger.error(
            "full_backup_failed",
            database=database.name,
            backup_path=str(backup_path),
            error=str(e),
        )
        raise

    logger.info("full_backup_completed", database=database.name, backup_path=str(backup_path))
    return backup_path


async def backup_databases(config: ToolkitConfig, state: ToolkitState) -> BackupResult:
    """
    Back up every configured database, in configuration order.

    Args:
        config: Toolkit configuration
        state: Runtime state

    Returns:
        BackupResult listing the backup files written
    """
    start_time = datetime.now(UTC)

    prepare_directory(config.backup_directory, state["logger"], config.sql_server_account)

    backup_files: List[Path] = []
    for database in config.databases:
        backup_files.append(await backup_database(config, state, database))

    return BackupResult(
        run_id=state["run_id"],
        databases=[database.name for database in config.databases],
        backup_files=backup_files,
        duration_seconds=(datetime.now(UTC) - start_time).total_seconds(),
    )


def list_backup_files(config: ToolkitConfig) -> List[Path]:
    """
    Return the backup files of configured databases that exist on disk.

    Databases without a backup file are skipped.
    """
    paths = [database.resolve_backup_path(config.backup_directory) for database in config.databases]
    return [path for path in paths if path.is_file()]
