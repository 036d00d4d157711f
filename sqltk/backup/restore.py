# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Restore Manager - Restore databases onto a new file layout.

Each database goes through the same sequence:

    ONLINE --SET OFFLINE--> OFFLINE --RESTORE ... MOVE--> (RESTORING) --SET ONLINE--> ONLINE

The three statements are not transactional. If the restore or the final
SET ONLINE fails, the database stays OFFLINE; that is reported as a
DatabaseOfflineError and left for an operator to resolve. Only when
force_online_on_failure is configured is a single compensating SET ONLINE
attempted first.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import Dict, List

from sqltk.backup.manager import prepare_directory
from sqltk.config import DatabaseSpec, ToolkitConfig
from sqltk.core import ToolkitState
from sqltk.exceptions import DatabaseOfflineError, RestoreError
from sqltk.sql.commands import (
    FilePair,
    build_file_list_statement,
    build_offline_statement,
    build_online_statement,
    build_restore_statement,
    resolve_move_path,
)


class DatabaseState(str, Enum):
    """State of a database during its restore sequence."""

    ONLINE = "online"
    OFFLINE = "offline"  # Hazard state if the sequence stops here
    RESTORING = "restoring"


@dataclass
class RestoreResult:
    """Result of restoring every configured database."""

    run_id: str
    databases: List[str]
    file_pairs: Dict[str, List[FilePair]] = field(default_factory=dict)
    duration_seconds: float = 0.0


async def get_file_pairs(
    state: ToolkitState,
    backup_path: Path,
    restore_directory: Path,
) -> List[FilePair]:
    """
    Read a backup's file list and map every file into the restore directory.

    Raises:
        RestoreError: If a file-list row lacks LogicalName or PhysicalName
    """
    rows = await state["executor"].query(build_file_list_statement(backup_path))

    pairs: List[FilePair] = []
    for row in rows:
        logical_name = row.get("LogicalName")
        physical_name = row.get("PhysicalName")
        if not logical_name or not physical_name:
            raise RestoreError(
                "File list row is missing LogicalName or PhysicalName",
                details={"backup_path": str(backup_path), "row": row},
            )
        pairs.append(
            FilePair(
                logical_name=logical_name,
                physical_name=physical_name,
                move_to_path=resolve_move_path(physical_name, restore_directory),
            )
        )
    return pairs


async def restore_database(
    config: ToolkitConfig,
    state: ToolkitState,
    database: DatabaseSpec,
) -> List[FilePair]:
    """
    Restore one database from its backup file.

    Returns:
        The file pairs used for the MOVE clauses

    Raises:
        DatabaseOfflineError: If a step after SET OFFLINE failed and the
            database was left offline
        Exception: Any failure before SET OFFLINE, re-raised unchanged
    """
    logger = state["logger"]
    executor = state["executor"]
    backup_path = database.resolve_backup_path(config.backup_directory)
    restore_directory = config.restore_directory
    current = DatabaseState.ONLINE

    logger.debug(
        "restore_started",
        database=database.name,
        backup_path=str(backup_path),
        restore_directory=str(restore_directory),
    )

    try:
        pairs = await get_file_pairs(state, backup_path, restore_directory)
        restore_statement = build_restore_statement(database.name, backup_path, pairs)

        await executor.execute(build_offline_statement(database.name))
        current = DatabaseState.RESTORING

        await executor.execute(restore_statement)
        current = DatabaseState.OFFLINE

        await executor.execute(build_online_statement(database.name))
        current = DatabaseState.ONLINE

    except Exception as e:
        logger.error(
            "restore_failed",
            database=database.name,
            backup_path=str(backup_path),
            restore_directory=str(restore_directory),
            state=current.value,
            error=str(e),
        )
        if current == DatabaseState.ONLINE:
            raise
        if config.force_online_on_failure and await _force_online(state, database):
            raise
        raise DatabaseOfflineError(
            f"Restore of {database.name} failed and the database was left offline: {e}",
            details={
                "database": database.name,
                "backup_path": str(backup_path),
                "state": DatabaseState.OFFLINE.value,
            },
        ) from e

    logger.info(
        "restore_completed",
        database=database.name,
        backup_path=str(backup_path),
        restore_directory=str(restore_directory),
        files=len(pairs),
    )
    return pairs


async def _force_online(state: ToolkitState, database: DatabaseSpec) -> bool:
    """Compensating SET ONLINE after a failed restore. Returns True on success."""
    logger = state["logger"]
    logger.warning("restore_compensating_set_online", database=database.name)
    try:
        await state["executor"].execute(build_online_statement(database.name))
    except Exception as e:
        logger.error("restore_compensation_failed", database=database.name, error=str(e))
        return False
    logger.warning("restore_compensation_succeeded", database=database.name)
    return True


async def restore_databases(config: ToolkitConfig, state: ToolkitState) -> RestoreResult:
    """
    Restore every configured database, in configuration order.

    The first failure aborts the remaining databases.
    """
    start_time = datetime.now(UTC)

    prepare_directory(
        config.restore_directory,
        state["logger"],
        config.sql_server_account,
        error_cls=RestoreError,
    )

    file_pairs: Dict[str, List[FilePair]] = {}
    for database in config.databases:
        file_pairs[database.name] = await restore_database(config, state, database)

    return RestoreResult(
        run_id=state["run_id"],
        databases=[database.name for database in config.databases],
        file_pairs=file_pairs,
        duration_seconds=(datetime.now(UTC) - start_time).total_seconds(),
    )
