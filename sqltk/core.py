# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Core - Entry points for backup and restore runs.

This module builds the runtime state shared by every component (logger,
SQL executor, archive storage) and sequences a complete run:

- Backup: full backup of every database, then compress + upload + purge
- Restore: download + extract the latest bundle, then restore every database
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, List, TypedDict

import structlog

from sqltk.config import ToolkitConfig


class ToolkitState(TypedDict):
    """Runtime state for one backup or restore run."""

    run_id: str  # ULID
    logger: Any  # structlog logger bound with run_id
    executor: Any  # SqlExecutor
    archive_storage: Any  # ArchiveStorage, None when archiving is disabled
    started_at: datetime


@dataclass
class BackupRunResult:
    """Result of a complete backup run."""

    run_id: str
    databases: List[str]
    backup_files: List[str]
    bundle_name: str | None
    purged_bundles: List[str]
    duration_seconds: float


@dataclass
class RestoreRunResult:
    """Result of a complete restore run."""

    run_id: str
    databases: List[str]
    bundle_name: str | None
    extracted_files: List[str]
    duration_seconds: float


async def initialize_toolkit_state(
    config: ToolkitConfig,
    *,
    executor: Any = None,
    archive_storage: Any = None,
    logger: Any = None,
) -> ToolkitState:
    """
    Initialize runtime state for a run.

    Args:
        config: Toolkit configuration
        executor: SqlExecutor to use (default: ODBC executor for
            config.connection_string)
        archive_storage: ArchiveStorage to use (default: derived from
            config.archive_directory, None when archiving is disabled)
        logger: structlog logger to bind (default: structlog.get_logger())

    Returns:
        Initialized ToolkitState dictionary
    """
    from ulid import ULID

    from sqltk.archive.storage import open_archive_storage
    from sqltk.sql import create_executor

    run_id = str(ULID())
    bound_logger = (logger or structlog.get_logger()).bind(run_id=run_id)

    if executor is None:
        executor = create_executor(
            config.connection_string,
            config.command_timeout_seconds,
            logger=bound_logger,
        )

    if archive_storage is None and config.archive_enabled:
        archive_storage = open_archive_storage(config, logger=bound_logger)

    return ToolkitState(
        run_id=run_id,
        logger=bound_logger,
        executor=executor,
        archive_storage=archive_storage,
        started_at=datetime.now(UTC),
    )


async def run_backup(
    config: ToolkitConfig,
    state: ToolkitState,
    timestamp: datetime | None = None,
) -> BackupRunResult:
    """
    Run a complete backup cycle.

    1. Back up every configured database, in order
    2. Compress the .bak files into a bundle named after `timestamp`
    3. Upload the bundle to archive storage and purge old generations

    The first failure aborts the run and is re-raised.

    Args:
        config: Toolkit configuration
        state: Runtime state
        timestamp: Bundle timestamp (default: now, UTC)

    Returns:
        BackupRunResult with run details
    """
    from sqltk.archive.store import upload_archive
    from sqltk.backup.manager import backup_databases

    logger = state["logger"]
    timestamp = timestamp or datetime.now(UTC)
    start_time = datetime.now(UTC)

    logger.info(
        "backup_run_started",
        databases=[database.name for database in config.databases],
        archive_enabled=config.archive_enabled,
    )

    try:
        backup = await backup_databases(config, state)
        upload = await upload_archive(config, state, timestamp)
    except Exception as e:
        logger.error("backup_run_failed", error=str(e))
        raise

    duration = (datetime.now(UTC) - start_time).total_seconds()

    result = BackupRunResult(
        run_id=state["run_id"],
        databases=backup.databases,
        backup_files=[str(path) for path in backup.backup_files],
        bundle_name=upload.bundle_name if upload else None,
        purged_bundles=upload.purged_bundles if upload else [],
        duration_seconds=duration,
    )

    logger.info(
        "backup_run_completed",
        databases=len(result.databases),
        bundle=result.bundle_name,
        purged=len(result.purged_bundles),
        duration=duration,
    )
    return result


async def run_restore(config: ToolkitConfig, state: ToolkitState) -> RestoreRunResult:
    """
    Run a complete restore cycle.

    1. Download the most recent bundle and extract it into the backup directory
    2. Restore every configured database from its .bak file, in order

    The first failure aborts the run and is re-raised.
    """
    from sqltk.archive.store import download_archive
    from sqltk.backup.restore import restore_databases

    logger = state["logger"]
    start_time = datetime.now(UTC)

    logger.info(
        "restore_run_started",
        databases=[database.name for database in config.databases],
        archive_enabled=config.archive_enabled,
    )

    try:
        download = await download_archive(config, state)
        restore = await restore_databases(config, state)
    except Exception as e:
        logger.error("restore_run_failed", error=str(e))
        raise

    duration = (datetime.now(UTC) - start_time).total_seconds()

    result = RestoreRunResult(
        run_id=state["run_id"],
        databases=restore.databases,
        bundle_name=download.bundle_name if download else None,
        extracted_files=download.extracted_files if download else [],
        duration_seconds=duration,
    )

    logger.info(
        "restore_run_completed",
        databases=len(result.databases),
        bundle=result.bundle_name,
        duration=duration,
    )
    return result
