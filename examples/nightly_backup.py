# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example nightly job: back up two databases and keep bundles offsite.

Run with:
    python examples/nightly_backup.py

Environment variables:
    MSSQL_CONNECTION_STRING: ODBC connection string of the server
    SQLTK_ARCHIVE_DIRECTORY: Local directory or s3://bucket/prefix
    SQLTK_FORCE_ONLINE: 'true' to bring a database back online after a failed restore
"""

import asyncio
import os
import sys

import structlog

from sqltk.builder import (
    add_database,
    archive_to,
    build_config,
    create_empty_config,
    force_online_on_failure,
    grant_directories_to,
    with_backup_directory,
    with_command_timeout,
    with_connection_string,
    with_restore_directory,
)
from sqltk.core import initialize_toolkit_state, run_backup
from sqltk.exceptions import ToolkitError


def create_nightly_config():
    """
    Create the job configuration with the functional builder.
    """
    config = create_empty_config()

    config = with_connection_string(
        config,
        os.getenv(
            "MSSQL_CONNECTION_STRING",
            "DRIVER={ODBC Driver 18 for SQL Server};SERVER=localhost;Trusted_Connection=yes;TrustServerCertificate=yes",
        ),
    )
    config = with_backup_directory(config, "/var/opt/mssql/backup")
    config = with_restore_directory(config, "/var/opt/mssql/data")

    config = add_database(config, "Sales")
    config = add_database(config, "Inventory")

    # Large databases take longer than the 60 second default
    config = with_command_timeout(config, 3600)

    # The server process writes the .bak files itself
    config = grant_directories_to(config, "mssql")

    archive = os.getenv("SQLTK_ARCHIVE_DIRECTORY")
    if archive:
        config = archive_to(config, archive)

    if os.getenv("SQLTK_FORCE_ONLINE", "false").lower() == "true":
        config = force_online_on_failure(config)

    return build_config(config)


async def main() -> int:
    logger = structlog.get_logger()

    try:
        config = create_nightly_config()
        state = await initialize_toolkit_state(config)
        result = await run_backup(config, state)
    except ToolkitError as e:
        logger.error("nightly_backup_failed", error=str(e))
        return 1

    logger.info(
        "nightly_backup_finished",
        bundle=result.bundle_name,
        purged=result.purged_bundles,
        duration=result.duration_seconds,
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
