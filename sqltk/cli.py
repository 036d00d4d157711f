# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command line entry points.

    sqltk backup  [--config appsettings.json] [--verbose]
    sqltk restore [--config appsettings.json] [--verbose]

Without --config the options are read from SQLTK_* environment variables.
Exit status is 0 on success and 1 on any failure, so the commands can be
scheduled directly (cron, systemd timers, Task Scheduler).
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from sqltk.config import ToolkitConfig
from sqltk.core import (
    BackupRunResult,
    RestoreRunResult,
    initialize_toolkit_state,
    run_backup,
    run_restore,
)
from sqltk.env import create_config_from_env, load_config_file

app = typer.Typer(
    help="Back up, archive and restore SQL Server databases.",
    no_args_is_help=True,
)


def configure_logging(verbose: bool = False) -> None:
    """Render structlog events to stderr; --verbose includes debug events."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _load_config(config_file: Optional[Path]) -> ToolkitConfig:
    if config_file is not None:
        return load_config_file(config_file)
    return create_config_from_env()


async def _backup(config: ToolkitConfig) -> BackupRunResult:
    state = await initialize_toolkit_state(config)
    return await run_backup(config, state)


async def _restore(config: ToolkitConfig) -> RestoreRunResult:
    state = await initialize_toolkit_state(config)
    return await run_restore(config, state)


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    envvar="SQLTK_CONFIG_FILE",
    help="JSON settings file with a SqlDatabaseOptions section",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Include debug events in the log")


@app.command()
def backup(
    config_file: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """
    Back up every configured database, then archive the backup files.
    """
    configure_logging(verbose)
    logger = structlog.get_logger()

    try:
        config = _load_config(config_file)
        result = asyncio.run(_backup(config))
    except Exception as e:
        logger.error("backup_command_failed", error=str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Backed up {len(result.databases)} database(s)")
    if result.bundle_name:
        typer.echo(f"Archived bundle {result.bundle_name}")
    for name in result.purged_bundles:
        typer.echo(f"Purged bundle {name}")


@app.command()
def restore(
    config_file: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """
    Fetch the latest archived bundle, then restore every configured database.
    """
    configure_logging(verbose)
    logger = structlog.get_logger()

    try:
        config = _load_config(config_file)
        result = asyncio.run(_restore(config))
    except Exception as e:
        logger.error("restore_command_failed", error=str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if result.bundle_name:
        typer.echo(f"Extracted bundle {result.bundle_name}")
    typer.echo(f"Restored {len(result.databases)} database(s)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
