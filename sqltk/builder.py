# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Builder - Functional builder pattern for configuration.

This module provides pure functions for building ToolkitConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable

from sqltk.config import (
    DEFAULT_ARCHIVE_PREFIX,
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DatabaseSpec,
    ToolkitConfig,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "connection_string": "",
        "backup_directory": "",
        "restore_directory": "",
        "databases": [],
        "archive_directory": "",
        "command_timeout_seconds": DEFAULT_COMMAND_TIMEOUT_SECONDS,
        "archive_prefix": DEFAULT_ARCHIVE_PREFIX,
        "archive_region": None,
        "sql_server_account": None,
        "force_online_on_failure": False,
    }


def with_connection_string(config: ConfigDict, connection_string: str) -> ConfigDict:
    """
    Set the ODBC connection string of the target server.

    Args:
        config: Current configuration dictionary
        connection_string: e.g. "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db01;..."

    Returns:
        New configuration dictionary with the connection string set
    """
    return {**config, "connection_string": connection_string}


def with_backup_directory(config: ConfigDict, directory: Path | str) -> ConfigDict:
    """Set the directory .bak files are written to."""
    return {**config, "backup_directory": directory}


def with_restore_directory(config: ConfigDict, directory: Path | str) -> ConfigDict:
    """Set the directory restored data and log files are moved to."""
    return {**config, "restore_directory": directory}


def add_database(config: ConfigDict, name: str) -> ConfigDict:
    """
    Append a database to the list of databases to process.

    Args:
        config: Current configuration dictionary
        name: Database name

    Returns:
        New configuration dictionary with the database appended
    """
    return {**config, "databases": list(config["databases"]) + [DatabaseSpec(name)]}


def add_databases(config: ConfigDict, names: Iterable[str]) -> ConfigDict:
    """Append several databases, preserving order."""
    for name in names:
        config = add_database(config, name)
    return config


def archive_to(
    config: ConfigDict,
    location: Path | str,
    *,
    prefix: str | None = None,
    region: str | None = None,
) -> ConfigDict:
    """
    Enable archiving of backup bundles.

    Args:
        config: Current configuration dictionary
        location: Local directory or s3://bucket/prefix
        prefix: Bundle file name prefix (default "Backup_")
        region: AWS region for s3:// locations

    Returns:
        New configuration dictionary with archiving enabled
    """
    updated = {**config, "archive_directory": str(location)}
    if prefix is not None:
        updated["archive_prefix"] = prefix
    if region is not None:
        updated["archive_region"] = region
    return updated


def with_command_timeout(config: ConfigDict, seconds: int) -> ConfigDict:
    """Set the timeout applied to every SQL statement."""
    return {**config, "command_timeout_seconds": seconds}


def grant_directories_to(config: ConfigDict, account: str) -> ConfigDict:
    """Give the SQL Server service account ownership of prepared directories."""
    return {**config, "sql_server_account": account}


def force_online_on_failure(config: ConfigDict) -> ConfigDict:
    """
    Attempt SET ONLINE when a restore fails after SET OFFLINE.

    Off by default: a failed restore normally leaves the database
    OFFLINE for an operator to inspect.
    """
    return {**config, "force_online_on_failure": True}


def build_config(config_dict: ConfigDict) -> ToolkitConfig:
    """
    Build and validate the final immutable configuration.

    Raises:
        ConfigurationError: If validation fails
    """
    return ToolkitConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        setup = pipe(
            lambda c: with_connection_string(c, dsn),
            lambda c: add_database(c, "Sales"),
        )
        config_dict = setup(create_empty_config())
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def build_from_steps(*steps: BuilderFunc) -> ToolkitConfig:
    """Apply builder steps to an empty config and build it."""
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    connection_string: str,
    *,
    backup_directory: Path | str,
    restore_directory: Path | str,
    databases: Iterable[str],
    archive_directory: Path | str | None = None,
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    **kwargs: Any,
) -> ToolkitConfig:
    """
    Create toolkit configuration from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Args:
        connection_string: ODBC connection string (required)
        backup_directory: Directory for .bak files
        restore_directory: Directory restored files are moved to
        databases: Database names, processed in order
        archive_directory: Local directory or s3://bucket/prefix (optional)
        command_timeout_seconds: Per-statement timeout (default: 60)
        **kwargs: Additional configuration options

    Returns:
        Validated, immutable ToolkitConfig instance

    Example:
        config = create_config(
            "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db01;Trusted_Connection=yes",
            backup_directory="/var/opt/mssql/backup",
            restore_directory="/var/opt/mssql/data",
            databases=["Sales", "Inventory"],
            archive_directory="/mnt/offsite/sql",
        )
    """
    config_dict = create_empty_config()
    config_dict = with_connection_string(config_dict, connection_string)
    config_dict = with_backup_directory(config_dict, backup_directory)
    config_dict = with_restore_directory(config_dict, restore_directory)
    config_dict = add_databases(config_dict, databases)

    if archive_directory:
        config_dict = archive_to(config_dict, archive_directory)

    if command_timeout_seconds is not None:
        config_dict = with_command_timeout(config_dict, command_timeout_seconds)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
