# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so that a backup
or restore run always sees the same options from start to finish.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import re

# Number of archive generations kept after every upload
RETENTION_COUNT = 3

DEFAULT_COMMAND_TIMEOUT_SECONDS = 60
DEFAULT_ARCHIVE_PREFIX = "Backup_"

_INVALID_NAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


@dataclass(frozen=True)
class DatabaseSpec:
    """A database to back up and restore."""

    name: str

    @property
    def backup_file_name(self) -> str:
        return f"{self.name}.bak"

    def resolve_backup_path(self, directory: Path | str) -> Path:
        """Return the on-disk path of this database's backup file."""
        return Path(directory) / self.backup_file_name


def _validate_database_name(name: str) -> bool:
    """
    Validate a database name.

    The name doubles as a backup file name, so path separators and
    characters that are not valid in file names are rejected.
    """
    if not isinstance(name, str) or not name.strip():
        return False
    if name in (".", ".."):
        return False
    return not _INVALID_NAME_CHARS.search(name)


def _validate_archive_prefix(prefix: str) -> bool:
    """Archive prefixes may be empty but must not contain digits or separators."""
    if not isinstance(prefix, str):
        return False
    return not re.search(r"[\d\\/]", prefix)


@dataclass(frozen=True)
class ToolkitConfig:
    """
    Immutable configuration for backup and restore runs.

    Frozen after creation; use with_updates() to derive a modified copy.
    """

    # ODBC connection string of the target server
    connection_string: str

    # Directory the server writes .bak files to (and restores read from)
    backup_directory: Path

    # Directory restored data and log files are moved to
    restore_directory: Path

    # Databases to process, in order
    databases: List[DatabaseSpec] = field(default_factory=list)

    # Archive location: local directory or s3://bucket/prefix. Empty disables archiving.
    archive_directory: str = ""

    # Timeout applied to every SQL statement
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS

    # Bundle file name prefix ("Backup_" -> Backup_yyyyMMddHHmm.zip)
    archive_prefix: str = DEFAULT_ARCHIVE_PREFIX

    # Region used for s3:// archive locations
    archive_region: str | None = None

    # Account given ownership of prepared backup/restore directories
    sql_server_account: str | None = None

    # Try SET ONLINE once when a restore fails after SET OFFLINE
    force_online_on_failure: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not self.connection_string or not str(self.connection_string).strip():
            errors.append("connection_string is required")

        if not str(self.backup_directory or "").strip():
            errors.append("backup_directory is required")

        if not str(self.restore_directory or "").strip():
            errors.append("restore_directory is required")

        if not self.databases:
            errors.append("databases must contain at least one database")
        else:
            seen = set()
            for database in self.databases:
                name = getattr(database, "name", None)
                if not _validate_database_name(name):
                    errors.append(f"Invalid database name: {name!r}")
                    continue
                if name.lower() in seen:
                    errors.append(f"Duplicate database name: {name}")
                seen.add(name.lower())

        if not isinstance(self.command_timeout_seconds, int) or self.command_timeout_seconds <= 0:
            errors.append(
                f"command_timeout_seconds must be > 0, got {self.command_timeout_seconds}"
            )

        if not _validate_archive_prefix(self.archive_prefix):
            errors.append(f"Invalid archive_prefix: {self.archive_prefix!r}")

        if errors:
            from sqltk.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

        # Normalize paths given as strings
        object.__setattr__(self, "backup_directory", Path(self.backup_directory))
        object.__setattr__(self, "restore_directory", Path(self.restore_directory))
        object.__setattr__(self, "databases", list(self.databases))

    @property
    def archive_enabled(self) -> bool:
        return bool(self.archive_directory and self.archive_directory.strip())

    def with_updates(self, **kwargs) -> "ToolkitConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import replace

        return replace(self, **kwargs)
