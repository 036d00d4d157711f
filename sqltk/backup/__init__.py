# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Full backups and relocating restores.
"""

from sqltk.backup.manager import (
    BackupResult,
    backup_database,
    backup_databases,
    list_backup_files,
    prepare_directory,
)

from sqltk.backup.restore import (
    DatabaseState,
    RestoreResult,
    get_file_pairs,
    restore_database,
    restore_databases,
)

__all__ = [
    # Manager
    "BackupResult",
    "backup_database",
    "backup_databases",
    "list_backup_files",
    "prepare_directory",
    # Restore
    "DatabaseState",
    "RestoreResult",
    "get_file_pairs",
    "restore_database",
    "restore_databases",
]
