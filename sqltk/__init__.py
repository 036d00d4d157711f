# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Database Toolkit - Scheduled backup, archive and restore for SQL Server.

Issues native full backups of a set of databases, packs the backup files
into timestamped ZIP bundles kept in an archive location with a bounded
number of generations, and restores databases from the latest bundle onto
a new file layout. Package name: sqltk.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from sqltk.builder import create_config

# Core functions
from sqltk.core import (
    initialize_toolkit_state,
    run_backup,
    run_restore,
)

# Environment-based and settings-file configuration
from sqltk.env import (
    create_config_from_env,
    load_config_file,
)

__all__ = [
    # Version
    "__version__",
    # Configuration creation (primary user-facing APIs)
    "create_config",
    "create_config_from_env",
    "load_config_file",
    # Core orchestration functions
    "initialize_toolkit_state",
    "run_backup",
    "run_restore",
]
