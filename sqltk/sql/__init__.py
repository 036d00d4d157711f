# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Layer - Statement building and execution against the target server.
"""

from typing import Any, Dict, List, Protocol

from sqltk.sql.commands import (
    FilePair,
    SqlStatement,
    build_backup_statement,
    build_file_list_statement,
    build_offline_statement,
    build_online_statement,
    build_restore_statement,
    render_batch,
    resolve_move_path,
)


class SqlExecutor(Protocol):
    """
    Protocol for executing statements against the target server.

    Implementations own the connection lifecycle of every call and apply
    the configured command timeout to each statement.
    """

    async def execute(self, statement: SqlStatement) -> int:
        """
        Execute a statement that returns no rows.

        Returns:
            Affected row count reported by the driver (-1 when unknown)
        """
        ...

    async def query(self, statement: SqlStatement) -> List[Dict[str, Any]]:
        """
        Execute a statement and return its first result set.

        Returns:
            One dict per row, keyed by column name
        """
        ...


def create_executor(
    connection_string: str,
    command_timeout_seconds: int,
    logger: Any = None,
) -> SqlExecutor:
    """Create the production executor for an ODBC connection string."""
    from sqltk.sql.odbc import OdbcExecutor

    return OdbcExecutor(connection_string, command_timeout_seconds, logger=logger)


__all__ = [
    "SqlExecutor",
    "SqlStatement",
    "FilePair",
    "create_executor",
    "build_backup_statement",
    "build_file_list_statement",
    "build_offline_statement",
    "build_online_statement",
    "build_restore_statement",
    "render_batch",
    "resolve_move_path",
]
