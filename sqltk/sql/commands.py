# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Command Builder - Statements for backup, file-list and restore.

Every function here is pure: it turns a database name and paths into a
SqlStatement and performs no I/O. Values that T-SQL accepts as variables
are bound as named parameters; identifiers (ALTER DATABASE) and MOVE
clauses cannot be parameterized and are quoted instead.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Dict, Iterable, List, Tuple

from sqltk.exceptions import SqlCommandError

_PARAMETER_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_WINDOWS_PATH = re.compile(r"^([A-Za-z]:|\\\\)")

# Large enough for any server-side path or database name
PARAMETER_TYPE = "NVARCHAR(4000)"


@dataclass(frozen=True)
class SqlStatement:
    """
    A SQL statement plus its named parameters.

    Parameters are referenced in the text as @name and are validated when
    the statement is created, never at execution time.
    """

    text: str
    parameters: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise SqlCommandError("SQL statement text is empty")

        for name, value in self.parameters.items():
            if not _PARAMETER_NAME.match(name):
                raise SqlCommandError(
                    f"Invalid parameter name: {name!r}",
                    details={"sql": self.text},
                )
            if not isinstance(value, str) or not value:
                raise SqlCommandError(
                    f"Parameter @{name} must be a non-empty string",
                    details={"sql": self.text, "value": value},
                )
            if not re.search(rf"@{name}\b", self.text):
                raise SqlCommandError(
                    f"Parameter @{name} is not referenced by the statement",
                    details={"sql": self.text},
                )


@dataclass(frozen=True)
class FilePair:
    """One row of a backup's file list, with the path it is restored to."""

    logical_name: str
    physical_name: str
    move_to_path: str


def quote_identifier(name: str) -> str:
    """Bracket-quote a SQL Server identifier."""
    return "[" + name.replace("]", "]]") + "]"


def quote_unicode_literal(value: str) -> str:
    """Quote a value as an N'...' literal."""
    return "N'" + value.replace("'", "''") + "'"


def _require(value: str, what: str) -> str:
    if not isinstance(value, (str, Path)) or not str(value).strip():
        raise SqlCommandError(f"{what} must not be empty")
    return str(value)


def resolve_move_path(physical_name: str, restore_directory: str | Path) -> str:
    """
    Map a file from a backup's file list into the restore directory.

    The original directory is dropped and the file name kept. Physical
    names recorded by a Windows server use backslashes, so the file name
    is taken with Windows rules (which also accept forward slashes). The
    result is joined with the restore directory's own separator style.
    """
    file_name = PureWindowsPath(physical_name).name
    if not file_name:
        raise SqlCommandError(
            "Physical file name has no file component",
            details={"physical_name": physical_name},
        )

    directory = str(restore_directory)
    if _WINDOWS_PATH.match(directory) or "\\" in directory:
        return str(PureWindowsPath(directory) / file_name)
    return str(PurePosixPath(directory) / file_name)


def build_backup_statement(database_name: str, backup_file_path: str | Path) -> SqlStatement:
    """Full backup of one database to a disk file."""
    database_name = _require(database_name, "Database name")
    backup_file_path = _require(backup_file_path, "Backup file path")

    text = (
        "BACKUP DATABASE @databaseName"
        " TO DISK = @backupFilePath WITH NOFORMAT"
        ", NAME = @description"
        ", NOINIT"
        ", SKIP"
        ", NOREWIND"
        ", NOUNLOAD"
        ", STATS = 10"
    )
    return SqlStatement(
        text,
        {
            "databaseName": database_name,
            "backupFilePath": backup_file_path,
            "description": f"{database_name} - full backup",
        },
    )


def build_file_list_statement(backup_file_path: str | Path) -> SqlStatement:
    """List the data and log files contained in a backup."""
    backup_file_path = _require(backup_file_path, "Backup file path")
    return SqlStatement(
        "RESTORE FILELISTONLY FROM DISK = @backupFilePath",
        {"backupFilePath": backup_file_path},
    )


def build_offline_statement(database_name: str) -> SqlStatement:
    """Take a database offline, rolling back open transactions."""
    database_name = _require(database_name, "Database name")
    return SqlStatement(
        f"ALTER DATABASE {quote_identifier(database_name)} SET OFFLINE WITH ROLLBACK IMMEDIATE"
    )


def build_online_statement(database_name: str) -> SqlStatement:
    database_name = _require(database_name, "Database name")
    return SqlStatement(f"ALTER DATABASE {quote_identifier(database_name)} SET ONLINE")


def build_restore_statement(
    database_name: str,
    backup_file_path: str | Path,
    file_pairs: Iterable[FilePair],
) -> SqlStatement:
    """
    Restore a database over itself, relocating every file.

    One MOVE clause is emitted per file pair, in file-list order.
    """
    database_name = _require(database_name, "Database name")
    backup_file_path = _require(backup_file_path, "Backup file path")

    parts: List[str] = [
        "RESTORE DATABASE @databaseName",
        " FROM DISK = @backupFilePath WITH REPLACE",
        ", NOUNLOAD",
        ", STATS = 5",
    ]
    for pair in file_pairs:
        logical_name = _require(pair.logical_name, "Logical file name")
        move_to_path = _require(pair.move_to_path, "MOVE target path")
        parts.append(
            f", MOVE {quote_unicode_literal(logical_name)} TO {quote_unicode_literal(move_to_path)}"
        )

    return SqlStatement(
        "".join(parts),
        {"databaseName": database_name, "backupFilePath": backup_file_path},
    )


def render_batch(statement: SqlStatement) -> Tuple[str, Tuple[str, ...]]:
    """
    Render a statement as an ODBC batch with positional markers.

    Each named parameter becomes a declared variable initialised from a
    '?' marker, so the statement text keeps its @name references:

        SET NOCOUNT ON;
        DECLARE @backupFilePath NVARCHAR(4000) = ?;
        RESTORE FILELISTONLY FROM DISK = @backupFilePath

    Returns:
        Tuple of (batch_text, positional_values)
    """
    lines = ["SET NOCOUNT ON;"]
    values: List[str] = []
    for name, value in statement.parameters.items():
        lines.append(f"DECLARE @{name} {PARAMETER_TYPE} = ?;")
        values.append(value)
    lines.append(statement.text)
    return "\n".join(lines), tuple(values)
