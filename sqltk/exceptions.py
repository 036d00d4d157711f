# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
SQL Toolkit Exceptions - Custom exceptions for the sqltk package.
"""


class ToolkitError(Exception):
    """Base exception for all sqltk errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ToolkitError):
    """Raised when configuration is invalid."""

    pass


class SqlCommandError(ToolkitError):
    """Raised when a SQL statement cannot be built from its parameters."""

    pass


class SqlExecutionError(ToolkitError):
    """Raised when the database engine or driver rejects a statement."""

    pass


class SqlTimeoutError(SqlExecutionError):
    """Raised when a statement exceeds the configured command timeout."""

    pass


class BackupError(ToolkitError):
    """Raised when backup operations fail."""

    pass


class RestoreError(ToolkitError):
    """Raised when restore operations fail."""

    pass


class DatabaseOfflineError(RestoreError):
    """
    Raised when a restore failed after the database was taken offline.

    The database is left OFFLINE and needs operator intervention.
    """

    pass


class ArchiveError(ToolkitError):
    """Raised when archive bundle or archive storage operations fail."""

    pass
