# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for the SQL toolkit.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_missing_env(variable: str) -> str:
    """
    Explain that a required environment variable is missing.
    """

    return (
        f"{variable} is not set. "
        "Set the environment variable or pass the value to create_config()."
    )


def explain_missing_databases() -> str:
    """
    Explain that at least one database must be configured.
    """

    return (
        "No databases are configured. "
        "Set SQLTK_DATABASES to a comma-separated list of database names, "
        "or pass databases=[\"Sales\", ...] to create_config()."
    )


def explain_invalid_timeout_env(
    value: str | None, variable: str = "SQLTK_COMMAND_TIMEOUT_SECONDS"
) -> str:
    """
    Explain that a command timeout setting is invalid.
    """

    return (
        f"Invalid {variable} value: {value!r}. "
        "It must be a positive integer number of seconds."
    )


def explain_invalid_bool_env(variable: str, value: str | None) -> str:
    """
    Explain that a boolean environment variable could not be parsed.
    """

    return (
        f"Invalid {variable} value: {value!r}. "
        "Expected one of: 'true', 'false', '1', '0', 'yes', 'no'."
    )


def explain_unreadable_config_file(path: str, reason: str) -> str:
    """
    Explain that a JSON settings file could not be used.
    """

    return (
        f"Cannot read settings file {path!r}: {reason}. "
        "Expected a JSON document with a \"SqlDatabaseOptions\" section."
    )
