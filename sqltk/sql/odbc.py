# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
ODBC Executor - Run statements against SQL Server through aioodbc.

BACKUP and RESTORE cannot run inside a user transaction, so every
connection is opened in autocommit mode. Both statements report progress
(STATS = n) as informational messages; the batch is only complete once
every pending result set has been consumed with nextset(), otherwise the
server may still be working when the connection is closed and late
errors would be lost.

The command timeout is enforced by the driver (SQL_ATTR_QUERY_TIMEOUT via
pyodbc's Connection.timeout), which aborts the statement on the server.
If the driver does not return within a grace period after that, or the
calling task is cancelled, the statement is cancelled explicitly and the
worker thread is awaited before the cursor and connection are closed.
"""

import asyncio
import contextlib
import time
from typing import Any, Dict, List

import aioodbc
import pyodbc
import structlog

from sqltk.exceptions import SqlExecutionError, SqlTimeoutError
from sqltk.sql.commands import SqlStatement, render_batch

# SQLSTATE reported by the driver when the query timeout expires
QUERY_TIMEOUT_SQLSTATE = "HYT00"

# Extra time the driver gets to honour its own timeout before the
# statement is cancelled from the client side
CANCEL_GRACE_SECONDS = 5.0


def _is_query_timeout(error: pyodbc.Error) -> bool:
    return bool(error.args) and error.args[0] == QUERY_TIMEOUT_SQLSTATE


class OdbcExecutor:
    """SqlExecutor opening one autocommit connection per call."""

    def __init__(
        self,
        connection_string: str,
        command_timeout_seconds: int,
        *,
        logger: Any = None,
    ) -> None:
        self._dsn = connection_string
        self._timeout = command_timeout_seconds
        self._logger = logger or structlog.get_logger()

    async def execute(self, statement: SqlStatement) -> int:
        return await self._run(statement, fetch=False)

    async def query(self, statement: SqlStatement) -> List[Dict[str, Any]]:
        return await self._run(statement, fetch=True)

    async def _set_query_timeout(self, connection: pyodbc.Connection) -> None:
        """after_created hook: applies to every cursor of the connection."""
        connection.timeout = self._timeout

    async def _run(self, statement: SqlStatement, fetch: bool) -> Any:
        batch, values = render_batch(statement)
        started = time.monotonic()

        try:
            # timeout= is the login timeout; the query timeout is set by the hook
            async with aioodbc.connect(
                dsn=self._dsn,
                autocommit=True,
                timeout=self._timeout,
                after_created=self._set_query_timeout,
            ) as conn:
                async with conn.cursor() as cursor:
                    result = await self._execute_with_cancel(cursor, batch, values, fetch)
        except asyncio.TimeoutError as e:
            raise SqlTimeoutError(
                f"Statement exceeded {self._timeout}s command timeout and was cancelled",
                details={"sql": statement.text},
            ) from e
        except pyodbc.Error as e:
            if _is_query_timeout(e):
                raise SqlTimeoutError(
                    f"Statement exceeded {self._timeout}s command timeout",
                    details={"sql": statement.text},
                ) from e
            raise SqlExecutionError(
                f"Statement failed: {e}",
                details={"sql": statement.text},
            ) from e

        self._logger.debug(
            "sql_statement_executed",
            sql=statement.text,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
        return result

    async def _execute_with_cancel(self, cursor: Any, batch: str, values: tuple, fetch: bool) -> Any:
        pending = asyncio.ensure_future(self._execute_batch(cursor, batch, values, fetch))
        try:
            return await asyncio.wait_for(
                asyncio.shield(pending),
                timeout=self._timeout + CANCEL_GRACE_SECONDS,
            )
        except (asyncio.TimeoutError, asyncio.CancelledError):
            # The batch is still running in a worker thread. Abort it on the
            # server and wait for the thread before the cursor is closed.
            # aioodbc exposes no cancel(); the pyodbc cursor is thread-safe for it.
            cursor._impl.cancel()
            with contextlib.suppress(pyodbc.Error):
                await pending
            raise

    @staticmethod
    async def _execute_batch(cursor: Any, batch: str, values: tuple, fetch: bool) -> Any:
        await cursor.execute(batch, *values)

        if not fetch:
            rowcount = cursor.rowcount
            while await cursor.nextset():
                pass
            return rowcount

        # Skip result sets without columns (row counts, messages)
        while cursor.description is None:
            if not await cursor.nextset():
                return []

        columns = [column[0] for column in cursor.description]
        rows = [dict(zip(columns, row)) for row in await cursor.fetchall()]
        while await cursor.nextset():
            pass
        return rows
