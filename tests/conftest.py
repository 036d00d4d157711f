# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for sqltk tests.

Provides a recording SQL executor, moto-backed S3 fixtures, and test
configuration helpers.
"""

import io
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List

import pytest
import pytest_asyncio
import structlog

from sqltk.exceptions import SqlExecutionError
from sqltk.sql.commands import SqlStatement


class RecordingExecutor:
    """
    SqlExecutor double that records every statement.

    BACKUP statements write a small file at the requested path, the way
    the server would. FILELISTONLY queries answer from `file_lists`
    (keyed by backup path) or with one data and one log file named after
    the backup file.
    """

    def __init__(
        self,
        file_lists: Dict[str, List[Dict[str, Any]]] | None = None,
        fail_on: Callable[[SqlStatement], bool] | None = None,
        error: Exception | None = None,
        write_backups: bool = True,
    ) -> None:
        self.statements: List[SqlStatement] = []
        self.file_lists = file_lists or {}
        self.fail_on = fail_on
        self.error = error or SqlExecutionError("Statement failed: simulated engine error")
        self.write_backups = write_backups

    @property
    def texts(self) -> List[str]:
        return [statement.text for statement in self.statements]

    def _record(self, statement: SqlStatement) -> None:
        self.statements.append(statement)
        if self.fail_on is not None and self.fail_on(statement):
            raise self.error

    async def execute(self, statement: SqlStatement) -> int:
        self._record(statement)
        if self.write_backups and statement.text.startswith("BACKUP DATABASE"):
            path = Path(statement.parameters["backupFilePath"])
            path.write_bytes(f"{statement.parameters['databaseName']} full backup".encode())
        return -1

    async def query(self, statement: SqlStatement) -> List[Dict[str, Any]]:
        self._record(statement)
        backup_path = statement.parameters["backupFilePath"]
        if backup_path in self.file_lists:
            return self.file_lists[backup_path]
        stem = Path(backup_path).stem
        return [
            {"LogicalName": stem, "PhysicalName": f"C:\\SQLData\\{stem}.mdf", "Type": "D"},
            {"LogicalName": f"{stem}_log", "PhysicalName": f"C:\\SQLData\\{stem}_log.ldf", "Type": "L"},
        ]


def fails_on(fragment: str) -> Callable[[SqlStatement], bool]:
    """Predicate matching statements whose text contains `fragment`."""
    return lambda statement: fragment in statement.text


# ============================================================================
# moto S3
# ============================================================================


class MotoRawStream:
    """
    moto's response body behind the aiohttp-shaped interface aiobotocore reads.

    moto answers requests with plain botocore responses; aiobotocore awaits
    the body and reads streaming payloads through `raw.content.read(n)`.
    """

    def __init__(self, response) -> None:
        data = response.content
        self._body = io.BytesIO(data)
        self._size = len(data)
        self.url = response.url
        self.content = self

    async def read(self, amt: int = -1) -> bytes:
        return self._body.read(amt)

    def at_eof(self) -> bool:
        return self._body.tell() >= self._size

    def close(self) -> None:
        self._body.close()


@pytest.fixture
def aws_mock(monkeypatch) -> Generator[None, None, None]:
    """Route aiobotocore requests to moto for the duration of a test."""
    import aiobotocore.endpoint
    import moto
    from aiobotocore.awsrequest import AioAWSResponse

    convert = aiobotocore.endpoint.convert_to_response_dict

    async def convert_moto_response(http_response, operation_model):
        if not isinstance(http_response, AioAWSResponse):
            http_response = AioAWSResponse(
                http_response.url,
                http_response.status_code,
                http_response.headers,
                MotoRawStream(http_response),
            )
        return await convert(http_response, operation_model)

    monkeypatch.setattr(aiobotocore.endpoint, "convert_to_response_dict", convert_moto_response)
    # Plain bodies; moto cannot read aiobotocore's async aws-chunked payloads
    monkeypatch.setenv("AWS_REQUEST_CHECKSUM_CALCULATION", "when_required")
    monkeypatch.setenv("AWS_RESPONSE_CHECKSUM_VALIDATION", "when_required")

    with moto.mock_aws():
        yield


@pytest.fixture
def s3_session(aws_mock):
    from aiobotocore.session import get_session

    return get_session()


@pytest_asyncio.fixture
async def s3_client(s3_session):
    """
    Create a mock S3 client using moto, with an empty test-bucket.
    """
    async with s3_session.create_client(
        "s3",
        region_name="us-east-1",
        endpoint_url=None,
    ) as client:
        await client.create_bucket(Bucket="test-bucket")
        yield client


async def list_keys(client, bucket: str = "test-bucket") -> List[str]:
    response = await client.list_objects_v2(Bucket=bucket)
    return sorted(obj["Key"] for obj in response.get("Contents", []))


async def read_object(client, key: str, bucket: str = "test-bucket") -> bytes:
    response = await client.get_object(Bucket=bucket, Key=key)
    async with response["Body"] as stream:
        return await stream.read()


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path):
    """Create a test configuration with local archiving."""
    from sqltk.builder import create_config

    return create_config(
        "DRIVER={ODBC Driver 18 for SQL Server};SERVER=localhost;Trusted_Connection=yes",
        backup_directory=temp_dir / "backup",
        restore_directory=temp_dir / "data",
        databases=["Sales", "Inventory"],
        archive_directory=temp_dir / "archive",
    )


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest_asyncio.fixture
async def toolkit_state(test_config, executor: RecordingExecutor):
    """Create initialized toolkit state for testing."""
    from sqltk.core import initialize_toolkit_state

    state = await initialize_toolkit_state(test_config, executor=executor)
    yield state


def write_backup_files(directory: Path, contents: Dict[str, bytes]) -> Dict[str, Path]:
    """Write <name>.bak files into a directory."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = {}
    for name, data in contents.items():
        path = directory / f"{name}.bak"
        path.write_bytes(data)
        paths[name] = path
    return paths
