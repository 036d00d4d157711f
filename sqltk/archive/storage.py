# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive Storage - Where finished bundles are kept.

Two backends share one contract:

- LocalArchiveStorage: a directory (local disk, mounted share)
- S3ArchiveStorage: s3://bucket/prefix via aiobotocore

Both list only names that parse as bundles of the configured prefix, and
report each bundle's last-modified time for retention ordering.
"""

from datetime import datetime, UTC
from pathlib import Path
from typing import Any, List, Protocol, Tuple
from urllib.parse import urlparse

import aiofiles
import aiofiles.os
import structlog

from sqltk.archive.generation import ArchiveGeneration, StoredBundle
from sqltk.config import ToolkitConfig
from sqltk.exceptions import ArchiveError

CHUNK_SIZE = 1024 * 1024

# S3 multipart part size (minimum 5 MiB except for the last part)
PART_SIZE = 64 * 1024 * 1024


class ArchiveStorage(Protocol):
    """Protocol for archive storage backends."""

    @property
    def location(self) -> str:
        ...

    async def ensure_ready(self) -> None:
        """Create the location if needed."""
        ...

    async def list_bundles(self) -> List[StoredBundle]:
        """List stored bundles of the configured prefix, in no particular order."""
        ...

    async def put(self, source: Path, name: str) -> None:
        """Store a local file under `name`, replacing any existing bundle."""
        ...

    async def get(self, name: str, destination: Path) -> None:
        """Fetch bundle `name` into a local file."""
        ...

    async def delete(self, name: str) -> None:
        ...


async def _copy_file(source: Path, destination: Path) -> None:
    """Stream a file to another path in chunks."""
    async with aiofiles.open(source, "rb") as src, aiofiles.open(destination, "wb") as dst:
        while True:
            chunk = await src.read(CHUNK_SIZE)
            if not chunk:
                break
            await dst.write(chunk)


class LocalArchiveStorage:
    """Bundles stored in a directory."""

    def __init__(self, directory: Path | str, prefix: str = "", logger: Any = None) -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self._logger = logger or structlog.get_logger()

    @property
    def location(self) -> str:
        return str(self.directory)

    async def ensure_ready(self) -> None:
        await aiofiles.os.makedirs(self.directory, exist_ok=True)

    async def list_bundles(self) -> List[StoredBundle]:
        if not await aiofiles.os.path.isdir(self.directory):
            return []

        bundles: List[StoredBundle] = []
        for name in await aiofiles.os.listdir(self.directory):
            generation = ArchiveGeneration.parse(name, self.prefix)
            if generation is None:
                continue
            path = self.directory / name
            if not await aiofiles.os.path.isfile(path):
                continue
            stat = await aiofiles.os.stat(path)
            bundles.append(
                StoredBundle(
                    name=name,
                    generation=generation,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, UTC),
                    size=stat.st_size,
                )
            )
        return bundles

    async def put(self, source: Path, name: str) -> None:
        await self.ensure_ready()
        destination = self.directory / name

        if await aiofiles.os.path.exists(destination):
            await aiofiles.os.remove(destination)

        try:
            await _copy_file(source, destination)
        except BaseException:
            # Never leave a truncated bundle that looks like the newest generation
            if await aiofiles.os.path.exists(destination):
                await aiofiles.os.remove(destination)
            raise

        self._logger.debug("bundle_stored", location=self.location, bundle=name)

    async def get(self, name: str, destination: Path) -> None:
        await _copy_file(self.directory / name, destination)

    async def delete(self, name: str) -> None:
        await aiofiles.os.remove(self.directory / name)


def parse_s3_location(location: str) -> Tuple[str, str]:
    """
    Split s3://bucket/some/prefix into ("bucket", "some/prefix/").

    Raises:
        ArchiveError: If the location has no bucket
    """
    parsed = urlparse(location)
    if parsed.scheme != "s3" or not parsed.netloc:
        raise ArchiveError(f"Invalid S3 archive location: {location!r}")
    key_prefix = parsed.path.strip("/")
    return parsed.netloc, f"{key_prefix}/" if key_prefix else ""


class S3ArchiveStorage:
    """Bundles stored as objects under an S3 key prefix."""

    def __init__(
        self,
        location: str,
        prefix: str = "",
        region: str | None = None,
        session: Any = None,
        logger: Any = None,
    ) -> None:
        from aiobotocore.session import get_session

        self.bucket, self.key_prefix = parse_s3_location(location)
        self.prefix = prefix
        self.region = region
        self._session = session or get_session()
        self._logger = logger or structlog.get_logger()

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{self.key_prefix}"

    def _client(self) -> Any:
        return self._session.create_client("s3", region_name=self.region)

    def _key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    async def ensure_ready(self) -> None:
        # Buckets are provisioned outside the toolkit; fail early if missing
        async with self._client() as s3_client:
            try:
                await s3_client.head_bucket(Bucket=self.bucket)
            except Exception as e:
                raise ArchiveError(
                    f"Archive bucket is not accessible: {e}",
                    details={"bucket": self.bucket},
                ) from e

    async def list_bundles(self) -> List[StoredBundle]:
        bundles: List[StoredBundle] = []

        async with self._client() as s3_client:
            paginator = s3_client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=self.key_prefix):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(self.key_prefix):]
                    if "/" in name:
                        continue
                    generation = ArchiveGeneration.parse(name, self.prefix)
                    if generation is None:
                        continue
                    bundles.append(
                        StoredBundle(
                            name=name,
                            generation=generation,
                            modified_at=obj["LastModified"],
                            size=obj.get("Size", 0),
                        )
                    )
        return bundles

    async def put(self, source: Path, name: str) -> None:
        """Upload with a multipart upload so bundles are streamed, not buffered."""
        key = self._key(name)

        async with self._client() as s3_client:
            await s3_client.delete_object(Bucket=self.bucket, Key=key)

            upload = await s3_client.create_multipart_upload(Bucket=self.bucket, Key=key)
            upload_id = upload["UploadId"]
            parts: List[dict] = []

            try:
                async with aiofiles.open(source, "rb") as src:
                    part_number = 1
                    while True:
                        chunk = await src.read(PART_SIZE)
                        if not chunk and parts:
                            break
                        response = await s3_client.upload_part(
                            Bucket=self.bucket,
                            Key=key,
                            PartNumber=part_number,
                            UploadId=upload_id,
                            Body=chunk,
                        )
                        parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                        if len(chunk) < PART_SIZE:
                            break
                        part_number += 1

                await s3_client.complete_multipart_upload(
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts},
                )
            except BaseException:
                await s3_client.abort_multipart_upload(
                    Bucket=self.bucket, Key=key, UploadId=upload_id
                )
                raise

        self._logger.debug("bundle_stored", location=self.location, bundle=name, parts=len(parts))

    async def get(self, name: str, destination: Path) -> None:
        async with self._client() as s3_client:
            response = await s3_client.get_object(Bucket=self.bucket, Key=self._key(name))
            async with response["Body"] as stream, aiofiles.open(destination, "wb") as dst:
                while True:
                    chunk = await stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await dst.write(chunk)

    async def delete(self, name: str) -> None:
        async with self._client() as s3_client:
            await s3_client.delete_object(Bucket=self.bucket, Key=self._key(name))


def open_archive_storage(
    config: ToolkitConfig,
    *,
    session: Any = None,
    logger: Any = None,
) -> ArchiveStorage | None:
    """
    Create the storage backend for config.archive_directory.

    Returns:
        None when archiving is disabled
    """
    if not config.archive_enabled:
        return None

    location = config.archive_directory.strip()
    if location.lower().startswith("s3://"):
        return S3ArchiveStorage(
            location,
            prefix=config.archive_prefix,
            region=config.archive_region,
            session=session,
            logger=logger,
        )
    return LocalArchiveStorage(location, prefix=config.archive_prefix, logger=logger)
