# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Bundle Compressor - ZIP packaging of backup files.

Backup files are often many gigabytes, so entries are streamed in chunks
in both directions and never held in memory. ZIP work is CPU-bound and
runs on a small thread pool to keep the event loop responsive.
"""

import asyncio
import contextlib
import os
import shutil
import threading
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, List, Sequence

from sqltk.exceptions import ArchiveError

# Thread pool for CPU-bound ZIP operations
_executor = ThreadPoolExecutor(max_workers=2)

CHUNK_SIZE = 1024 * 1024


def _copy_stream(source: BinaryIO, destination: BinaryIO, stop: threading.Event) -> None:
    while not stop.is_set():
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            return
        destination.write(chunk)
    raise ArchiveError("Bundle creation was cancelled")


async def compress_backup_files(
    bundle_path: Path,
    backup_files: Sequence[Path],
    logger: Any,
) -> List[str]:
    """
    Write one ZIP bundle containing every given backup file.

    Each entry is named after the file and keeps its last-write time.
    The caller is responsible for removing a partial bundle on failure.

    Args:
        bundle_path: Path of the bundle to create (overwritten)
        backup_files: Files to add, in order
        logger: structlog logger

    Returns:
        Names of the entries written
    """
    loop = asyncio.get_running_loop()
    stop = threading.Event()
    work = loop.run_in_executor(
        _executor,
        _compress_sync,
        bundle_path,
        list(backup_files),
        logger,
        stop,
    )
    try:
        return await asyncio.shield(work)
    except asyncio.CancelledError:
        # The worker holds the bundle open until it notices the stop flag
        stop.set()
        with contextlib.suppress(Exception):
            await work
        raise


def _compress_sync(
    bundle_path: Path,
    backup_files: List[Path],
    logger: Any,
    stop: threading.Event,
) -> List[str]:
    """Synchronous ZIP creation."""
    names: List[str] = []

    with zipfile.ZipFile(bundle_path, "w", compression=zipfile.ZIP_DEFLATED, allowZip64=True) as bundle:
        for backup_file in backup_files:
            started = time.monotonic()
            logger.debug("backup_file_compressing", file=backup_file.name)

            info = zipfile.ZipInfo.from_file(
                backup_file, arcname=backup_file.name, strict_timestamps=False
            )
            info.compress_type = zipfile.ZIP_DEFLATED

            with open(backup_file, "rb") as source, bundle.open(info, "w", force_zip64=True) as entry:
                _copy_stream(source, entry, stop)

            names.append(backup_file.name)
            logger.info(
                "backup_file_compressed",
                file=backup_file.name,
                size=info.file_size,
                elapsed_ms=int((time.monotonic() - started) * 1000),
            )

    return names


async def extract_bundle(bundle_path: Path, destination: Path, logger: Any) -> List[Path]:
    """
    Extract every entry of a bundle into a directory.

    Existing files are overwritten and each file gets its entry's
    timestamp back as modification time.

    Raises:
        ArchiveError: If the bundle is not a valid ZIP file or an entry
            name contains a path
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        _executor,
        _extract_sync,
        bundle_path,
        destination,
        logger,
    )


def _extract_sync(bundle_path: Path, destination: Path, logger: Any) -> List[Path]:
    """Synchronous ZIP extraction."""
    extracted: List[Path] = []

    try:
        with zipfile.ZipFile(bundle_path, "r") as bundle:
            members = bundle.infolist()

            # Security: entries are flat file names, never paths
            for member in members:
                name = member.filename
                if not name or "/" in name or "\\" in name or name in (".", ".."):
                    raise ArchiveError(
                        f"Unsafe entry in bundle: {name!r}",
                        details={"bundle_path": str(bundle_path)},
                    )

            for member in members:
                target = destination / member.filename
                with bundle.open(member, "r") as entry, open(target, "wb") as output:
                    shutil.copyfileobj(entry, output, CHUNK_SIZE)

                modified = datetime(*member.date_time).timestamp()
                os.utime(target, (modified, modified))

                extracted.append(target)
                logger.debug("backup_file_extracted", file=member.filename, size=member.file_size)

    except zipfile.BadZipFile as e:
        raise ArchiveError(
            f"Invalid bundle: {e}",
            details={"bundle_path": str(bundle_path)},
        ) from e

    return extracted
