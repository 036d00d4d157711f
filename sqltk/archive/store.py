# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive File Store - Bundle, upload, purge and fetch backup files.

After a backup run the .bak files of the configured databases are packed
into one ZIP bundle in the backup directory, the bundle is put in archive
storage and the local copy is removed. Archive storage then keeps only
the RETENTION_COUNT most recent generations.

Before a restore run the most recent bundle is fetched and extracted back
into the backup directory.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, List

from sqltk.archive.compressor import compress_backup_files, extract_bundle
from sqltk.archive.generation import (
    ArchiveGeneration,
    StoredBundle,
    order_newest_first,
    select_purge_victims,
)
from sqltk.backup.manager import list_backup_files
from sqltk.config import RETENTION_COUNT, ToolkitConfig
from sqltk.core import ToolkitState


@dataclass
class UploadResult:
    """Result of uploading one bundle."""

    generation: ArchiveGeneration
    archived_files: List[str] = field(default_factory=list)
    purged_bundles: List[str] = field(default_factory=list)

    @property
    def bundle_name(self) -> str:
        return self.generation.file_name


@dataclass
class DownloadResult:
    """Result of fetching and extracting the latest bundle."""

    bundle_name: str
    extracted_files: List[str] = field(default_factory=list)


def _delete_safely(path: Path, logger: Any) -> None:
    """Delete an obsolete temporary file, ignoring failures."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("stale_file_delete_failed", path=str(path), error=str(e))


async def upload_archive(
    config: ToolkitConfig,
    state: ToolkitState,
    timestamp: datetime,
) -> UploadResult | None:
    """
    Compress the backup files, upload the bundle and purge old generations.

    Args:
        config: Toolkit configuration
        state: Runtime state
        timestamp: Time the bundle is named after (minute resolution)

    Returns:
        UploadResult, or None when archiving is disabled
    """
    logger = state["logger"]
    storage = state["archive_storage"]

    if storage is None:
        logger.info("archive_upload_skipped", reason="archive_directory_not_configured")
        return None

    generation = ArchiveGeneration.for_timestamp(timestamp, config.archive_prefix)
    bundle_path = config.backup_directory / generation.file_name
    backup_files = list_backup_files(config)

    # A bundle left over from a failed run in the same minute is rebuilt
    _delete_safely(bundle_path, logger)

    try:
        archived = await compress_backup_files(bundle_path, backup_files, logger)
        logger.info("bundle_created", bundle=generation.file_name, files=len(archived))
    except BaseException as e:
        logger.error("bundle_creation_failed", bundle=generation.file_name, error=repr(e))
        _delete_safely(bundle_path, logger)
        raise

    try:
        await storage.put(bundle_path, generation.file_name)
        logger.info("bundle_uploaded", bundle=generation.file_name, location=storage.location)
    finally:
        _delete_safely(bundle_path, logger)

    purged = await purge_archives(config, state)

    return UploadResult(generation=generation, archived_files=archived, purged_bundles=purged)


async def purge_archives(config: ToolkitConfig, state: ToolkitState) -> List[str]:
    """
    Delete every stored bundle beyond the RETENTION_COUNT most recent.

    Deletion failures propagate.

    Returns:
        Names of the deleted bundles
    """
    logger = state["logger"]
    storage = state["archive_storage"]

    bundles = await storage.list_bundles()
    victims = select_purge_victims(bundles, RETENTION_COUNT)

    purged: List[str] = []
    for victim in victims:
        await storage.delete(victim.name)
        purged.append(victim.name)
        logger.info(
            "bundle_purged",
            bundle=victim.name,
            modified_at=victim.modified_at.isoformat(),
            location=storage.location,
        )

    logger.debug("archive_purge_complete", kept=len(bundles) - len(purged), purged=len(purged))
    return purged


async def find_latest_bundle(state: ToolkitState) -> StoredBundle | None:
    """Return the most recently modified stored bundle, if any."""
    bundles = await state["archive_storage"].list_bundles()
    ordered = order_newest_first(bundles)
    return ordered[0] if ordered else None


async def download_archive(config: ToolkitConfig, state: ToolkitState) -> DownloadResult | None:
    """
    Fetch the most recent bundle and extract it into the backup directory.

    Existing backup files of the same name are overwritten.

    Returns:
        DownloadResult, or None when archiving is disabled or no bundle exists
    """
    logger = state["logger"]
    storage = state["archive_storage"]

    if storage is None:
        logger.info("archive_download_skipped", reason="archive_directory_not_configured")
        return None

    await storage.ensure_ready()
    config.backup_directory.mkdir(parents=True, exist_ok=True)

    latest = await find_latest_bundle(state)
    if latest is None:
        logger.info("archive_download_skipped", reason="no_bundle_found", location=storage.location)
        return None

    bundle_path = config.backup_directory / latest.name
    try:
        await storage.get(latest.name, bundle_path)
        extracted = await extract_bundle(bundle_path, config.backup_directory, logger)
    finally:
        _delete_safely(bundle_path, logger)

    logger.info(
        "bundle_extracted",
        bundle=latest.name,
        files=len(extracted),
        backup_directory=str(config.backup_directory),
    )
    return DownloadResult(bundle_name=latest.name, extracted_files=[path.name for path in extracted])
