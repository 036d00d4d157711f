# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive File Store - Compressed, generation-bounded offsite copies of backups.
"""

from sqltk.archive.generation import (
    ArchiveGeneration,
    StoredBundle,
    order_newest_first,
    select_purge_victims,
)

from sqltk.archive.storage import (
    ArchiveStorage,
    LocalArchiveStorage,
    S3ArchiveStorage,
    open_archive_storage,
)

from sqltk.archive.store import (
    DownloadResult,
    UploadResult,
    download_archive,
    find_latest_bundle,
    purge_archives,
    upload_archive,
)

__all__ = [
    # Generations
    "ArchiveGeneration",
    "StoredBundle",
    "order_newest_first",
    "select_purge_victims",
    # Storage backends
    "ArchiveStorage",
    "LocalArchiveStorage",
    "S3ArchiveStorage",
    "open_archive_storage",
    # Store operations
    "DownloadResult",
    "UploadResult",
    "download_archive",
    "find_latest_bundle",
    "purge_archives",
    "upload_archive",
]
