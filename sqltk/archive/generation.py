# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive generations - Identity and ordering of backup bundles.

A generation is the bundle produced by one upload, identified by its
minute-resolution timestamp. Its file name is derived from it
(`<prefix>yyyyMMddHHmm.zip`) and parsed back explicitly, so lookup and
retention never rely on file name shape alone.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

from sqltk.config import RETENTION_COUNT

TIMESTAMP_FORMAT = "%Y%m%d%H%M"
BUNDLE_EXTENSION = ".zip"


@dataclass(frozen=True, order=True)
class ArchiveGeneration:
    """One archive generation: a timestamp plus the bundle name prefix."""

    timestamp: datetime
    prefix: str = ""

    @classmethod
    def for_timestamp(cls, timestamp: datetime, prefix: str = "") -> "ArchiveGeneration":
        """Create the generation for a timestamp, truncated to the minute."""
        return cls(timestamp.replace(second=0, microsecond=0, tzinfo=None), prefix)

    @classmethod
    def parse(cls, file_name: str, prefix: str = "") -> "ArchiveGeneration | None":
        """
        Parse a bundle file name.

        Returns:
            The generation, or None if the name is not a bundle of this prefix
        """
        match = re.fullmatch(
            re.escape(prefix) + r"(\d{12})" + re.escape(BUNDLE_EXTENSION),
            file_name,
        )
        if not match:
            return None
        try:
            timestamp = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return cls(timestamp, prefix)

    @property
    def file_name(self) -> str:
        return f"{self.prefix}{self.timestamp.strftime(TIMESTAMP_FORMAT)}{BUNDLE_EXTENSION}"


@dataclass(frozen=True)
class StoredBundle:
    """A bundle present in archive storage."""

    name: str
    generation: ArchiveGeneration
    modified_at: datetime
    size: int = 0


def order_newest_first(bundles: Sequence[StoredBundle]) -> List[StoredBundle]:
    """Order bundles by modification time, newest first; generation breaks ties."""
    return sorted(
        bundles,
        key=lambda bundle: (bundle.modified_at.timestamp(), bundle.generation.timestamp),
        reverse=True,
    )


def select_purge_victims(
    bundles: Sequence[StoredBundle],
    keep: int = RETENTION_COUNT,
) -> List[StoredBundle]:
    """Return the bundles beyond the `keep` most recent ones."""
    return order_newest_first(bundles)[keep:]
