"""
OTA Sync Client - Scan Result Models

Dataclasses describing the outcome of the local scan and of a full sync.

Author: OTA Sync Project
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class MissingEntry:
    """A regular file the reference directory could not supply"""
    counter: int  # Regular-file counter value (bit position in the bitmap)
    position: int  # Ordinal position of the entry in the archive
    name: str


@dataclass
class ScanResult:
    """
    Output of the local scan besides the staged partial archive
    """
    bitmap: bytes
    entry_count: int  # Entries in the index
    regular_file_count: int  # Counter values assigned
    missing: List[MissingEntry] = field(default_factory=list)
    any_requested: bool = False  # At least one bit is set, so a diff must be requested

    @property
    def missing_count(self) -> int:
        return len(self.missing)

    @property
    def satisfied_count(self) -> int:
        return self.regular_file_count - len(self.missing)


@dataclass
class SyncReport:
    """Summary of a completed sync"""
    destination: Path
    entry_count: int
    regular_file_count: int
    fetched_count: int
