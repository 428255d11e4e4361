"""
OTA Sync Server - Archive Summary Model

Dataclass for the result of the pre-flight pass over a source archive.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class ArchiveSummary:
    """
    What the server knows about a source archive before streaming from it
    """
    path: Path
    fingerprint: str  # SHA-1 hex of the archive file bytes
    entry_count: int
    regular_file_count: int  # Number of counter values the archive assigns
    size: int  # Archive file size in bytes
