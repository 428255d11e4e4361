"""
OTA Sync Server - Archive Storage

This module handles the on-disk source archives:
- Archive root initialization
- Archive path resolution (request name -> file beneath the archive root)
- Pre-flight summary pass (fingerprint, entry and regular-file counts)

Source archives are read-only for the server. Index and diff requests
for the same archive are only consistent while the file stays unchanged,
which is what the fingerprint lets the diff handler verify.
"""

import logging
from pathlib import Path
from typing import BinaryIO

from otasync.common.archive_codec import (
    OpenArchiveReader, IterateEntries, RegularFileCounter
)
from otasync.common.content_hash import NewHasher, DEFAULT_CHUNK_SIZE
from otasync.server.models import ArchiveSummary

logger = logging.getLogger(__name__)


# ==================== Archive Root ====================

def InitializeArchiveRoot(archive_root: Path) -> None:
    """
    Make sure the archive root directory exists

    Args:
        archive_root: Directory holding the source archives
    """
    try:
        archive_root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Archive root directory ready: {archive_root.absolute()}")
    except Exception as e:
        logger.error(f"Failed to initialize archive root: {str(e)}")
        raise


def ResolveArchivePath(archive_name: str, archive_root: Path) -> Path:
    """
    Resolve a requested archive name to a file beneath the archive root

    Args:
        archive_name: Request path without the leading slash (e.g., "image-1234.tgz")
        archive_root: Directory holding the source archives

    Returns:
        Path: Absolute path of the archive file

    Raises:
        FileNotFoundError: If the name escapes the root or names no regular file
    """
    root = archive_root.resolve()
    candidate = (root / archive_name.lstrip("/")).resolve()

    if root not in candidate.parents:
        raise FileNotFoundError(f"Archive name outside archive root: {archive_name}")

    if not candidate.is_file():
        raise FileNotFoundError(f"Archive not found: {archive_name}")

    return candidate


# ==================== Pre-flight Summary ====================

class _HashingReader:
    """Read-through wrapper that hashes every byte handed to the caller"""

    def __init__(self, fileobj: BinaryIO):
        self.fileobj = fileobj
        self.hasher = NewHasher()
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        data = self.fileobj.read(size)
        self.hasher.update(data)
        self.bytes_read += len(data)
        return data

    def drain(self) -> None:
        while self.read(DEFAULT_CHUNK_SIZE):
            pass


def SummarizeArchive(archive_path: Path) -> ArchiveSummary:
    """
    Walk a source archive once and summarize it

    The fingerprint covers the raw archive file bytes; the counts use the
    same RegularFileCounter rule as every other pass.

    Args:
        archive_path: Path to a gzip-compressed tar archive

    Returns:
        ArchiveSummary

    Raises:
        ArchiveFormatError: If the file is not a readable archive
        OSError: If the file cannot be read
    """
    counter = RegularFileCounter()
    entry_count = 0

    with open(archive_path, 'rb') as f:
        hashing_reader = _HashingReader(f)
        reader = OpenArchiveReader(hashing_reader)
        try:
            for member in IterateEntries(reader):
                counter.Assign(member)
                entry_count += 1
        finally:
            reader.close()

        # Include trailing bytes the tar reader did not need
        hashing_reader.drain()

    summary = ArchiveSummary(
        path=archive_path,
        fingerprint=hashing_reader.hasher.hexdigest(),
        entry_count=entry_count,
        regular_file_count=counter.count,
        size=hashing_reader.bytes_read
    )
    logger.debug(
        f"Summarized {archive_path}: {entry_count} entries, "
        f"{counter.count} regular files, fingerprint {summary.fingerprint}"
    )
    return summary
