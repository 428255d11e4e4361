"""
OTA Sync Client - Local Diff Scanner

Walks the server index against the local reference directory.

For every index entry, in order:
- Entries without a counter value (directories, links, empty files)
  are staged unchanged.
- Regular files are looked up beneath the reference directory. If the
  local copy hashes to the value carried by the index entry it is staged
  with its real size and content, and its bit stays 0. Otherwise its bit
  is set to 1 and the entry is recorded as missing, so it can be
  requested from the server and put back in its original position.

Local lookup problems are expected (new files, changed files) and are
never raised; they only mark the file as missing.

Author: OTA Sync Project
"""

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Optional

from otasync.common.archive_codec import (
    IterateEntries, RegularFileCounter, ReadPayload, CloneHeader, WriteEntry, CopyEntry
)
from otasync.common.bitmap_codec import BitmapBuilder
from otasync.common.content_hash import CalculateFileHash, HashToHex, HASH_SIZE
from otasync.common.errors import ArchiveFormatError
from otasync.client.models import MissingEntry, ScanResult

# Configure logging
logger = logging.getLogger(__name__)


class LocalDiffScanner:
    """
    Builds the presence bitmap and the staged partial archive.

    Responsibilities:
    - Assign regular-file counter values exactly as the server does
    - Verify local candidates by content hash
    - Stage satisfied and pass-through entries in index order
    - Record the counter value and position of every missing entry
    """

    def __init__(self, reference_dir: Path, scratch_dir: Path, debug: bool = False):
        """
        Initialize scanner.

        Args:
            reference_dir: Local tree the index is compared against
            scratch_dir: Directory for temporary copies of local candidates
            debug: Log a line for every entry decision
        """
        self.reference_dir = Path(reference_dir)
        self.scratch_dir = Path(scratch_dir)
        self.debug = debug

    def scan(self, reader: tarfile.TarFile, writer: tarfile.TarFile) -> ScanResult:
        """
        Scan the whole index.

        Args:
            reader: Index archive opened for sequential reading
            writer: Staging archive opened for sequential writing

        Returns:
            ScanResult with the packed bitmap and the missing entries

        Raises:
            ArchiveFormatError: If the index is broken or carries a malformed hash
        """
        counter = RegularFileCounter()
        bitmap = BitmapBuilder()
        result = ScanResult(bitmap=b"", entry_count=0, regular_file_count=0)

        for position, member in enumerate(IterateEntries(reader)):
            result.entry_count += 1
            index = counter.Assign(member)

            if index is None:
                # Include dirs, links... without changes
                CopyEntry(reader, writer, member)
                continue

            expected_hash = self._read_index_hash(reader, member)

            if self._stage_local_file(member, expected_hash, writer):
                bitmap.Append(False)
                if self.debug:
                    logger.info(f"> {member.name}")
            else:
                # Request this file from the server
                bitmap.Append(True)
                result.missing.append(MissingEntry(counter=index, position=position, name=member.name))

        result.bitmap = bitmap.ToBytes()
        result.any_requested = bitmap.AnySet()
        result.regular_file_count = counter.count

        logger.info(
            f"Scanned {result.entry_count} entries: {result.satisfied_count} of "
            f"{result.regular_file_count} regular files available locally"
        )
        return result

    def _read_index_hash(self, reader: tarfile.TarFile, member: tarfile.TarInfo) -> bytes:
        """
        Read the content hash carried by an index entry.

        Raises:
            ArchiveFormatError: If the payload is not exactly one hash
        """
        payload = b""
        if member.size == HASH_SIZE:
            payload = ReadPayload(reader, member, HASH_SIZE + 1)

        if len(payload) != HASH_SIZE:
            raise ArchiveFormatError(
                f"Server responded with an unknown file hash format for {member.name}"
            )
        return payload

    def _local_path(self, name: str) -> Path:
        return self.reference_dir / name.lstrip("/")

    def _stage_local_file(self, member: tarfile.TarInfo, expected_hash: bytes,
                          writer: tarfile.TarFile) -> bool:
        """
        Try to satisfy an index entry from the reference directory.

        The candidate is copied to a scratch file named after the expected
        hash first; size, hash and staged content all come from that copy.

        Args:
            member: Index entry header
            expected_hash: Hash the server reported for the entry
            writer: Staging archive

        Returns:
            True if the entry was staged, False if it must be requested
        """
        hash_hex = HashToHex(expected_hash)
        scratch_file = self.scratch_dir / f"{hash_hex}.tmp"

        try:
            local_size = self._copy_candidate(member.name, scratch_file)
            if local_size is None:
                return False

            try:
                local_hash = CalculateFileHash(scratch_file)
            except OSError as e:
                logger.debug(f"Cannot hash local copy of {member.name}: {e}")
                return False

            if local_hash != expected_hash:
                if self.debug:
                    logger.info(f"File exists, hash does not match: {member.name}")
                return False

            # Header keeps the server's metadata, size is the actual size of the local file
            with open(scratch_file, 'rb') as f:
                WriteEntry(writer, CloneHeader(member, local_size), f)
            return True

        finally:
            scratch_file.unlink(missing_ok=True)

    def _copy_candidate(self, name: str, scratch_file: Path) -> Optional[int]:
        """
        Copy the local candidate for an entry to its scratch file.

        Returns:
            Size of the copy, or None if there is no usable local file
        """
        local_path = self._local_path(name)

        try:
            if not local_path.is_file():
                if self.debug:
                    logger.info(f"File does not (yet) exist: {name}")
                return None
            shutil.copyfile(local_path, scratch_file)
        except OSError as e:
            if self.debug:
                logger.info(f"Cannot copy local file {name}: {e}")
            return None

        try:
            return scratch_file.stat().st_size
        except OSError as e:
            if self.debug:
                logger.info(f"File exists, cannot get file size: {name}: {e}")
            return None
