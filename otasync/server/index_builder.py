"""
OTA Sync Server - Index Builder

Rewrites a source archive into its index form.

The index has the same entries in the same order as the source archive.
Each counted regular file keeps its header but carries the raw content
hash as payload (size rewritten to the hash length). Every other entry
is passed through unchanged.
"""

import io
import logging
import tarfile
from pathlib import Path
from typing import BinaryIO

from otasync.common.archive_codec import (
    OpenArchiveReader, OpenArchiveWriter, DiscardArchiveWriter, IterateEntries, OpenPayload,
    RegularFileCounter, CloneHeader, WriteEntry, CopyEntry, ARCHIVE_READ_ERRORS
)
from otasync.common.content_hash import CalculateStreamHash, HashToHex, HASH_SIZE
from otasync.common.errors import ArchiveFormatError

logger = logging.getLogger(__name__)


def BuildIndex(reader: tarfile.TarFile, writer: tarfile.TarFile, debug: bool = False) -> int:
    """
    Stream index entries for every entry of the source archive

    Args:
        reader: Source archive opened for sequential reading
        writer: Index archive opened for sequential writing
        debug: Log the hash of every indexed file

    Returns:
        int: Number of regular files hashed (the archive's counter range)

    Raises:
        ArchiveFormatError: If the source archive is broken
    """
    counter = RegularFileCounter()

    for member in IterateEntries(reader):
        if counter.Assign(member) is None:
            # Directories, links, empty files... pass through untouched
            CopyEntry(reader, writer, member)
            continue

        try:
            digest = CalculateStreamHash(OpenPayload(reader, member))
        except ARCHIVE_READ_ERRORS as e:
            raise ArchiveFormatError(f"Cannot hash {member.name}: {e}") from e

        WriteEntry(writer, CloneHeader(member, HASH_SIZE), io.BytesIO(digest))

        if debug:
            logger.info(f"{HashToHex(digest)} : {member.name}")

    return counter.count


def WriteIndex(archive_path: Path, output: BinaryIO, debug: bool = False) -> int:
    """
    Write the gzip-compressed index of a source archive to output

    Args:
        archive_path: Source archive on disk
        output: Writable binary stream receiving the index
        debug: Per-entry logging

    Returns:
        int: Number of regular files hashed
    """
    with open(archive_path, 'rb') as f:
        reader = OpenArchiveReader(f)
        writer = OpenArchiveWriter(output)
        try:
            hashed = BuildIndex(reader, writer, debug=debug)
        except BaseException:
            DiscardArchiveWriter(writer)
            raise
        finally:
            reader.close()
        # Only finish the stream on success; the tar and gzip trailers are written here
        writer.close()

    logger.info(f"Index sent for {archive_path.name}: {hashed} regular files hashed")
    return hashed
