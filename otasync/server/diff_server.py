"""
OTA Sync Server - Diff Server

Re-walks a source archive and streams only the regular files a client
marked as missing in its presence bitmap.

The counter is recomputed here independently of the index pass; it
matches the client's only because both follow RegularFileCounter over
the same archive content.
"""

import logging
import tarfile
from pathlib import Path
from typing import BinaryIO

from otasync.common.archive_codec import (
    OpenArchiveReader, OpenArchiveWriter, DiscardArchiveWriter, IterateEntries, OpenPayload,
    RegularFileCounter, WriteEntry
)
from otasync.common.bitmap_codec import IsBitSet

logger = logging.getLogger(__name__)


def ServeDiff(reader: tarfile.TarFile, writer: tarfile.TarFile, bitmap: bytes,
              debug: bool = False) -> int:
    """
    Stream the requested regular files, header and full payload

    Entries without a counter value are never sent; the client keeps
    those from the index.

    Args:
        reader: Source archive opened for sequential reading
        writer: Diff archive opened for sequential writing
        bitmap: Packed presence bitmap (1 = send this file)
        debug: Log every file sent

    Returns:
        int: Number of files sent

    Raises:
        BitmapBoundsError: If the bitmap does not cover a counter value
        ArchiveFormatError: If the source archive is broken
    """
    counter = RegularFileCounter()
    sent = 0

    for member in IterateEntries(reader):
        index = counter.Assign(member)
        if index is None:
            continue

        if not IsBitSet(bitmap, index):
            continue

        WriteEntry(writer, member, OpenPayload(reader, member))
        sent += 1

        if debug:
            logger.info(f"+ {member.name}")

    return sent


def WriteDiff(archive_path: Path, bitmap: bytes, output: BinaryIO, debug: bool = False) -> int:
    """
    Write the gzip-compressed diff archive for a bitmap to output

    Args:
        archive_path: Source archive on disk
        bitmap: Packed presence bitmap
        output: Writable binary stream receiving the diff
        debug: Per-entry logging

    Returns:
        int: Number of files sent
    """
    with open(archive_path, 'rb') as f:
        reader = OpenArchiveReader(f)
        writer = OpenArchiveWriter(output)
        try:
            sent = ServeDiff(reader, writer, bitmap, debug=debug)
        except BaseException:
            DiscardArchiveWriter(writer)
            raise
        finally:
            reader.close()
        writer.close()

    logger.info(f"Diff sent for {archive_path.name}: {sent} files")
    return sent
