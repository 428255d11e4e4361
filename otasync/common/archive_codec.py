"""
OTA Sync Common - Archive Entry Codec

Sequential reading and writing of gzip-compressed tar archives.

Every transform in the protocol (index building, local scanning, diff
serving, merging) walks an archive exactly once, front to back, and
writes entries to another archive as it goes. Archives are therefore
always opened in tarfile's stream modes ("r|gz" / "w|gz"): no seeking,
no member table built up front, and the writer can target a socket or
a pipe as easily as a file.

Entry metadata (mode, owner, timestamps, link targets, pax records) is
never interpreted; headers are copied as read. The only header field
the protocol rewrites is the size.
"""

import copy
import logging
import tarfile
import zlib
from typing import BinaryIO, Iterator, Optional

from otasync.common.errors import ArchiveFormatError

logger = logging.getLogger(__name__)


# Exceptions raised by tarfile/gzip on a broken or truncated stream
ARCHIVE_READ_ERRORS = (tarfile.TarError, EOFError, zlib.error)


def IsCountedEntry(member: tarfile.TarInfo) -> bool:
    """Regular files with a non-empty payload take a regular-file counter value"""
    return member.isreg() and member.size > 0


class RegularFileCounter:
    """
    Assigns the positional coordinate shared by client and server.

    Counter values are handed out in archive traversal order, starting at
    zero, to counted entries only (see IsCountedEntry). Directories,
    links, devices and empty files never consume a value. Given the same
    archive content the assignment is identical on every pass, which is
    what lets a bitmap built from the index address entries of the
    source archive.
    """

    def __init__(self):
        self.count = 0

    def Assign(self, member: tarfile.TarInfo) -> Optional[int]:
        """
        Return the counter value for an entry, or None if it is not counted

        Args:
            member: Entry header, visited in archive order

        Returns:
            int or None: Counter value for counted entries
        """
        if not IsCountedEntry(member):
            return None
        value = self.count
        self.count += 1
        return value


# ==================== Readers and Writers ====================

def OpenArchiveReader(fileobj: BinaryIO, compressed: bool = True) -> tarfile.TarFile:
    """
    Open a sequential archive reader over a binary stream

    Args:
        fileobj: Readable binary stream
        compressed: True for tar.gz, False for plain tar

    Returns:
        tarfile.TarFile in stream read mode

    Raises:
        ArchiveFormatError: If the stream does not start like an archive
    """
    mode = "r|gz" if compressed else "r|"
    try:
        return tarfile.open(fileobj=fileobj, mode=mode)
    except ARCHIVE_READ_ERRORS as e:
        raise ArchiveFormatError(f"Cannot read archive: {e}") from e


def OpenArchiveWriter(fileobj: BinaryIO, compressed: bool = True) -> tarfile.TarFile:
    """
    Open a sequential archive writer over a binary stream

    The caller must close() the writer so the tar end-of-archive blocks
    and the gzip trailer are written. Closing the writer does not close
    fileobj.
    """
    mode = "w|gz" if compressed else "w|"
    return tarfile.open(fileobj=fileobj, mode=mode, format=tarfile.PAX_FORMAT)


def DiscardArchiveWriter(writer: tarfile.TarFile) -> None:
    """
    Give up on a writer after a failed transform

    No end-of-archive blocks or gzip trailer are written, so a broken
    output never looks complete. The writer will not try to flush into
    fileobj later, even after fileobj has been closed.
    """
    writer.closed = True
    writer.fileobj.closed = True


def IterateEntries(reader: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
    """
    Yield entry headers in archive order

    Raises:
        ArchiveFormatError: If the stream is broken or truncated
    """
    try:
        for member in reader:
            yield member
    except ARCHIVE_READ_ERRORS as e:
        raise ArchiveFormatError(f"Broken archive stream: {e}") from e


def HasPayload(member: tarfile.TarInfo) -> bool:
    """True if data blocks follow this header in the archive"""
    if member.size <= 0:
        return False
    return member.isreg() or member.type not in tarfile.SUPPORTED_TYPES


def OpenPayload(reader: tarfile.TarFile, member: tarfile.TarInfo) -> BinaryIO:
    """
    Open the payload of the current entry for reading

    Only valid for the entry most recently yielded by IterateEntries.
    """
    payload = reader.extractfile(member)
    if payload is None:
        raise ArchiveFormatError(f"Entry has no readable payload: {member.name}")
    return payload


def ReadPayload(reader: tarfile.TarFile, member: tarfile.TarInfo, limit: int) -> bytes:
    """
    Read up to limit bytes of the current entry's payload

    Raises:
        ArchiveFormatError: If the payload cannot be read
    """
    try:
        return OpenPayload(reader, member).read(limit)
    except ARCHIVE_READ_ERRORS as e:
        raise ArchiveFormatError(f"Cannot read payload of {member.name}: {e}") from e


def CloneHeader(member: tarfile.TarInfo, size: Optional[int] = None) -> tarfile.TarInfo:
    """
    Copy an entry header, optionally with a new size

    A pax "size" record on the original header would take priority over
    the size field when the copy is written, so it is dropped whenever
    the size is rewritten.
    """
    clone = copy.copy(member)
    clone.pax_headers = dict(member.pax_headers)
    if size is not None:
        clone.size = size
        clone.pax_headers.pop("size", None)
    return clone


def WriteEntry(writer: tarfile.TarFile, member: tarfile.TarInfo,
               payload: Optional[BinaryIO] = None) -> None:
    """
    Write one entry; exactly member.size bytes are copied from payload

    Raises:
        ArchiveFormatError: If reading the payload fails mid-copy
    """
    try:
        writer.addfile(member, payload)
    except ARCHIVE_READ_ERRORS as e:
        raise ArchiveFormatError(f"Cannot copy payload of {member.name}: {e}") from e


def CopyEntry(reader: tarfile.TarFile, writer: tarfile.TarFile, member: tarfile.TarInfo) -> None:
    """
    Pass the current entry through unchanged, payload included

    Works for every entry kind. Headers of kinds that carry no data are
    written with a zero size, which is what the reader already assumed
    when it skipped past them.
    """
    if HasPayload(member):
        WriteEntry(writer, member, OpenPayload(reader, member))
    elif member.size:
        WriteEntry(writer, CloneHeader(member, 0))
    else:
        WriteEntry(writer, member)
