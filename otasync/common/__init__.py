"""
OTA Sync - Common Package

Archive, hash and bitmap codecs shared by the client and the server.
"""

from otasync.common.archive_codec import (
    RegularFileCounter,
    IsCountedEntry,
    OpenArchiveReader,
    OpenArchiveWriter,
    DiscardArchiveWriter,
    IterateEntries,
    ReadPayload,
    CloneHeader,
    WriteEntry,
    CopyEntry,
)
from otasync.common.bitmap_codec import (
    BitmapBuilder,
    PackBitmap,
    IsBitSet,
    RequiredBitmapLength,
    CompressBitmap,
    DecompressBitmap,
)
from otasync.common.content_hash import HASH_SIZE, CalculateStreamHash, CalculateFileHash
from otasync.common.errors import (
    OtaSyncProtocolError,
    ArchiveFormatError,
    BitmapFormatError,
    BitmapBoundsError,
)

__all__ = [
    'RegularFileCounter',
    'IsCountedEntry',
    'OpenArchiveReader',
    'OpenArchiveWriter',
    'DiscardArchiveWriter',
    'IterateEntries',
    'ReadPayload',
    'CloneHeader',
    'WriteEntry',
    'CopyEntry',
    'BitmapBuilder',
    'PackBitmap',
    'IsBitSet',
    'RequiredBitmapLength',
    'CompressBitmap',
    'DecompressBitmap',
    'HASH_SIZE',
    'CalculateStreamHash',
    'CalculateFileHash',
    'OtaSyncProtocolError',
    'ArchiveFormatError',
    'BitmapFormatError',
    'BitmapBoundsError',
]
