"""
OTA Sync Common - Presence Bitmap Codec

Packs the per-file "send me this file" flags into a byte-aligned bitmap.

Layout:
- One bit per regular-file counter value, in counter order
- Bits are packed MSB-first: counter c lives in byte c // 8 at bit 7 - c % 8
- A bit value of 1 means the client lacks the file and requests it
- The byte in progress is always flushed, so the packed form of N flags
  is N // 8 + 1 bytes long (an empty sequence packs to a single zero byte)
"""

import gzip
import logging
import zlib
from typing import Iterable

from otasync.common.errors import BitmapBoundsError, BitmapFormatError
from otasync.common.protocol import BITMAP_COMPRESS_LEVEL

logger = logging.getLogger(__name__)


class BitmapBuilder:
    """
    Accumulates presence flags one counter value at a time.

    Appending is done in counter order; the packed bytes are available
    at any point through ToBytes().
    """

    def __init__(self):
        self._packed = bytearray()
        self._current = 0
        self.count = 0
        self.set_count = 0

    def Append(self, requested: bool) -> None:
        bit_index = 7 - (self.count % 8)
        if requested:
            self._current |= 1 << bit_index
            self.set_count += 1
        self.count += 1

        if bit_index == 0:
            self._packed.append(self._current)
            self._current = 0

    def ToBytes(self) -> bytes:
        # Always include the byte in progress, even if it is empty
        return bytes(self._packed) + bytes([self._current])

    def AnySet(self) -> bool:
        return self.set_count > 0


def PackBitmap(flags: Iterable[bool]) -> bytes:
    """
    Pack an ordered sequence of presence flags

    Args:
        flags: Flags in counter order (True = requested)

    Returns:
        bytes: Packed bitmap, at least one byte long
    """
    builder = BitmapBuilder()
    for flag in flags:
        builder.Append(bool(flag))
    return builder.ToBytes()


def IsBitSet(bitmap: bytes, index: int) -> bool:
    """
    Read the flag for a counter value

    Args:
        bitmap: Packed bitmap
        index: Regular-file counter value

    Returns:
        bool: True if the file is requested

    Raises:
        BitmapBoundsError: If the byte holding the flag is beyond the bitmap
    """
    if index < 0:
        raise BitmapBoundsError(f"Negative counter value: {index}")

    byte_index = index // 8
    bit_index = 7 - (index % 8)

    if byte_index >= len(bitmap):
        raise BitmapBoundsError(
            f"Counter {index} needs bitmap byte {byte_index} but bitmap has {len(bitmap)} byte(s)"
        )

    return (bitmap[byte_index] >> bit_index) & 1 == 1


def RequiredBitmapLength(regular_file_count: int) -> int:
    """Minimum bitmap length that covers every counter value of an archive"""
    return max(1, (regular_file_count + 7) // 8)


def CompressBitmap(bitmap: bytes) -> bytes:
    """gzip-compress a packed bitmap for the diff request body"""
    return gzip.compress(bitmap, compresslevel=BITMAP_COMPRESS_LEVEL)


def DecompressBitmap(body: bytes) -> bytes:
    """
    Decode a diff request body back into the packed bitmap

    Raises:
        BitmapFormatError: If the body is not valid gzip data
    """
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as e:
        raise BitmapFormatError(f"Cannot read request bitmap: {e}") from e
