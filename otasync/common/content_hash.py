"""
OTA Sync Common - Content Hashing

Fixed-size content fingerprints for regular file payloads.

The fingerprint is only used to decide whether two payloads are equal,
so SHA-1 is used as-is: both sides must compute exactly the same digest
and the index stores the raw 20 digest bytes for every hashed entry.
"""

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)


HASH_ALGORITHM = "sha1"
HASH_SIZE = hashlib.new(HASH_ALGORITHM).digest_size
DEFAULT_CHUNK_SIZE = 64 * 1024


def NewHasher():
    """Return a fresh hash object for the fingerprint algorithm"""
    return hashlib.new(HASH_ALGORITHM)


def CalculateStreamHash(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Calculate the content hash of a byte stream using chunked reading

    The stream is consumed until EOF. Read errors propagate unchanged,
    so a partial digest is never returned.

    Args:
        stream: Readable binary stream positioned at the start of the payload
        chunk_size: Size of chunks to read

    Returns:
        bytes: Raw digest (HASH_SIZE bytes)
    """
    hasher = NewHasher()
    while chunk := stream.read(chunk_size):
        hasher.update(chunk)
    return hasher.digest()


def CalculateFileHash(file_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Calculate the content hash of a file on disk

    Args:
        file_path: Path to file to hash
        chunk_size: Size of chunks to read

    Returns:
        bytes: Raw digest (HASH_SIZE bytes)

    Raises:
        OSError: If the file cannot be opened or read
    """
    with open(file_path, 'rb') as f:
        return CalculateStreamHash(f, chunk_size)


def HashToHex(digest: bytes) -> str:
    return digest.hex()
