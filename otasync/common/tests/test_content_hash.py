"""
Tests for content hashing

Tests that file and stream fingerprints agree and are raw SHA-1 digests.
"""

import hashlib
import io

from otasync.common.content_hash import (
    CalculateFileHash, CalculateStreamHash, HashToHex, HASH_SIZE
)


def test_hash_size_is_sha1_digest_size():
    """Test that the index payload size matches SHA-1"""
    assert HASH_SIZE == 20


def test_stream_hash_is_raw_sha1():
    """Test stream hashing against hashlib"""
    digest = CalculateStreamHash(io.BytesIO(b"AAAA"))

    assert digest == hashlib.sha1(b"AAAA").digest()
    assert len(digest) == HASH_SIZE


def test_file_and_stream_hash_agree(tmp_path):
    """Test that a file on disk hashes like the same bytes in an archive stream"""
    content = bytes(range(256)) * 1000
    path = tmp_path / "blob.bin"
    path.write_bytes(content)

    assert CalculateFileHash(path) == CalculateStreamHash(io.BytesIO(content))


def test_chunk_size_does_not_change_hash():
    content = b"0123456789" * 333
    expected = hashlib.sha1(content).digest()

    for chunk_size in (1, 7, 4096):
        assert CalculateStreamHash(io.BytesIO(content), chunk_size) == expected


def test_one_byte_difference_changes_hash():
    assert CalculateStreamHash(io.BytesIO(b"AAAA")) != CalculateStreamHash(io.BytesIO(b"AAAB"))


def test_empty_stream_hash():
    assert CalculateStreamHash(io.BytesIO(b"")) == hashlib.sha1(b"").digest()


def test_hash_to_hex():
    digest = hashlib.sha1(b"AAAA").digest()
    assert HashToHex(digest) == hashlib.sha1(b"AAAA").hexdigest()
