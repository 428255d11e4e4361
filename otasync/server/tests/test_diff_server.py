"""
Tests for diff serving in OTA Sync Server

Tests that exactly the files marked in the bitmap are streamed back.
"""

import gc
import io
import tarfile

import pytest

from otasync.common.bitmap_codec import PackBitmap
from otasync.common.errors import BitmapBoundsError
from otasync.server.diff_server import WriteDiff


def test_diff_contains_only_requested_files(tmp_path, make_archive, read_archive, scenario_entries):
    """Test bitmap 0b01000000 against the directory-plus-two-files archive"""
    source = make_archive(tmp_path / "image.tgz", scenario_entries)
    output = io.BytesIO()

    sent = WriteDiff(source, bytes([0b01000000]), output)

    assert sent == 1
    assert read_archive(output.getvalue()) == [("a/y", "file", b"BBBB")]

    print("Diff selection tests passed")


def test_diff_keeps_archive_order(tmp_path, make_archive, read_archive):
    entries = [("file", f"f{i}", f"content {i}".encode()) for i in range(12)]
    source = make_archive(tmp_path / "image.tgz", entries)
    flags = [i in (1, 8, 11) for i in range(12)]
    output = io.BytesIO()

    WriteDiff(source, PackBitmap(flags), output)

    assert read_archive(output.getvalue()) == [
        ("f1", "file", b"content 1"),
        ("f8", "file", b"content 8"),
        ("f11", "file", b"content 11"),
    ]


def test_diff_never_sends_uncounted_entries(tmp_path, make_archive, read_archive):
    """Test that directories, links and empty files are never sent even with all bits set"""
    entries = [
        ("dir", "d/"),
        ("file", "d/empty", b""),
        ("symlink", "d/link", "empty"),
        ("file", "d/data", b"1"),
    ]
    source = make_archive(tmp_path / "image.tgz", entries)
    output = io.BytesIO()

    WriteDiff(source, b"\xff", output)

    assert read_archive(output.getvalue()) == [("d/data", "file", b"1")]


def test_all_zero_bitmap_yields_empty_archive(tmp_path, make_archive, read_archive, scenario_entries):
    source = make_archive(tmp_path / "image.tgz", scenario_entries)
    output = io.BytesIO()

    assert WriteDiff(source, b"\x00", output) == 0
    assert read_archive(output.getvalue()) == []


def test_short_bitmap_is_bounds_error(tmp_path, make_archive):
    """Test that a counter value past the bitmap is rejected rather than read"""
    entries = [("file", f"f{i}", b"x") for i in range(9)]
    source = make_archive(tmp_path / "image.tgz", entries)

    with pytest.raises(BitmapBoundsError):
        WriteDiff(source, b"\x00", io.BytesIO())


def test_exact_length_bitmap_covers_last_file(tmp_path, make_archive, read_archive):
    entries = [("file", f"f{i}", bytes([65 + i])) for i in range(16)]
    source = make_archive(tmp_path / "image.tgz", entries)
    output = io.BytesIO()

    WriteDiff(source, bytes([0x00, 0x01]), output)

    assert read_archive(output.getvalue()) == [("f15", "file", b"P")]


@pytest.mark.filterwarnings("error::pytest.PytestUnraisableExceptionWarning")
def test_failed_diff_is_not_finished(tmp_path, make_archive, read_archive):
    """Test that a rejected bitmap leaves the output without archive trailers"""
    entries = [("file", f"f{i}", b"x") for i in range(9)]
    source = make_archive(tmp_path / "image.tgz", entries)
    diff_file = tmp_path / "diff.tgz"

    with open(diff_file, "wb") as output:
        with pytest.raises(BitmapBoundsError):
            WriteDiff(source, b"\xff", output)
    gc.collect()

    with pytest.raises(tarfile.ReadError):
        read_archive(diff_file)
