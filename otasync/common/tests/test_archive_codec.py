"""
Tests for the archive entry codec

Tests the regular-file counter, header cloning and entry pass-through.
"""

import gc
import io
import tarfile

import pytest

from otasync.common.archive_codec import (
    RegularFileCounter, IsCountedEntry,
    OpenArchiveReader, OpenArchiveWriter, DiscardArchiveWriter, IterateEntries, CloneHeader,
    CopyEntry, ReadPayload
)
from otasync.common.errors import ArchiveFormatError


def _member(name, kind="file", size=0):
    info = tarfile.TarInfo(name=name)
    if kind == "dir":
        info.type = tarfile.DIRTYPE
    elif kind == "symlink":
        info.type = tarfile.SYMTYPE
        info.linkname = "target"
    elif kind == "fifo":
        info.type = tarfile.FIFOTYPE
    info.size = size
    return info


def _copy_all(source_bytes):
    """Pass every entry of an archive through CopyEntry"""
    output = io.BytesIO()
    reader = OpenArchiveReader(io.BytesIO(source_bytes))
    writer = OpenArchiveWriter(output)
    for member in IterateEntries(reader):
        CopyEntry(reader, writer, member)
    reader.close()
    writer.close()
    return output.getvalue()


def test_counter_only_counts_non_empty_regular_files():
    """Test that directories, links and empty files consume no counter value"""
    counter = RegularFileCounter()
    members = [
        _member("a", "dir"),
        _member("a/x", size=4),
        _member("a/empty", size=0),
        _member("a/link", "symlink"),
        _member("a/fifo", "fifo"),
        _member("a/y", size=1),
    ]

    assigned = [counter.Assign(m) for m in members]

    assert assigned == [None, 0, None, None, None, 1]
    assert counter.count == 2


def test_counter_is_deterministic():
    members = [_member(f"f{i}", size=i % 3) for i in range(12)]

    first = RegularFileCounter()
    second = RegularFileCounter()

    assert [first.Assign(m) for m in members] == [second.Assign(m) for m in members]


def test_counted_entries():
    assert IsCountedEntry(_member("f", size=1))
    assert not IsCountedEntry(_member("f", size=0))
    assert not IsCountedEntry(_member("d", "dir"))
    assert not IsCountedEntry(_member("p", "fifo", size=3))


def test_clone_header_rewrites_size_and_drops_pax_size():
    """Test that a pax size record cannot override the rewritten size"""
    member = _member("big", size=12345)
    member.pax_headers = {"size": "12345", "comment": "kept"}

    clone = CloneHeader(member, 20)

    assert clone.size == 20
    assert "size" not in clone.pax_headers
    assert clone.pax_headers["comment"] == "kept"
    # Original is untouched
    assert member.size == 12345
    assert member.pax_headers["size"] == "12345"


def test_clone_header_without_size_keeps_everything():
    member = _member("f", size=7)
    member.mode = 0o600
    member.uname = "someone"

    clone = CloneHeader(member)

    assert clone is not member
    assert clone.size == 7
    assert clone.mode == 0o600
    assert clone.uname == "someone"


def test_copy_entry_passes_everything_through(tmp_path, make_archive, read_archive):
    """Test pass-through of files, directories, symlinks and empty files"""
    entries = [
        ("dir", "a/"),
        ("file", "a/x", b"AAAA"),
        ("file", "a/empty", b""),
        ("symlink", "a/link", "x"),
    ]
    source = make_archive(tmp_path / "src.tgz", entries)

    copied = _copy_all(source.read_bytes())

    assert read_archive(copied) == read_archive(source)
    assert read_archive(copied) == [
        ("a", "dir", None),
        ("a/x", "file", b"AAAA"),
        ("a/empty", "file", b""),
        ("a/link", "symlink", "x"),
    ]


def test_copy_entry_keeps_header_metadata(tmp_path, make_archive):
    source = make_archive(tmp_path / "src.tgz", [("file", "f", b"data")], mtime=1234567890)

    copied = _copy_all(source.read_bytes())

    with tarfile.open(fileobj=io.BytesIO(copied), mode="r:gz") as tar:
        member = tar.getmember("f")
        assert member.mtime == 1234567890
        assert member.mode == 0o644


def test_read_payload_limit(tmp_path, make_archive):
    source = make_archive(tmp_path / "src.tgz", [("file", "f", b"0123456789")])

    with open(source, "rb") as f:
        reader = OpenArchiveReader(f)
        member = next(IterateEntries(reader))
        assert ReadPayload(reader, member, 4) == b"0123"
        reader.close()


def test_garbage_is_archive_format_error():
    with pytest.raises(ArchiveFormatError):
        reader = OpenArchiveReader(io.BytesIO(b"this is not a tgz file at all"))
        list(IterateEntries(reader))


def test_truncated_payload_is_archive_format_error():
    """Test that a stream cut off inside a payload surfaces as ArchiveFormatError"""
    source = io.BytesIO()
    writer = OpenArchiveWriter(source, compressed=False)
    writer.addfile(_member("big", size=5000), io.BytesIO(b"x" * 5000))
    writer.close()
    truncated = source.getvalue()[: tarfile.BLOCKSIZE + 1000]

    reader = OpenArchiveReader(io.BytesIO(truncated), compressed=False)
    writer = OpenArchiveWriter(io.BytesIO(), compressed=False)
    with pytest.raises(ArchiveFormatError):
        for member in IterateEntries(reader):
            CopyEntry(reader, writer, member)


def test_uncompressed_round_trip(tmp_path):
    output = io.BytesIO()
    writer = OpenArchiveWriter(output, compressed=False)
    info = _member("plain", size=3)
    writer.addfile(info, io.BytesIO(b"abc"))
    writer.close()

    reader = OpenArchiveReader(io.BytesIO(output.getvalue()), compressed=False)
    names = [m.name for m in IterateEntries(reader)]
    reader.close()

    assert names == ["plain"]


@pytest.mark.filterwarnings("error::pytest.PytestUnraisableExceptionWarning")
def test_discarded_writer_never_flushes_into_closed_file(tmp_path):
    """Test that an abandoned writer leaves an unreadable file and stays quiet afterwards"""
    target = tmp_path / "broken.tgz"
    with open(target, "wb") as f:
        writer = OpenArchiveWriter(f)
        writer.addfile(_member("f", size=3), io.BytesIO(b"abc"))
        DiscardArchiveWriter(writer)

    # No trailers are written once the file is closed
    writer.close()
    del writer
    gc.collect()

    with open(target, "rb") as f:
        with pytest.raises(ArchiveFormatError):
            reader = OpenArchiveReader(f)
            list(IterateEntries(reader))
