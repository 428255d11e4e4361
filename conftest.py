"""
Shared pytest fixtures for building and inspecting tgz archives
"""

import io
import tarfile
from pathlib import Path

import pytest


def _write_archive(path, entries, mtime=1_600_000_000):
    """
    Write a tar.gz archive

    entries: list of tuples
      ("dir", name)
      ("file", name, content_bytes)
      ("symlink", name, target)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for entry in entries:
            kind, name = entry[0], entry[1]
            info = tarfile.TarInfo(name=name)
            info.mtime = mtime
            if kind == "dir":
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            elif kind == "file":
                data = entry[2]
                info.size = len(data)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(data))
            elif kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = entry[2]
                tar.addfile(info)
            else:
                raise ValueError(f"Unknown entry kind: {kind}")
    return path


def _read_archive(source, compressed=True):
    """
    Read a tar(.gz) archive from a path or bytes

    Returns list of (name, kind, data) where data is the payload for
    regular files, the link target for symlinks and None otherwise.
    """
    if isinstance(source, (bytes, bytearray)):
        fileobj = io.BytesIO(source)
    else:
        fileobj = open(source, "rb")

    entries = []
    try:
        with tarfile.open(fileobj=fileobj, mode="r|gz" if compressed else "r|") as tar:
            for member in tar:
                if member.isreg():
                    data = tar.extractfile(member).read()
                    entries.append((member.name, "file", data))
                elif member.isdir():
                    entries.append((member.name, "dir", None))
                elif member.issym():
                    entries.append((member.name, "symlink", member.linkname))
                else:
                    entries.append((member.name, "other", None))
    finally:
        fileobj.close()
    return entries


@pytest.fixture
def make_archive():
    return _write_archive


@pytest.fixture
def read_archive():
    return _read_archive


@pytest.fixture
def scenario_entries():
    """Directory plus two small files; the reference tree typically has only a/x"""
    return [
        ("dir", "a/"),
        ("file", "a/x", b"AAAA"),
        ("file", "a/y", b"BBBB"),
    ]
