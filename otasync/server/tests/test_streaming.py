"""
Tests for response streaming in OTA Sync Server

Tests the producer thread bridge between archive transforms and responses.
"""

import pytest

from otasync.server.streaming import StreamArchive


def test_stream_yields_everything_written():
    """Test that chunks arrive complete and in order"""
    def transform(output):
        for i in range(100):
            output.write(f"chunk {i};".encode())

    body = b"".join(StreamArchive(transform, queue_size=2))

    assert body == b"".join(f"chunk {i};".encode() for i in range(100))


def test_stream_skips_empty_writes():
    def transform(output):
        output.write(b"")
        output.write(b"data")

    assert list(StreamArchive(transform)) == [b"data"]


def test_stream_reraises_transform_failure():
    """Test that a failing transform aborts the stream after the chunks already written"""
    def transform(output):
        output.write(b"before")
        raise ValueError("broken archive")

    stream = StreamArchive(transform)

    assert next(stream) == b"before"
    with pytest.raises(ValueError, match="broken archive"):
        next(stream)


def test_stream_closed_early_stops_producer():
    """Test that abandoning the iterator does not leave the producer blocked"""
    written = []

    def transform(output):
        for i in range(1000):
            output.write(b"x" * 10)
            written.append(i)

    stream = StreamArchive(transform, queue_size=1)
    next(stream)
    stream.close()

    assert len(written) < 1000
