"""
OTA Sync Server - Response Streaming

Bridges the archive transforms (which write to a file-like object) and
the HTTP response (which iterates over byte chunks).

The transform runs on its own producer thread and writes into a bounded
queue; the response iterator takes chunks off the queue. A slow client
therefore blocks the producer instead of letting output pile up in
memory. There is no rollback: a transform failure is re-raised in the
iterator, which aborts the response mid-stream.
"""

import logging
import queue
import threading
from typing import Callable, BinaryIO, Iterator

logger = logging.getLogger(__name__)


DEFAULT_QUEUE_SIZE = 16
PUT_POLL_SECONDS = 0.5

_END_OF_STREAM = object()


class StreamCancelledError(Exception):
    """Raised inside the producer when the response consumer has gone away"""
    pass


class _QueueWriter:
    """Write-only file object that hands every write to the chunk queue"""

    def __init__(self, chunks: queue.Queue, cancelled: threading.Event):
        self.chunks = chunks
        self.cancelled = cancelled

    def write(self, data) -> int:
        if data:
            _PutChunk(self.chunks, self.cancelled, bytes(data))
        return len(data)

    def flush(self) -> None:
        pass


def _PutChunk(chunks: queue.Queue, cancelled: threading.Event, item) -> None:
    while True:
        if cancelled.is_set():
            raise StreamCancelledError("Response consumer went away")
        try:
            chunks.put(item, timeout=PUT_POLL_SECONDS)
            return
        except queue.Full:
            continue


def StreamArchive(transform: Callable[[BinaryIO], object], description: str = "archive",
                  queue_size: int = DEFAULT_QUEUE_SIZE) -> Iterator[bytes]:
    """
    Run a transform on a producer thread and yield what it writes

    Args:
        transform: Callable writing the complete response body to the file object it is given
        description: Label used in log messages
        queue_size: Maximum number of chunks buffered between producer and consumer

    Yields:
        bytes: Response body chunks in order

    Raises:
        Exception: Whatever the transform raised, once the chunks before the failure were yielded
    """
    chunks: queue.Queue = queue.Queue(maxsize=queue_size)
    cancelled = threading.Event()

    def produce():
        try:
            transform(_QueueWriter(chunks, cancelled))
        except StreamCancelledError:
            logger.warning(f"Streaming {description} cancelled: client disconnected")
            return
        except Exception as e:
            logger.error(f"Streaming {description} failed: {e}")
            try:
                _PutChunk(chunks, cancelled, e)
            except StreamCancelledError:
                pass
            return

        try:
            _PutChunk(chunks, cancelled, _END_OF_STREAM)
        except StreamCancelledError:
            pass

    producer = threading.Thread(target=produce, name=f"stream-{description}", daemon=True)
    producer.start()

    try:
        while True:
            item = chunks.get()
            if item is _END_OF_STREAM:
                break
            if isinstance(item, Exception):
                raise item
            yield item
    finally:
        cancelled.set()
