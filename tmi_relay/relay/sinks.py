"""Output sinks for relayed messages: stream, named pipe, ZeroMQ bus."""

from __future__ import annotations

import errno
import logging
import os
import sys
from typing import Protocol, TextIO

import zmq

from ..logs.logger import logger


class Sink(Protocol):
    def emit(self, serialized: str) -> None: ...

    def close(self) -> None: ...


def ensure_fifo(path: str) -> None:
    """Create a named pipe at ``path`` unless one already exists."""
    try:
        os.mkfifo(path)
    except FileExistsError:
        pass


class StreamSink:
    """Writes one line per message to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def emit(self, serialized: str) -> None:
        try:
            self.stream.write(serialized + "\n")
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.log_event("sink", "write_failed", level=logging.ERROR, error=str(e))

    def close(self) -> None:
        # The stream belongs to the process, not to the sink.
        pass


class PipeSink:
    """Writes one line per message into a named pipe.

    The write end is opened lazily and stays non-blocking: while nobody is
    reading the pipe, or the reader lets it fill up, messages are dropped.
    The unwritten tail of a partial write is flushed before the next
    message so lines never interleave. A reader that goes away is detected
    on the next write and the pipe is reopened later.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._fd: int | None = None
        self._pending = b""
        self.dropped = 0
        ensure_fifo(path)

    def _open(self) -> bool:
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as e:
            if e.errno != errno.ENXIO:  # ENXIO: no reader attached yet
                logger.log_event(
                    "sink", "pipe_open_failed", level=logging.ERROR, path=self.path, error=str(e)
                )
            return False
        self._fd = fd
        logger.log_event("sink", "pipe_opened", level=logging.DEBUG, path=self.path)
        return True

    def emit(self, serialized: str) -> None:
        if self._fd is None and not self._open():
            self.dropped += 1
            return
        data = (serialized + "\n").encode("utf-8")
        try:
            if self._pending:
                self._pending = self._pending[self._write(self._pending):]
            if self._pending:
                self._backpressure()
                return
            written = self._write(data)
        except OSError as e:
            self.dropped += 1
            logger.log_event(
                "sink", "pipe_reader_gone", level=logging.WARNING, path=self.path, error=str(e)
            )
            self.close()
            return
        if written == 0:
            self._backpressure()
        else:
            self._pending = data[written:]

    def _write(self, data: bytes) -> int:
        """Bytes of ``data`` the pipe accepted; 0 when it is full."""
        try:
            return os.write(self._fd, data)
        except BlockingIOError:
            return 0

    def _backpressure(self) -> None:
        self.dropped += 1
        logger.log_event("sink", "pipe_backpressure", level=logging.WARNING, path=self.path)

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        self._pending = b""


class BusSink:
    """Publishes ``[topic, payload]`` frames on a ZeroMQ PUB socket."""

    def __init__(
        self, endpoint: str, topic: str, context: zmq.Context | None = None
    ) -> None:
        self.endpoint = endpoint
        self.topic = topic.encode("utf-8")
        ctx = context or zmq.Context.instance()
        self.socket = ctx.socket(zmq.PUB)
        self.socket.setsockopt(zmq.LINGER, 0)
        try:
            self.socket.bind(endpoint)
        except zmq.ZMQError as e:
            self.socket.close()
            raise OSError(f"Cannot bind bus publisher to {endpoint}: {e}") from e

    def emit(self, serialized: str) -> None:
        try:
            self.socket.send_multipart(
                [self.topic, serialized.encode("utf-8")], flags=zmq.NOBLOCK
            )
        except zmq.Again:
            logger.log_event("sink", "bus_backpressure", level=logging.WARNING)
        except zmq.ZMQError as e:
            logger.log_event("sink", "write_failed", level=logging.ERROR, error=str(e))

    def close(self) -> None:
        self.socket.close()
