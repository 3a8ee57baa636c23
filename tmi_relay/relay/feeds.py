"""Auxiliary line inputs: standard input, named pipe, ZeroMQ bus."""

from __future__ import annotations

import logging
import os
import sys
from typing import Protocol

import zmq

from ..constants import FEED_LINE_CAPACITY, READ_CHUNK_SIZE
from ..errors.internal import FramingOverflow
from ..irc.framing import FrameBuffer
from ..logs.logger import logger
from .sinks import ensure_fifo


class Feed(Protocol):
    name: str

    def fileno(self) -> int: ...

    def pending(self) -> bool: ...

    def read_line(self) -> str | None: ...

    def close(self) -> None: ...


class LineFeed:
    """Newline-framed reader over a non-blocking file descriptor."""

    def __init__(
        self,
        fd: int,
        *,
        name: str = "stdin",
        capacity: int = FEED_LINE_CAPACITY,
        owns_fd: bool = False,
    ) -> None:
        self._was_blocking = os.get_blocking(fd)
        os.set_blocking(fd, False)
        self.name = name
        self._fd: int | None = fd
        self._owns_fd = owns_fd
        self._keepalive_fd: int | None = None
        self._frames = FrameBuffer(capacity)

    @classmethod
    def stdin(cls) -> LineFeed:
        return cls(sys.stdin.fileno(), name="stdin")

    @classmethod
    def from_fifo(cls, path: str, capacity: int = FEED_LINE_CAPACITY) -> LineFeed:
        """Open a named pipe for reading without waiting for a writer.

        A write end is held open by the feed itself so the pipe never
        reports end-of-file when external writers come and go.
        """
        ensure_fifo(path)
        fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
        feed = cls(fd, name=path, capacity=capacity, owns_fd=True)
        feed._keepalive_fd = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
        return feed

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        return -1 if self._fd is None else self._fd

    def pending(self) -> bool:
        return self._frames.has_line()

    def _take(self) -> str | None:
        raw = self._frames.take_line()
        if raw is None:
            return None
        return raw.decode("utf-8", errors="replace")

    def read_line(self) -> str | None:
        """Return one line if available after at most one read."""
        line = self._take()
        if line is not None or self._fd is None:
            return line
        try:
            data = os.read(self._fd, READ_CHUNK_SIZE)
        except BlockingIOError:
            return None
        except OSError as e:
            logger.log_event(
                "feed", "read_failed", level=logging.ERROR, feed=self.name, error=str(e)
            )
            self.close()
            return None
        if not data:
            self._on_eof()
            return self._take()
        try:
            self._frames.push(data)
        except FramingOverflow as e:
            logger.log_event(
                "feed", "line_too_long", level=logging.WARNING, feed=self.name, error=str(e)
            )
            return None
        return self._take()

    def _on_eof(self) -> None:
        logger.log_event("feed", "closed", feed=self.name)
        if len(self._frames):
            # deliver an unterminated last line
            self._frames.push(b"\n")
        self.close()

    def close(self) -> None:
        if self._fd is not None:
            if self._owns_fd:
                os.close(self._fd)
            else:
                os.set_blocking(self._fd, self._was_blocking)
        self._fd = None
        if self._keepalive_fd is not None:
            os.close(self._keepalive_fd)
            self._keepalive_fd = None


class BusFeed:
    """ZeroMQ SUB socket delivering one payload frame per line.

    The ZeroMQ readiness descriptor is edge-triggered, hence ``pending``
    consults ``zmq.EVENTS`` before every wait.
    """

    def __init__(
        self, endpoint: str, topic: str, context: zmq.Context | None = None
    ) -> None:
        self.name = endpoint
        ctx = context or zmq.Context.instance()
        self.socket = ctx.socket(zmq.SUB)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.connect(endpoint)
        self.socket.setsockopt(zmq.SUBSCRIBE, topic.encode("utf-8"))
        self._closed = False

    def fileno(self) -> int:
        if self._closed:
            return -1
        return self.socket.getsockopt(zmq.FD)

    def pending(self) -> bool:
        if self._closed:
            return False
        return bool(self.socket.getsockopt(zmq.EVENTS) & zmq.POLLIN)

    def read_line(self) -> str | None:
        if self._closed:
            return None
        try:
            frames = self.socket.recv_multipart(flags=zmq.NOBLOCK)
        except zmq.Again:
            return None
        return frames[-1].decode("utf-8", errors="replace")

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.socket.close()
