"""Chat connection: framing, decoding and liveness over one byte stream."""

from __future__ import annotations

import logging
import time

from ..constants import (
    FRAME_BUFFER_CAPACITY,
    MAX_COMMAND_LENGTH,
    READ_CHUNK_SIZE,
    RECEIVE_TIMEOUT,
)
from ..errors.internal import DecodeAnomaly, FramingOverflow, TransportFailure
from ..logs.logger import logger
from .framing import FrameBuffer
from .parser import Message, decode_line
from .transport import ByteStream

LINE_TERMINATOR = b"\r\n"


def _truncate(payload: bytes, limit: int) -> bytes:
    if len(payload) <= limit:
        return payload
    # Cut on a character boundary so the server never sees broken UTF-8.
    return payload[:limit].decode("utf-8", errors="ignore").encode("utf-8")


class Connection:
    """One live chat connection.

    The event loop owns it; the handshake borrows it during setup. The
    ``connected`` flag drops to False on the first failed send, on peer
    close and on framing overflow, and never comes back: reconnecting
    means building a new Connection.
    """

    def __init__(
        self,
        stream: ByteStream,
        *,
        capacity: int = FRAME_BUFFER_CAPACITY,
        receive_timeout: float = RECEIVE_TIMEOUT,
        max_command_length: int = MAX_COMMAND_LENGTH,
        read_size: int = READ_CHUNK_SIZE,
        user: str | None = None,
        channel: str | None = None,
    ) -> None:
        self._stream = stream
        self._frames = FrameBuffer(capacity)
        self._connected = True
        self.receive_timeout = receive_timeout
        self.max_command_length = max_command_length
        self.read_size = read_size
        self.user = user
        self.channel = channel
        self.log = logger.bind(user=user, channel=channel)
        self.last_activity = time.monotonic()

    # -- liveness -----------------------------------------------------
    def is_connected(self) -> bool:
        return self._connected

    @property
    def connected(self) -> bool:
        return self._connected

    def mark_disconnected(self, reason: str) -> None:
        if not self._connected:
            return
        self._connected = False
        self.log.log_event(
            "connection",
            "lost",
            level=logging.WARNING,
            reason=reason,
        )

    def idle_for(self) -> float:
        return time.monotonic() - self.last_activity

    # -- multiplexer source -------------------------------------------
    def descriptor(self) -> int:
        if not self._connected:
            return -1
        return self._stream.fileno()

    def fileno(self) -> int:
        return self.descriptor()

    def pending(self) -> bool:
        return self._frames.has_line()

    # -- outbound -----------------------------------------------------
    async def send(self, command: str) -> int:
        """Send one formatted command; returns the number of bytes written."""
        if not self._connected:
            raise TransportFailure("Connection is closed", data={"command": command[:16]})
        limit = self.max_command_length - len(LINE_TERMINATOR)
        payload = command.encode("utf-8")
        if len(payload) > limit:
            self.log.log_event(
                "connection",
                "command_truncated",
                level=logging.DEBUG,
                length=len(payload),
                limit=limit,
            )
            payload = _truncate(payload, limit)
        data = payload + LINE_TERMINATOR
        try:
            await self._stream.send(data)
        except TransportFailure as e:
            self.mark_disconnected(str(e))
            raise
        return len(data)

    # -- inbound ------------------------------------------------------
    def _take_line(self) -> bytes | None:
        try:
            return self._frames.take_line()
        except FramingOverflow as e:
            self.mark_disconnected(str(e))
            raise

    def _next_buffered(self) -> Message | None:
        while True:
            raw = self._take_line()
            if raw is None:
                return None
            if not raw:
                continue
            try:
                return decode_line(raw)
            except DecodeAnomaly as e:
                self.log.log_event(
                    "connection",
                    "decode_skipped",
                    level=logging.DEBUG,
                    error=str(e),
                )

    def _push(self, data: bytes) -> None:
        self.last_activity = time.monotonic()
        try:
            self._frames.push(data)
        except FramingOverflow as e:
            self.mark_disconnected(str(e))
            raise

    def try_next_message(self) -> Message | None:
        """Return the next message without blocking, or None.

        Buffered lines are served first; otherwise one non-blocking read is
        attempted. A would-block read leaves all state untouched.
        """
        message = self._next_buffered()
        if message is not None or not self._connected:
            return message
        try:
            data = self._stream.recv_nowait(self.read_size)
        except TransportFailure as e:
            self.mark_disconnected(str(e))
            return None
        if data is None:
            return None
        if not data:
            self.mark_disconnected("peer closed the stream")
            return None
        self._push(data)
        return self._next_buffered()

    async def wait_next_message(self) -> Message:
        """Block until one message is available.

        Raises:
            TransportFailure: Receive timed out, failed, or the peer closed.
            DecodeAnomaly: The next line could not be decoded.
            FramingOverflow: The next line exceeds the frame capacity.
        """
        while True:
            raw = self._take_line()
            if raw:
                return decode_line(raw)
            if raw is not None:
                continue
            if not self._connected:
                raise TransportFailure("Connection is closed")
            try:
                data = await self._stream.recv(self.read_size, self.receive_timeout)
            except TransportFailure as e:
                self.mark_disconnected(str(e))
                raise
            if not data:
                self.mark_disconnected("peer closed the stream")
                raise TransportFailure("Peer closed the stream")
            self._push(data)

    def close(self) -> None:
        self._connected = False
        self._frames.clear()
        self._stream.close()
