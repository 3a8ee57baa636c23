"""Line framing over a byte stream."""

from __future__ import annotations

from ..constants import FRAME_BUFFER_CAPACITY
from ..errors.internal import FramingOverflow


class FrameBuffer:
    """Accumulates bytes and slices out delimiter-terminated lines.

    ``capacity`` bounds a single frame, not the whole buffer: several short
    lines may be buffered at once, but no line (terminated or not) may grow
    past the limit. Overflow clears the buffer and raises ``FramingOverflow``.
    """

    def __init__(
        self, capacity: int = FRAME_BUFFER_CAPACITY, delimiter: bytes = b"\n"
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.capacity = capacity
        self.delimiter = delimiter
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def push(self, data: bytes) -> None:
        if not data:
            return
        self._buffer += data
        tail_start = self._buffer.rfind(self.delimiter)
        tail = (
            len(self._buffer)
            if tail_start < 0
            else len(self._buffer) - tail_start - len(self.delimiter)
        )
        if tail > self.capacity:
            self._overflow(tail)

    def has_line(self) -> bool:
        return self.delimiter in self._buffer

    def take_line(self) -> bytes | None:
        index = self._buffer.find(self.delimiter)
        if index < 0:
            return None
        if index > self.capacity:
            self._overflow(index)
        line = bytes(self._buffer[:index])
        del self._buffer[: index + len(self.delimiter)]
        # CRLF framing: the delimiter is LF, drop the CR that precedes it
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def clear(self) -> None:
        self._buffer.clear()

    def _overflow(self, size: int) -> None:
        self._buffer.clear()
        raise FramingOverflow(self.capacity, size)
