"""Byte stream transport for the chat connection."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Protocol

from ..constants import CONNECT_TIMEOUT
from ..errors.internal import TransportFailure
from ..logs.logger import logger


class ByteStream(Protocol):
    """Duplex byte stream consumed by ``Connection``."""

    def fileno(self) -> int: ...

    def recv_nowait(self, size: int) -> bytes | None: ...

    async def recv(self, size: int, timeout: float) -> bytes: ...

    async def send(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class SocketStream:
    """Non-blocking TCP socket driven through the running asyncio loop."""

    def __init__(self, sock: socket.socket) -> None:
        sock.setblocking(False)
        self._sock = sock
        self.closed = False

    def fileno(self) -> int:
        if self.closed:
            return -1
        return self._sock.fileno()

    def recv_nowait(self, size: int) -> bytes | None:
        """Read what is available; None when the read would block."""
        try:
            return self._sock.recv(size)
        except (BlockingIOError, InterruptedError):
            return None
        except OSError as e:
            raise TransportFailure(f"Receive failed: {e}") from e

    async def recv(self, size: int, timeout: float) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.sock_recv(self._sock, size), timeout)
        except TimeoutError as e:
            raise TransportFailure(
                f"No data received within {timeout}s", data={"timeout": timeout}
            ) from e
        except OSError as e:
            raise TransportFailure(f"Receive failed: {e}") from e

    async def send(self, data: bytes) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendall(self._sock, data)
        except OSError as e:
            raise TransportFailure(f"Send failed: {e}") from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._sock.close()
        except OSError:
            logger.log_event("transport", "close_error", level=logging.DEBUG)


async def open_stream(
    host: str, port: int, timeout: float = CONNECT_TIMEOUT
) -> SocketStream:
    """Resolve ``host`` and connect to the first address that accepts.

    Raises:
        TransportFailure: Resolution failed or no address accepted.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except OSError as e:
        raise TransportFailure(
            f"Could not resolve {host}: {e}", data={"host": host, "port": port}
        ) from e

    last_error: BaseException | None = None
    for family, sock_type, proto, _canon, address in infos:
        sock = socket.socket(family, sock_type, proto)
        sock.setblocking(False)
        try:
            await asyncio.wait_for(loop.sock_connect(sock, address), timeout)
        except (OSError, TimeoutError) as e:
            sock.close()
            last_error = e
            logger.log_event(
                "transport",
                "address_failed",
                level=logging.DEBUG,
                address=address[0],
                port=port,
                error=str(e) or type(e).__name__,
            )
            continue
        logger.log_event(
            "transport", "connected", level=logging.DEBUG, address=address[0], port=port
        )
        return SocketStream(sock)

    raise TransportFailure(
        f"Could not connect to {host}:{port}",
        data={"host": host, "port": port, "error": str(last_error)},
    )
