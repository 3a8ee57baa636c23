from __future__ import annotations

import asyncio
import socket

import pytest

from tmi_relay.engine.multiplexer import ReadinessMultiplexer


class SocketSource:
    def __init__(self, sock: socket.socket, buffered: bool = False) -> None:
        self.sock = sock
        self.buffered = buffered

    def fileno(self) -> int:
        return self.sock.fileno()

    def pending(self) -> bool:
        return self.buffered


class ClosedSource:
    def fileno(self) -> int:
        return -1

    def pending(self) -> bool:
        return False


@pytest.fixture
def sockpair():
    a, b = socket.socketpair()
    a.setblocking(False)
    yield a, b
    a.close()
    b.close()


@pytest.mark.asyncio
async def test_readable_source_is_reported(sockpair):
    a, b = sockpair
    other_a, other_b = socket.socketpair()
    try:
        mux = ReadinessMultiplexer(asyncio.Event())
        b.sendall(b"x")
        ready = await mux.wait(
            {"chat": SocketSource(a), "idle": SocketSource(other_a), "gone": ClosedSource()}, 1.0
        )
        assert ready == {"chat"}
    finally:
        other_a.close()
        other_b.close()


@pytest.mark.asyncio
async def test_timeout_returns_empty(sockpair):
    a, _ = sockpair
    mux = ReadinessMultiplexer(asyncio.Event())
    assert await mux.wait({"chat": SocketSource(a)}, 0.05) == set()


@pytest.mark.asyncio
async def test_buffered_source_returns_without_waiting(sockpair):
    a, _ = sockpair
    mux = ReadinessMultiplexer(asyncio.Event())
    ready = await asyncio.wait_for(mux.wait({"chat": SocketSource(a, buffered=True)}, None), 0.5)
    assert ready == {"chat"}


@pytest.mark.asyncio
async def test_stop_set_before_wait_returns_immediately(sockpair):
    a, b = sockpair
    stop = asyncio.Event()
    stop.set()
    b.sendall(b"x")
    mux = ReadinessMultiplexer(stop)
    assert await mux.wait({"chat": SocketSource(a)}, 10) == set()


@pytest.mark.asyncio
async def test_stop_set_during_wait_interrupts_it(sockpair):
    a, _ = sockpair
    stop = asyncio.Event()
    mux = ReadinessMultiplexer(stop)
    asyncio.get_running_loop().call_later(0.05, stop.set)
    ready = await asyncio.wait_for(mux.wait({"chat": SocketSource(a)}, 10), 2.0)
    assert ready == set()


@pytest.mark.asyncio
async def test_readers_are_removed_after_each_wait(sockpair):
    a, b = sockpair
    mux = ReadinessMultiplexer(asyncio.Event())
    await mux.wait({"chat": SocketSource(a)}, 0.01)
    loop = asyncio.get_running_loop()
    # remove_reader returns False when nothing is registered for the fd
    assert loop.remove_reader(a.fileno()) is False


@pytest.mark.asyncio
async def test_regular_file_is_always_ready(tmp_path, sockpair):
    a, _ = sockpair
    path = tmp_path / "commands.txt"
    path.write_text("hello\n")
    with open(path, "rb") as f:
        source = SocketSource(f)  # fileno() is all the multiplexer needs
        mux = ReadinessMultiplexer(asyncio.Event())
        ready = await asyncio.wait_for(mux.wait({"file": source, "chat": SocketSource(a)}, 10), 1.0)
    assert ready == {"file"}
