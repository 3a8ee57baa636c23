from __future__ import annotations

import asyncio
import os
import socket
import time

import pytest

from tests.fixtures.streams import RecordingSink
from tmi_relay.commands import CommandRegistry, ReplyCommand
from tmi_relay.engine.loop import RelayLoop
from tmi_relay.engine.reconnect import ReconnectPolicy
from tmi_relay.errors.internal import HandshakeFailure, TransportFailure
from tmi_relay.irc.connection import Connection
from tmi_relay.irc.transport import SocketStream
from tmi_relay.relay.feeds import LineFeed
from tmi_relay.relay.formatting import format_tsv


class RecordingStream(SocketStream):
    def __init__(self, sock: socket.socket, events: list) -> None:
        super().__init__(sock)
        self.events = events

    async def send(self, data: bytes) -> None:
        self.events.append(("send", data.decode("utf-8").removesuffix("\r\n")))
        await super().send(data)


async def _never_connect() -> Connection:
    raise TransportFailure("no server in this test")


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def chat_pair():
    pairs = []

    def _make(events: list) -> tuple[Connection, socket.socket]:
        client, server = socket.socketpair()
        pairs.append((client, server))
        stream = RecordingStream(client, events)
        return Connection(stream, user="bot", channel="chan"), server

    yield _make
    for client, server in pairs:
        client.close()
        server.close()


@pytest.fixture
def pipe_feed():
    read_fd, write_fd = os.pipe()
    feed = LineFeed(read_fd, name="test-pipe", owns_fd=True)
    yield feed, write_fd
    feed.close()
    os.close(write_fd)


def _make_loop(sink, stop, *, feeds=(), registry=None, connect=_never_connect, **kwargs):
    return RelayLoop(
        connect,
        registry or CommandRegistry(),
        sink,
        format_tsv,
        channel="#Chan",
        stop_event=stop,
        feeds=feeds,
        policy=ReconnectPolicy(stop, max_attempts=2, base_delay=0, max_delay=0),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_chat_messages_are_handled_before_feed_line(chat_pair, pipe_feed):
    events: list = []
    conn, server = chat_pair(events)
    feed, write_fd = pipe_feed
    sink = RecordingSink(events)
    stop = asyncio.Event()

    chat = b"".join(f":u{i}!u{i}@u{i} PRIVMSG #chan :msg {i}\r\n".encode() for i in range(5))
    server.sendall(chat)
    os.write(write_fd, b"hello from feed\n")

    loop = _make_loop(sink, stop, feeds=[feed])
    task = asyncio.create_task(loop.run(conn))
    await _wait_until(lambda: ("send", "PRIVMSG #chan :hello from feed") in events)
    stop.set()
    await asyncio.wait_for(task, 2.0)

    feed_index = events.index(("send", "PRIVMSG #chan :hello from feed"))
    emitted = [i for i, (kind, _) in enumerate(events) if kind == "emit"]
    assert len(emitted) == 5
    assert max(emitted) < feed_index
    assert loop.relayed == 5
    assert loop.forwarded == 1
    assert not conn.is_connected()


@pytest.mark.asyncio
async def test_ping_is_answered_and_not_relayed(chat_pair):
    events: list = []
    conn, server = chat_pair(events)
    sink = RecordingSink()
    stop = asyncio.Event()
    server.sendall(b"PING :tmi.twitch.tv\r\n")

    task = asyncio.create_task(_make_loop(sink, stop).run(conn))
    await _wait_until(lambda: ("send", "PONG :tmi.twitch.tv") in events)
    stop.set()
    await asyncio.wait_for(task, 2.0)
    assert sink.lines == []


@pytest.mark.asyncio
async def test_privmsg_goes_to_sink_then_commands(chat_pair):
    events: list = []
    conn, server = chat_pair(events)
    sink = RecordingSink(events)
    stop = asyncio.Event()
    registry = CommandRegistry([ReplyCommand("$hi", "hi, {nick}")])
    server.sendall(b":foo!foo@foo.tmi.twitch.tv PRIVMSG #chan :$hi\r\n")
    server.sendall(b":tmi.twitch.tv USERSTATE #chan\r\n")

    task = asyncio.create_task(_make_loop(sink, stop, registry=registry).run(conn))
    await _wait_until(lambda: len(sink.lines) == 2)
    stop.set()
    await asyncio.wait_for(task, 2.0)

    assert events[0] == ("emit", "\tfoo!foo@foo.tmi.twitch.tv\tPRIVMSG\t$hi")
    assert events[1] == ("send", "PRIVMSG #chan :hi, foo")
    assert sink.lines[1] == "\ttmi.twitch.tv\tUSERSTATE\t"


@pytest.mark.asyncio
async def test_peer_close_triggers_reconnect(chat_pair):
    events: list = []
    first, first_server = chat_pair(events)
    second, second_server = chat_pair(events)
    sink = RecordingSink()
    stop = asyncio.Event()

    async def connect() -> Connection:
        return second

    loop = _make_loop(sink, stop, connect=connect)
    task = asyncio.create_task(loop.run(first))
    first_server.close()
    await _wait_until(lambda: loop.connection is second)
    second_server.sendall(b":a!a@a PRIVMSG #chan :after reconnect\r\n")
    await _wait_until(lambda: len(sink.lines) == 1)
    stop.set()
    await asyncio.wait_for(task, 2.0)

    assert loop.reconnects == 1
    assert sink.lines == ["\ta!a@a\tPRIVMSG\tafter reconnect"]
    assert not first.is_connected()


@pytest.mark.asyncio
async def test_overflow_forces_reconnect_and_exhaustion_is_fatal(chat_pair):
    events: list = []
    conn, server = chat_pair(events)
    stop = asyncio.Event()
    server.sendall(b"x" * 5000)

    loop = _make_loop(RecordingSink(), stop)
    with pytest.raises(HandshakeFailure):
        await asyncio.wait_for(loop.run(conn), 2.0)
    assert not conn.is_connected()


@pytest.mark.asyncio
async def test_initial_connect_failure_is_fatal():
    stop = asyncio.Event()
    with pytest.raises(HandshakeFailure):
        await _make_loop(RecordingSink(), stop).run()


@pytest.mark.asyncio
async def test_stop_before_run_returns_and_closes(chat_pair):
    conn, _ = chat_pair([])
    stop = asyncio.Event()
    stop.set()
    await asyncio.wait_for(_make_loop(RecordingSink(), stop).run(conn), 1.0)
    assert not conn.is_connected()


def test_silent_server_marks_connection_dead(chat_pair):
    conn, _ = chat_pair([])
    loop = _make_loop(RecordingSink(), asyncio.Event(), activity_timeout=60)
    loop.connection = conn
    conn.last_activity = time.monotonic() - 120
    loop._check_idle()
    assert not conn.is_connected()


@pytest.mark.asyncio
async def test_blank_feed_lines_are_not_sent(chat_pair, pipe_feed):
    events: list = []
    conn, _ = chat_pair(events)
    feed, write_fd = pipe_feed
    stop = asyncio.Event()
    os.write(write_fd, b"   \nreal\n")

    loop = _make_loop(RecordingSink(), stop, feeds=[feed])
    task = asyncio.create_task(loop.run(conn))
    await _wait_until(lambda: loop.forwarded == 1)
    stop.set()
    await asyncio.wait_for(task, 2.0)
    assert [e for e in events if e[0] == "send"] == [("send", "PRIVMSG #chan :real")]
