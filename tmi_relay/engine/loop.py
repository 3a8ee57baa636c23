"""Steady-state relay loop: chat traffic out to a sink, feed lines into chat."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from ..commands.registry import CommandRegistry
from ..constants import LOOP_WAIT_TIMEOUT, SERVER_ACTIVITY_TIMEOUT
from ..errors.handling import log_error
from ..errors.internal import FramingOverflow, TransportFailure
from ..irc.connection import Connection
from ..irc.parser import Message, build_pong, build_privmsg
from ..logs.logger import logger
from ..relay.feeds import Feed
from ..relay.sinks import Sink
from .multiplexer import ReadinessMultiplexer
from .reconnect import Connector, ReconnectPolicy

CONNECTION_KEY = "connection"


class RelayLoop:
    """Owns the live connection and moves traffic until shutdown.

    One readiness wait per iteration covers the connection and every
    feed. Within a wake-up all available chat messages are handled before
    any feed line is sent.
    """

    def __init__(
        self,
        connect: Connector,
        registry: CommandRegistry,
        sink: Sink,
        formatter: Callable[[Message], str],
        *,
        channel: str,
        stop_event: asyncio.Event,
        feeds: Iterable[Feed] = (),
        policy: ReconnectPolicy | None = None,
        wait_timeout: float = LOOP_WAIT_TIMEOUT,
        activity_timeout: float = SERVER_ACTIVITY_TIMEOUT,
        user: str | None = None,
    ) -> None:
        self.connect = connect
        self.registry = registry
        self.sink = sink
        self.formatter = formatter
        self.channel = channel.lstrip("#").lower()
        self.stop_event = stop_event
        self.feeds = list(feeds)
        self.policy = policy or ReconnectPolicy(stop_event, user=user)
        self.wait_timeout = wait_timeout
        self.activity_timeout = activity_timeout
        self.user = user
        self.log = logger.bind(user=user, channel=self.channel)
        self.connection: Connection | None = None
        self.multiplexer = ReadinessMultiplexer(stop_event)
        self.relayed = 0
        self.forwarded = 0
        self.reconnects = 0

    async def run(self, connection: Connection | None = None) -> None:
        """Run until the stop event is set.

        Raises:
            HandshakeFailure: No ready connection could be re-established.
        """
        self.connection = connection
        if self.connection is None:
            self.connection = await self.policy.establish(self.connect)
            if self.connection is None:
                return
        self.log.log_event("loop", "started", feeds=len(self.feeds))
        try:
            while True:
                sources = {CONNECTION_KEY: self.connection}
                sources.update((index, feed) for index, feed in enumerate(self.feeds))
                ready = await self.multiplexer.wait(sources, self.wait_timeout)
                if self.stop_event.is_set():
                    break
                if not ready:
                    self._heartbeat()
                if CONNECTION_KEY in ready:
                    await self._drain()
                for index, feed in enumerate(self.feeds):
                    if index in ready:
                        await self._forward(feed)
                self._check_idle()
                if not self.connection.is_connected():
                    if not await self._reconnect():
                        break
        finally:
            if self.connection is not None:
                self.connection.close()
            self.log.log_event(
                "loop",
                "stopped",
                relayed=self.relayed,
                forwarded=self.forwarded,
                reconnects=self.reconnects,
            )

    def _heartbeat(self) -> None:
        self.log.log_event(
            "loop",
            "heartbeat",
            level=logging.DEBUG,
            idle=round(self.connection.idle_for(), 1),
        )

    def _check_idle(self) -> None:
        idle = self.connection.idle_for()
        if self.connection.is_connected() and idle > self.activity_timeout:
            self.log.log_event(
                "loop",
                "server_silent",
                level=logging.WARNING,
                idle=round(idle, 1),
            )
            self.connection.mark_disconnected("no server activity")

    async def _drain(self) -> None:
        connection = self.connection
        try:
            while True:
                message = connection.try_next_message()
                if message is None:
                    return
                await self._handle(message)
        except FramingOverflow as e:
            log_error("Inbound line exceeded the frame buffer", e, {"user": self.user})
        except TransportFailure as e:
            log_error("Send failed while handling chat traffic", e, {"user": self.user})

    async def _handle(self, message: Message) -> None:
        if message.is_ping:
            await self.connection.send(build_pong(message))
            self.log.log_event("loop", "pong_sent", level=logging.DEBUG)
            return
        self.sink.emit(self.formatter(message))
        self.relayed += 1
        if message.command == "PRIVMSG":
            await self.registry.dispatch(self.connection, message)

    async def _forward(self, feed: Feed) -> None:
        line = feed.read_line()
        if line is None:
            return
        line = line.strip()
        if not line:
            return
        if not self.connection.is_connected():
            self.log.log_event(
                "loop", "feed_line_dropped", level=logging.WARNING, feed=feed.name
            )
            return
        try:
            await self.connection.send(build_privmsg(self.channel, line))
        except TransportFailure as e:
            log_error("Could not forward feed line", e, {"user": self.user, "feed": feed.name})
            return
        self.forwarded += 1

    async def _reconnect(self) -> bool:
        """Replace the dead connection; False when shutdown interrupted it."""
        self.connection.close()
        self.log.log_event("loop", "reconnecting", level=logging.WARNING)
        connection = await self.policy.establish(self.connect)
        if connection is None:
            return False
        self.connection = connection
        self.reconnects += 1
        return True
