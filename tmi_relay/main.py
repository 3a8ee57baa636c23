#!/usr/bin/env python3
"""
Main entry point for the Twitch chat relay
"""

from __future__ import annotations

import asyncio
import functools
import logging
import signal
import sys
from collections.abc import Sequence

from .commands import CommandRegistry, default_commands, parse_reply_rule
from .config import DeliveryMode, RelaySettings, load_settings
from .engine import ReconnectPolicy, RelayLoop
from .errors.handling import log_error
from .errors.internal import ConfigError, HandshakeFailure
from .irc.handshake import establish_connection
from .logging_config import LoggerConfigurator, error_aggregator
from .logs.logger import logger
from .relay.feeds import BusFeed, Feed, LineFeed
from .relay.formatting import get_formatter
from .relay.sinks import BusSink, PipeSink, Sink, StreamSink

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def build_registry(settings: RelaySettings) -> CommandRegistry:
    extra = [parse_reply_rule(rule) for rule in settings.replies]
    return CommandRegistry([*default_commands(), *extra])


def build_sink(settings: RelaySettings) -> Sink:
    if settings.mode is DeliveryMode.PIPE:
        return PipeSink(settings.output_pipe)
    if settings.mode is DeliveryMode.BUS:
        return BusSink(settings.publish_endpoint, settings.bus_topic)
    return StreamSink()


def build_feeds(settings: RelaySettings) -> list[Feed]:
    if settings.mode is DeliveryMode.PIPE:
        return [LineFeed.from_fifo(settings.input_pipe)]
    if settings.mode is DeliveryMode.BUS:
        return [BusFeed(settings.subscribe_endpoint, settings.bus_topic)]
    if settings.read_stdin:
        return [LineFeed.stdin()]
    return []


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set the stop event on SIGINT/SIGTERM; repeated signals are ignored."""
    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        if stop_event.is_set():
            return
        logger.log_event("app", "signal", level=logging.WARNING, signal=signal.Signals(signum).name)
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, handler, signum)


def remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.remove_signal_handler(signum)


async def main(settings: RelaySettings) -> int:
    """Relay until a signal arrives; returns the process exit code."""
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)
    sink: Sink | None = None
    feeds: list[Feed] = []
    try:
        try:
            sink = build_sink(settings)
            feeds = build_feeds(settings)
        except OSError as e:
            log_error("Could not set up relay endpoints", e, {"mode": settings.mode.value})
            return EXIT_FATAL

        connect = functools.partial(
            establish_connection,
            settings.host,
            settings.port,
            settings.nick,
            settings.credential,
            settings.channel,
            step_timeout=settings.step_timeout,
            send_user=settings.send_user,
        )
        policy = ReconnectPolicy(
            stop_event,
            max_attempts=settings.reconnect_attempts,
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
            user=settings.nick,
        )
        relay = RelayLoop(
            connect,
            build_registry(settings),
            sink,
            get_formatter(settings.output_format),
            channel=settings.channel,
            stop_event=stop_event,
            feeds=feeds,
            policy=policy,
            wait_timeout=settings.wait_timeout,
            activity_timeout=settings.activity_timeout,
            user=settings.nick,
        )
        logger.log_event(
            "app",
            "starting",
            user=settings.nick,
            channel=settings.channel,
            mode=settings.mode.value,
            host=settings.host,
            port=settings.port,
        )
        try:
            await relay.run()
        except HandshakeFailure as e:
            log_error("Giving up on the chat connection", e, {"user": settings.nick})
            return EXIT_FATAL
        return EXIT_OK
    finally:
        for feed in feeds:
            feed.close()
        if sink is not None:
            sink.close()
        remove_signal_handlers()
        error_aggregator.log_summary_report()
        logger.log_event("app", "shutdown", user=settings.nick)


def run(argv: Sequence[str] | None = None) -> None:
    """Synchronous entry point; exits with 0, 1 (fatal) or 2 (configuration)."""
    LoggerConfigurator().configure()
    try:
        settings = load_settings(argv)
    except ConfigError as e:
        log_error("Configuration error", e)
        sys.exit(EXIT_CONFIG)
    if settings.debug:
        LoggerConfigurator(debug=True).configure()
    try:
        code = asyncio.run(main(settings))
    except KeyboardInterrupt:
        code = EXIT_OK
    sys.exit(code)


if __name__ == "__main__":
    run()
