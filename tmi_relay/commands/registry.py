"""Ordered, immutable registry of chat command responders."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

from ..irc.connection import Connection
from ..irc.parser import Message


@runtime_checkable
class Command(Protocol):
    def matches(self, message: Message) -> bool: ...

    def handle(self, connection: Connection, message: Message) -> Any: ...


class CommandRegistry:
    """Commands in registration order.

    Built once and never mutated; every matching command runs for a
    message, not only the first.
    """

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: tuple[Command, ...] = tuple(commands)
        for command in self._commands:
            if not isinstance(command, Command):
                raise TypeError(f"{command!r} does not implement matches/handle")

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands)

    async def dispatch(self, connection: Connection, message: Message) -> int:
        """Run every matching command; return how many matched.

        A failing command is logged and does not stop the others.
        """
        matched = 0
        for command in self._commands:
            try:
                if not command.matches(message):
                    continue
                matched += 1
                result = command.handle(connection, message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:  # noqa: BLE001
                connection.log.log_event(
                    "command",
                    "handler_error",
                    level=logging.ERROR,
                    command=type(command).__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        if matched:
            connection.log.log_event(
                "command",
                "dispatched",
                level=logging.DEBUG,
                matched=matched,
            )
        return matched
