"""Authenticate, negotiate capabilities and join: the connection handshake."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum, auto

from ..constants import (
    CAPABILITY_REQUEST,
    CONNECT_TIMEOUT,
    END_OF_NAMES_CODE,
    HANDSHAKE_STEP_TIMEOUT,
    RECEIVE_TIMEOUT,
    WELCOME_CODES,
)
from ..errors.internal import (
    DecodeAnomaly,
    FramingOverflow,
    HandshakeFailure,
    TransportFailure,
)
from ..logs.logger import logger
from .connection import Connection
from .parser import Message, build_command, build_pong
from .transport import ByteStream, open_stream

LOGIN_FAILURE_NOTICES = (
    "Login authentication failed",
    "Improperly formatted auth",
    "Login unsuccessful",
)


class HandshakeState(Enum):
    CONNECTED = auto()
    AWAIT_WELCOME = auto()
    REQUEST_CAPS = auto()
    AWAIT_CAP_ACK = auto()
    JOIN = auto()
    AWAIT_JOIN_END = auto()
    READY = auto()
    FAILED = auto()


def normalize_credential(credential: str) -> str:
    return credential if credential.startswith("oauth:") else f"oauth:{credential}"


class HandshakeController:
    """Drives one Connection from freshly connected to joined.

    Every wait step discards unrelated messages until the expected reply
    arrives, bounded by ``step_timeout`` seconds.
    """

    def __init__(
        self,
        connection: Connection,
        nick: str,
        credential: str,
        channel: str,
        *,
        welcome_codes: Iterable[str] = WELCOME_CODES,
        capabilities: str = CAPABILITY_REQUEST,
        step_timeout: float = HANDSHAKE_STEP_TIMEOUT,
        send_user: bool = False,
    ) -> None:
        self.connection = connection
        self.nick = nick.lower()
        self.credential = normalize_credential(credential)
        self.channel = channel.lower().lstrip("#")
        self.welcome_codes = frozenset(welcome_codes)
        self.capabilities = capabilities
        self.step_timeout = step_timeout
        self.send_user = send_user
        self.state = HandshakeState.CONNECTED
        self.log = logger.bind(user=self.nick, channel=self.channel)

    def _set_state(self, new_state: HandshakeState) -> None:
        if self.state != new_state:
            self.log.log_event(
                "handshake",
                "state_change",
                level=logging.DEBUG,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    async def run(self) -> Connection:
        """Run every step in order and return the ready connection.

        Raises:
            HandshakeFailure: A step timed out, the server rejected the login,
                or the connection failed underneath.
        """
        self.log.log_event("handshake", "start")
        try:
            await self.connection.send(f"PASS {self.credential}")
            await self.connection.send(build_command("NICK", self.nick))
            if self.send_user:
                await self.connection.send(
                    build_command("USER", self.nick, "0", "*", trailing=self.nick)
                )
            self._set_state(HandshakeState.AWAIT_WELCOME)
            await self._await_reply(lambda m: m.command in self.welcome_codes)

            self._set_state(HandshakeState.REQUEST_CAPS)
            await self.connection.send(
                build_command("CAP", "REQ", trailing=self.capabilities)
            )
            self._set_state(HandshakeState.AWAIT_CAP_ACK)
            reply = await self._await_reply(lambda m: m.command == "CAP")
            if "NAK" in (reply.body or ""):
                self.log.log_event(
                    "handshake",
                    "capabilities_rejected",
                    level=logging.WARNING,
                    reply=reply.body,
                )

            self._set_state(HandshakeState.JOIN)
            await self.connection.send(build_command("JOIN", f"#{self.channel}"))
            self._set_state(HandshakeState.AWAIT_JOIN_END)
            await self._await_reply(lambda m: m.command == END_OF_NAMES_CODE)
        except (TransportFailure, DecodeAnomaly, FramingOverflow) as e:
            failed_in = self.state.name
            self._set_state(HandshakeState.FAILED)
            raise HandshakeFailure(
                f"Handshake failed during {failed_in}: {e}",
                data={"state": failed_in, "cause": type(e).__name__},
            ) from e
        except HandshakeFailure:
            self._set_state(HandshakeState.FAILED)
            raise

        self._set_state(HandshakeState.READY)
        self.log.log_event("handshake", "ready")
        return self.connection

    async def _await_reply(self, predicate: Callable[[Message], bool]) -> Message:
        try:
            async with asyncio.timeout(self.step_timeout):
                while True:
                    message = await self.connection.wait_next_message()
                    if predicate(message):
                        return message
                    await self._absorb(message)
        except TimeoutError as e:
            raise HandshakeFailure(
                f"No reply within {self.step_timeout}s during {self.state.name}",
                data={"state": self.state.name, "timeout": self.step_timeout},
            ) from e

    async def _absorb(self, message: Message) -> None:
        if message.is_ping:
            await self.connection.send(build_pong(message))
            return
        if message.command == "NOTICE" and any(
            notice in (message.body or "") for notice in LOGIN_FAILURE_NOTICES
        ):
            raise HandshakeFailure(
                f"Server rejected login: {message.body}",
                data={"state": self.state.name, "reason": "auth"},
            )
        self.log.log_event(
            "handshake",
            "discarded",
            level=logging.DEBUG,
            command=message.command,
        )


async def establish_connection(
    host: str,
    port: int,
    nick: str,
    credential: str,
    channel: str,
    *,
    connect_timeout: float = CONNECT_TIMEOUT,
    receive_timeout: float = RECEIVE_TIMEOUT,
    step_timeout: float = HANDSHAKE_STEP_TIMEOUT,
    send_user: bool = False,
    opener: Callable[[str, int, float], Awaitable[ByteStream]] = open_stream,
) -> Connection:
    """Transport connect plus handshake; returns a ready Connection.

    Raises:
        TransportFailure: The transport could not connect.
        HandshakeFailure: The handshake did not complete.
    """
    stream = await opener(host, port, connect_timeout)
    connection = Connection(
        stream,
        receive_timeout=receive_timeout,
        user=nick.lower(),
        channel=channel.lower().lstrip("#"),
    )
    controller = HandshakeController(
        connection,
        nick,
        credential,
        channel,
        step_timeout=step_timeout,
        send_user=send_user,
    )
    try:
        return await controller.run()
    except BaseException:
        connection.close()
        raise
