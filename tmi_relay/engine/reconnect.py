"""Bounded exponential backoff around connect + handshake."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_ATTEMPTS,
    RECONNECT_MAX_DELAY,
)
from ..errors.internal import HandshakeFailure, TransportFailure
from ..irc.connection import Connection
from ..logs.logger import logger

Connector = Callable[[], Awaitable[Connection]]


class ReconnectPolicy:
    """Retries a connector with exponential backoff and an attempt cap.

    Backoff sleeps end early when the stop event is set, in which case
    ``establish`` returns None instead of a connection.
    """

    def __init__(
        self,
        stop_event: asyncio.Event,
        *,
        max_attempts: int = RECONNECT_MAX_ATTEMPTS,
        base_delay: float = RECONNECT_BASE_DELAY,
        max_delay: float = RECONNECT_MAX_DELAY,
        user: str | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.stop_event = stop_event
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.user = user

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.log_event(
            "reconnect",
            "retry_scheduled",
            level=logging.WARNING,
            user=self.user,
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay=round(delay, 2),
            error=str(error),
        )

    async def establish(self, connect: Connector) -> Connection | None:
        """Return a ready connection, or None if shutdown was requested.

        Raises:
            HandshakeFailure: Every attempt failed.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay),
            retry=retry_if_exception_type((TransportFailure, HandshakeFailure)),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if self.stop_event.is_set():
                        return None
                    connection = await connect()
                    logger.log_event(
                        "reconnect",
                        "established",
                        user=self.user,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    return connection
        except (TransportFailure, HandshakeFailure) as e:
            logger.log_event(
                "reconnect",
                "exhausted",
                level=logging.ERROR,
                user=self.user,
                attempts=self.max_attempts,
                error=str(e),
            )
            raise HandshakeFailure(
                f"Could not establish a ready connection after {self.max_attempts} attempts",
                data={"attempts": self.max_attempts, "cause": type(e).__name__},
            ) from e
        return None
