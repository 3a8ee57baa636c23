"""Exception types raised inside the relay.

Each class names a failure category the loop and the reconnect policy act
on. The transport and decoder wrap raw `OSError`, `TimeoutError` and
`UnicodeDecodeError` into these before they escape.

Hierarchy:
  InternalError:      Base for all internal errors.
  NetworkError:       Transient network/IO issues (safe to retry).
  TransportFailure:   Connect/send/receive failure on the chat connection.
  ParsingError:       Input that could not be interpreted.
  DecodeAnomaly:      Inbound line that is not valid UTF-8.
  FramingOverflow:    Inbound line longer than the frame buffer capacity.
  HandshakeFailure:   No ready connection could be established.
  ConfigError:        Invalid process inputs.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Root of the hierarchy; ``data`` carries key/value context for logging."""

    data: dict[str, object]

    def __init__(self, message: str, *, data: Mapping[str, object] | None = None) -> None:
        super().__init__(message)
        self.data = dict(data or {})


class NetworkError(InternalError):
    """Socket-level trouble; retrying may help."""


class TransportFailure(NetworkError):
    """Connect, send or receive failed on the chat connection.

    Fatal during the handshake; in steady state it marks the connection dead
    and triggers one reconnection.
    """


class ParsingError(InternalError):
    """Inbound bytes that do not form a usable protocol line."""


class DecodeAnomaly(ParsingError):
    """A protocol line could not be decoded.

    Absorbed while relaying, fatal while handshaking.
    """


class FramingOverflow(InternalError):
    """A protocol line exceeded the frame buffer capacity.

    The connection that produced it is unusable and must be replaced.
    """

    def __init__(self, capacity: int, buffered: int) -> None:
        super().__init__(
            f"Line exceeds frame capacity ({buffered} > {capacity} bytes)",
            data={"capacity": capacity, "buffered": buffered},
        )
        self.capacity = capacity
        self.buffered = buffered


class HandshakeFailure(InternalError):
    """A ready connection could not be established."""


class ConfigError(InternalError):
    """Process inputs failed validation."""


__all__ = [
    "InternalError",
    "NetworkError",
    "TransportFailure",
    "ParsingError",
    "DecodeAnomaly",
    "FramingOverflow",
    "HandshakeFailure",
    "ConfigError",
]
