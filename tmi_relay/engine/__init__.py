"""Event loop, readiness multiplexing and reconnect policy."""

from .loop import RelayLoop  # noqa: F401
from .multiplexer import ReadinessMultiplexer, ReadinessSource  # noqa: F401
from .reconnect import Connector, ReconnectPolicy  # noqa: F401

__all__ = [
    "Connector",
    "ReadinessMultiplexer",
    "ReadinessSource",
    "ReconnectPolicy",
    "RelayLoop",
]
