"""Error hierarchy and structured error logging."""

from .handling import classify_error, log_error  # noqa: F401
from .internal import (  # noqa: F401
    ConfigError,
    DecodeAnomaly,
    FramingOverflow,
    HandshakeFailure,
    InternalError,
    NetworkError,
    ParsingError,
    TransportFailure,
)

__all__ = [
    "ConfigError",
    "DecodeAnomaly",
    "FramingOverflow",
    "HandshakeFailure",
    "InternalError",
    "NetworkError",
    "ParsingError",
    "TransportFailure",
    "classify_error",
    "log_error",
]
