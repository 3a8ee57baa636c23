from __future__ import annotations

from ..logging_config import log_structured_error
from .internal import (
    ConfigError,
    DecodeAnomaly,
    FramingOverflow,
    HandshakeFailure,
    InternalError,
    NetworkError,
    ParsingError,
)


def classify_error(error: BaseException) -> str:
    """Map an exception onto the error category used in structured logs."""
    if isinstance(error, HandshakeFailure):
        return "handshake"
    if isinstance(error, FramingOverflow):
        return "framing"
    if isinstance(error, DecodeAnomaly):
        return "decode"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        return "transport"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, ConfigError):
        return "config"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Logs an error message with the associated exception details.

    The exception's own structured ``data`` (for internal errors) is merged
    under the caller's context so both end up in the log line.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    merged: dict = {}
    if isinstance(error, InternalError):
        merged.update(error.data)
    if context:
        merged.update(context)
    log_structured_error(
        error_type=classify_error(error),
        message=f"{message}: {error}",
        exception=error,
        context=merged or None,
    )
