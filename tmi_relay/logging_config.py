"""Root logging setup and error bookkeeping for the relay.

Log output goes to stderr through a ``colorlog`` handler; stdout is left
free for relayed chat. Errors reported through ``log_structured_error`` are
also counted per category so a summary can be printed at shutdown.
"""

import logging
import os
import sys
import threading
import time
from collections import defaultdict
from typing import Any

import colorlog

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "magenta",
}
# Only the loud levels tint the message body as well as the level name.
MESSAGE_COLORS = {"message": {"ERROR": "red", "CRITICAL": "magenta"}}
QUIET_LOGGERS = ("zmq", "asyncio")

error_log = logging.getLogger("tmi_relay.errors")


class ErrorAggregator:
    """Per-category error history, bounded to ``max_per_type`` entries each."""

    def __init__(self, max_per_type: int = 1000):
        self.max_per_type = max_per_type
        self.errors: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.lock = threading.Lock()
        self.start_time = time.time()

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        entry = {"timestamp": time.time(), "message": message, "context": dict(context or {})}
        with self.lock:
            history = self.errors[error_type]
            history.append(entry)
            overflow = len(history) - self.max_per_type
            if overflow > 0:
                del history[:overflow]

    def get_error_summary(self) -> dict[str, Any]:
        """Counts, hourly rate and the latest entry for every category seen."""
        with self.lock:
            hours = max((time.time() - self.start_time) / 3600, 1)
            return {
                error_type: {
                    "total_count": len(history),
                    "rate_per_hour": len(history) / hours,
                    "last_occurrence": history[-1] if history else None,
                }
                for error_type, history in self.errors.items()
            }

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            error_log.info("No errors recorded in current session")
            return
        error_log.warning("Error summary for this session:")
        for error_type, stats in sorted(summary.items()):
            error_log.warning(
                "  %s: %d total, %.1f/hour",
                error_type,
                stats["total_count"],
                stats["rate_per_hour"],
            )
            last = stats["last_occurrence"]
            if last:
                error_log.warning("    Last: %s", last["message"])

    def reset(self) -> None:
        with self.lock:
            self.errors.clear()
            self.start_time = time.time()


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log ``[TYPE] message | Exception: ... | Context: k=v | ...`` and count it.

    Args:
        error_type: Category of the error, e.g. ``transport`` or ``handshake``.
        message: Human description of what failed.
        exception: The exception that caused it, if any.
        context: Extra key/value pairs appended to the line.
        level: Logging level for the line.
    """
    parts = [f"[{error_type.upper()}] {message}"]
    if exception is not None:
        parts.append(f"Exception: {type(exception).__name__}: {exception}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    error_log.log(level, " | ".join(parts))
    error_aggregator.record_error(error_type, message, context)


def debug_requested(flag: bool = False) -> bool:
    """True when ``flag`` is set or the DEBUG env var is truthy."""
    return flag or os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")


class LoggerConfigurator:
    """Installs a single colored stream handler on the root logger."""

    def __init__(self, debug: bool = False, stream=None):
        self.debug = debug
        self.stream = stream if stream is not None else sys.stderr

    def build_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(
                LOG_FORMAT,
                datefmt=DATE_FORMAT,
                log_colors=LEVEL_COLORS,
                secondary_log_colors=MESSAGE_COLORS,
                reset=True,
            )
        )
        return handler

    def configure(self) -> None:
        level = logging.DEBUG if debug_requested(self.debug) else logging.INFO
        logging.basicConfig(level=level, handlers=[self.build_handler()], force=True)
        logging.getLogger().setLevel(level)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.INFO)
