"""Event logger for the relay.

Events are identified by a ``(domain, action)`` pair. Human text comes from
the co-located template catalog; structured context is appended only when
debug output is enabled. Handlers are not installed here: records propagate
to the root logger configured by ``logging_config.LoggerConfigurator``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ..logging_config import debug_requested
from . import event_catalog

EVENT_COLUMN_WIDTH = 32
PREFIX_WIDTH = 24


def render_event(domain: str, action: str, context: Mapping[str, object]) -> tuple[str, bool]:
    """Return ``(human_text, derived)`` for an event.

    ``derived`` is True when no template exists and the text was built from
    the event name. A template with a missing placeholder is used verbatim.
    """
    template = event_catalog.EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}", True
    try:
        return template.format(**context), False
    except (KeyError, IndexError, ValueError):
        return template, False


def connection_label(user: object, channel: object) -> str:
    """``[user#channel]`` padded to a fixed column; ``system`` without a user."""
    name = user if isinstance(user, str) and user else "system"
    if isinstance(channel, str) and channel:
        name = f"{name}#{channel}"
    return f"[{name.ljust(PREFIX_WIDTH)[:PREFIX_WIDTH]}]"


class RelayLogger:
    def __init__(self, name: str = "tmi_relay") -> None:
        self.logger = logging.getLogger(name)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def bind(self, **context: object) -> BoundLogger:
        """Logger that adds ``context`` (typically user and channel) to every event."""
        return BoundLogger(self, context)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **context: object,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        derived = False
        if human is None:
            human, derived = render_event(domain, action, context)
        label = connection_label(context.pop("user", None), context.pop("channel", None))
        if derived:
            context["derived"] = True
        if debug_requested() or self.logger.isEnabledFor(logging.DEBUG):
            message = self._debug_line(f"{domain}_{action}".lower(), label, human, context)
        else:
            message = f"{label} {human}"
        self.logger.log(level, message, exc_info=exc_info)

    @staticmethod
    def _debug_line(
        event_name: str, label: str, human: str, context: Mapping[str, object]
    ) -> str:
        if len(event_name) > EVENT_COLUMN_WIDTH:
            event_name = event_name[: EVENT_COLUMN_WIDTH - 1] + "…"
        line = f"{event_name.ljust(EVENT_COLUMN_WIDTH)} {label} {human}"
        if context:
            line += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
        return line


class BoundLogger:
    """``log_event`` with fixed context merged under the call's own keywords."""

    def __init__(self, parent: RelayLogger, context: Mapping[str, object]) -> None:
        self.parent = parent
        self.context = dict(context)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **context: object,
    ) -> None:
        self.parent.log_event(
            domain, action, level, human, exc_info=exc_info, **{**self.context, **context}
        )


logger = RelayLogger()
