"""Event logging: the template catalog and the ``(domain, action)`` logger."""

from .event_catalog import EVENT_TEMPLATES, reload_event_templates  # noqa: F401
from .logger import BoundLogger, RelayLogger, logger  # noqa: F401

__all__ = ["BoundLogger", "RelayLogger", "logger", "EVENT_TEMPLATES", "reload_event_templates"]
