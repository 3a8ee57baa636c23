"""Human text for log events, read from the co-located ``event_templates.json``.

The file maps ``domain -> action -> template``; templates use ``str.format``
placeholders filled from the event's keyword context.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

TEMPLATES_PATH = Path(__file__).with_name("event_templates.json")

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}


def load_event_templates(path: Path = TEMPLATES_PATH) -> dict[tuple[str, str], str]:
    """Flatten the JSON catalog into ``(domain, action) -> template``.

    An unreadable catalog yields a single ``app/load_error`` entry so the
    problem shows up in the logs instead of breaking them.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {("app", "load_error"): f"Event templates file missing: {path.name}"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    if not isinstance(raw, Mapping):
        return {}
    return {
        (domain, action): text
        for domain, actions in raw.items()
        if isinstance(actions, Mapping)
        for action, text in actions.items()
        if isinstance(text, str)
    }


def reload_event_templates(path: Path | None = None) -> None:
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = load_event_templates(path or TEMPLATES_PATH)


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "load_event_templates", "reload_event_templates"]
