"""Lookups over the raw IRCv3 tag block of a message."""

from __future__ import annotations

_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


def _unescape(value: str) -> str:
    if "\\" not in value:
        return value
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append(_ESCAPES.get(nxt, nxt))
    return "".join(out)


def parse_tags(raw_tags: str | None) -> dict[str, str]:
    if not raw_tags:
        return {}
    if raw_tags.startswith("@"):
        raw_tags = raw_tags[1:]
    tags: dict[str, str] = {}
    for tag in raw_tags.split(";"):
        if not tag:
            continue
        if "=" in tag:
            k, v = tag.split("=", 1)
        else:
            k, v = tag, ""
        tags[k] = _unescape(v)
    return tags


def get_tag(raw_tags: str | None, name: str) -> str | None:
    """Return the value of ``name`` or None when the tag is absent."""
    return parse_tags(raw_tags).get(name)


def tag_contains(raw_tags: str | None, name: str, substring: str) -> bool:
    value = get_tag(raw_tags, name)
    return value is not None and substring in value
