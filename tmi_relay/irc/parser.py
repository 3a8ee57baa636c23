"""IRC message decoding and outbound command formatting."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors.internal import DecodeAnomaly

TAGS_MARKER = "@"
PREFIX_MARKER = ":"


@dataclass(frozen=True, slots=True)
class Message:
    """One decoded protocol line.

    ``tags`` is the raw tag block (leading ``@`` included) and stays opaque
    here; see ``irc.tags`` for lookups. For ``PING`` only ``command`` and
    ``sender`` are set, and ``sender`` carries the ping token verbatim.
    """

    command: str
    tags: str | None = None
    sender: str | None = None
    recipient: str | None = None
    body: str | None = None
    raw: str = field(default="", repr=False, compare=False)

    @property
    def nick(self) -> str | None:
        if not self.sender:
            return None
        return self.sender.split("!", 1)[0]

    @property
    def is_ping(self) -> bool:
        return self.command == "PING"


def _split_token(rest: str) -> tuple[str | None, str]:
    if not rest:
        return None, ""
    token, _, remainder = rest.partition(" ")
    return (token or None), remainder


def _ping_remainder(rest: str) -> str | None:
    candidate = rest
    if candidate.startswith(PREFIX_MARKER):
        _, candidate = _split_token(candidate)
    if candidate == "PING":
        return ""
    if candidate.startswith("PING "):
        return candidate[len("PING ") :]
    return None


def parse_message(line: str) -> Message:
    """Parse one protocol line (delimiter already removed).

    Short or malformed lines never raise: absent tokens leave their fields
    empty.
    """
    rest = line
    tags = None
    if rest.startswith(TAGS_MARKER):
        tags, rest = _split_token(rest)

    ping = _ping_remainder(rest)
    if ping is not None:
        return Message(command="PING", sender=ping, raw=line)

    sender = None
    if rest.startswith(PREFIX_MARKER):
        token, rest = _split_token(rest)
        sender = token[1:] if token and len(token) > 1 else None

    command, rest = _split_token(rest)
    recipient, rest = _split_token(rest)

    body: str | None = rest or None
    if recipient is not None and recipient.startswith(PREFIX_MARKER):
        # trailing parameter with no middle parameter, e.g. "NOTICE :text"
        body = f"{recipient} {rest}" if rest else recipient
        recipient = None
    if body is not None and body.startswith(PREFIX_MARKER):
        body = body[1:]

    return Message(
        command=command or "",
        tags=tags,
        sender=sender,
        recipient=recipient,
        body=body,
        raw=line,
    )


def decode_line(raw: bytes) -> Message:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeAnomaly(
            f"Line is not valid UTF-8 at byte {e.start}",
            data={"length": len(raw), "offset": e.start},
        ) from e
    return parse_message(text)


def _strip_line_breaks(text: str) -> str:
    return text.replace("\r", " ").replace("\n", " ")


def build_command(verb: str, *params: str, trailing: str | None = None) -> str:
    """Format ``VERB param... [:trailing]`` without the line terminator."""
    parts = [_strip_line_breaks(verb)]
    parts.extend(_strip_line_breaks(p) for p in params if p)
    if trailing is not None:
        parts.append(PREFIX_MARKER + _strip_line_breaks(trailing))
    return " ".join(parts)


def build_privmsg(channel: str, text: str) -> str:
    target = channel if channel.startswith("#") else f"#{channel}"
    return build_command("PRIVMSG", target, trailing=text)


def build_pong(message: Message) -> str:
    token = message.sender or ""
    return f"PONG {token}" if token else "PONG"


def format_message(message: Message) -> str:
    """Re-encode the populated fields of a decoded message as a line."""
    if message.is_ping:
        return build_pong(message).replace("PONG", "PING", 1)
    parts: list[str] = []
    if message.tags:
        parts.append(message.tags)
    if message.sender:
        parts.append(PREFIX_MARKER + message.sender)
    if message.command:
        parts.append(message.command)
    if message.recipient:
        parts.append(message.recipient)
    if message.body is not None:
        parts.append(PREFIX_MARKER + message.body)
    return " ".join(parts)
