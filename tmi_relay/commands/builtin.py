"""Built-in reply commands."""

from __future__ import annotations

from dataclasses import dataclass

from ..irc.connection import Connection
from ..irc.parser import Message, build_command
from ..irc.tags import tag_contains


@dataclass(frozen=True)
class ReplyCommand:
    """Reply with a fixed text when a chat message equals ``trigger``.

    ``template`` may reference ``{nick}`` and ``{channel}``. With ``badge``
    set, only senders whose ``badges`` tag contains it get an answer.
    """

    trigger: str
    template: str
    badge: str | None = None

    def matches(self, message: Message) -> bool:
        if message.command != "PRIVMSG" or message.body is None:
            return False
        if message.body.strip() != self.trigger:
            return False
        if self.badge is not None:
            return tag_contains(message.tags, "badges", self.badge)
        return True

    async def handle(self, connection: Connection, message: Message) -> None:
        target = message.recipient or f"#{connection.channel}"
        text = self.template.format(
            nick=message.nick or "", channel=target.lstrip("#")
        )
        await connection.send(build_command("PRIVMSG", target, trailing=text))


def parse_reply_rule(rule: str) -> ReplyCommand:
    """Build a ReplyCommand from ``trigger=text`` or ``trigger@badge=text``."""
    trigger, sep, template = rule.partition("=")
    trigger = trigger.strip()
    if not sep or not trigger or not template:
        raise ValueError(f"reply must look like 'trigger=text', got {rule!r}")
    badge = None
    if "@" in trigger:
        trigger, badge = (part.strip() for part in trigger.split("@", 1))
        if not trigger or not badge:
            raise ValueError(f"invalid badge restriction in {rule!r}")
    try:
        template.format(nick="nick", channel="channel")
    except (AttributeError, IndexError, KeyError, ValueError) as e:
        raise ValueError(f"reply text in {rule!r} has an unusable placeholder: {e}") from e
    return ReplyCommand(trigger, template, badge)


def default_commands() -> tuple[ReplyCommand, ...]:
    return (ReplyCommand("$hi", "hi, {nick}"),)
