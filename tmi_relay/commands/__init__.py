"""Chat command responders."""

from .builtin import ReplyCommand, default_commands, parse_reply_rule  # noqa: F401
from .registry import Command, CommandRegistry  # noqa: F401

__all__ = [
    "Command",
    "CommandRegistry",
    "ReplyCommand",
    "default_commands",
    "parse_reply_rule",
]
