"""Serialization of decoded messages for the output sinks."""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum

from ..irc.parser import Message


class OutputFormat(str, Enum):
    TSV = "tsv"
    JSON = "json"


def format_tsv(message: Message) -> str:
    """``tags<TAB>sender[<TAB>command]<TAB>body``; absent fields are empty."""
    fields = [message.tags or "", message.sender or ""]
    if message.command:
        fields.append(message.command)
    fields.append(message.body or "")
    return "\t".join(fields)


def format_json(message: Message) -> str:
    return json.dumps(
        {
            "tags": message.tags,
            "sender": message.sender,
            "command": message.command,
            "message": message.body,
        },
        ensure_ascii=False,
    )


FORMATTERS: dict[OutputFormat, Callable[[Message], str]] = {
    OutputFormat.TSV: format_tsv,
    OutputFormat.JSON: format_json,
}


def get_formatter(output_format: OutputFormat | str) -> Callable[[Message], str]:
    return FORMATTERS[OutputFormat(output_format)]
