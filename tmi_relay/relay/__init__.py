"""Relay endpoints: output sinks, command feeds and message formatting."""

from .feeds import BusFeed, Feed, LineFeed  # noqa: F401
from .formatting import OutputFormat, format_json, format_tsv, get_formatter  # noqa: F401
from .sinks import BusSink, PipeSink, Sink, StreamSink, ensure_fifo  # noqa: F401

__all__ = [
    "BusFeed",
    "BusSink",
    "Feed",
    "LineFeed",
    "OutputFormat",
    "PipeSink",
    "Sink",
    "StreamSink",
    "ensure_fifo",
    "format_json",
    "format_tsv",
    "get_formatter",
]
