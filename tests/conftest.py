from __future__ import annotations

from collections.abc import Iterable

import pytest

from tests.fixtures.streams import FakeStream
from tmi_relay.irc.connection import Connection
from tmi_relay.logging_config import error_aggregator


@pytest.fixture
def make_connection():
    """Build a Connection over a scripted stream; returns (connection, stream)."""

    def _make(
        chunks: Iterable[bytes | Exception] = (),
        *,
        block_when_empty: bool = False,
        **kwargs,
    ) -> tuple[Connection, FakeStream]:
        stream = FakeStream(chunks, block_when_empty=block_when_empty)
        kwargs.setdefault("user", "bot")
        kwargs.setdefault("channel", "chan")
        return Connection(stream, **kwargs), stream

    return _make


@pytest.fixture(autouse=True)
def _reset_error_aggregator():
    error_aggregator.reset()
    yield
    error_aggregator.reset()
