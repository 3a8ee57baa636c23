"""IRC subsystem package.

Framing, decoding, transport, connection and handshake for Twitch chat.
"""

from .connection import Connection  # noqa: F401
from .framing import FrameBuffer  # noqa: F401
from .handshake import (  # noqa: F401
    HandshakeController,
    HandshakeState,
    establish_connection,
)
from .parser import (  # noqa: F401
    Message,
    build_command,
    build_privmsg,
    decode_line,
    format_message,
    parse_message,
)
from .tags import get_tag, parse_tags, tag_contains  # noqa: F401
from .transport import SocketStream, open_stream  # noqa: F401

__all__ = [
    "Connection",
    "FrameBuffer",
    "HandshakeController",
    "HandshakeState",
    "Message",
    "SocketStream",
    "build_command",
    "build_privmsg",
    "decode_line",
    "establish_connection",
    "format_message",
    "get_tag",
    "open_stream",
    "parse_message",
    "parse_tags",
    "tag_contains",
]
