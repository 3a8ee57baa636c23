"""Tunable constants for the relay.

Numeric values can be overridden through an environment variable of the
same name; an unparsable override is reported on stderr and ignored.
"""

import os
import sys


def _env_number(name: str, default: int | float) -> int | float:
    """``default`` unless ``$name`` parses as the same numeric type."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return type(default)(raw)
    except ValueError:
        print(
            f"{name}={raw!r} is not a valid {type(default).__name__}; keeping {default}",
            file=sys.stderr,
        )
        return default


# Server identity
DEFAULT_SERVER = os.getenv("TWITCH_IRC_SERVER", "irc.chat.twitch.tv")
DEFAULT_PORT = _env_number("TWITCH_IRC_PORT", 6667)

# Wire limits
FRAME_BUFFER_CAPACITY = _env_number(
    "FRAME_BUFFER_CAPACITY", 2048
)  # Longest accepted inbound line, in bytes
MAX_COMMAND_LENGTH = _env_number(
    "MAX_COMMAND_LENGTH", 1024
)  # Longest outbound command including CRLF
READ_CHUNK_SIZE = _env_number("READ_CHUNK_SIZE", 4096)  # Bytes per socket read
FEED_LINE_CAPACITY = _env_number(
    "FEED_LINE_CAPACITY", 4096
)  # Longest accepted command-feed line

# Timeouts (seconds)
CONNECT_TIMEOUT = _env_number("CONNECT_TIMEOUT", 10.0)  # Per-address TCP connect
RECEIVE_TIMEOUT = _env_number(
    "RECEIVE_TIMEOUT", 20.0
)  # Blocking receive used during the handshake
HANDSHAKE_STEP_TIMEOUT = _env_number(
    "HANDSHAKE_STEP_TIMEOUT", 30.0
)  # Upper bound for each handshake wait step
LOOP_WAIT_TIMEOUT = _env_number(
    "LOOP_WAIT_TIMEOUT", 20.0
)  # Readiness wait before a heartbeat tick
SERVER_ACTIVITY_TIMEOUT = _env_number(
    "SERVER_ACTIVITY_TIMEOUT", 360.0
)  # Idle connection considered dead (Twitch pings about every 5 minutes)

# Reconnect policy
RECONNECT_MAX_ATTEMPTS = _env_number(
    "RECONNECT_MAX_ATTEMPTS", 5
)  # Connection attempts before giving up
RECONNECT_BASE_DELAY = _env_number(
    "RECONNECT_BASE_DELAY", 1.0
)  # Exponential backoff multiplier
RECONNECT_MAX_DELAY = _env_number(
    "RECONNECT_MAX_DELAY", 60.0
)  # Backoff ceiling

# Handshake literals
WELCOME_CODES = ("001", "376")  # RPL_WELCOME / RPL_ENDOFMOTD
END_OF_NAMES_CODE = "366"
CAPABILITY_REQUEST = "twitch.tv/tags twitch.tv/commands"

# Bus defaults
DEFAULT_BUS_TOPIC = os.getenv("TMI_RELAY_BUS_TOPIC", "tmi")
