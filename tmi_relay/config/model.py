from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..commands.builtin import parse_reply_rule
from ..constants import (
    DEFAULT_BUS_TOPIC,
    DEFAULT_PORT,
    DEFAULT_SERVER,
    HANDSHAKE_STEP_TIMEOUT,
    LOOP_WAIT_TIMEOUT,
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_ATTEMPTS,
    RECONNECT_MAX_DELAY,
    SERVER_ACTIVITY_TIMEOUT,
)
from ..relay.formatting import OutputFormat


class DeliveryMode(str, Enum):
    """Where chat traffic goes and where command lines come from."""

    STDIO = "stdio"
    PIPE = "pipe"
    BUS = "bus"


class RelaySettings(BaseModel):
    """Validated process inputs.

    Attributes:
        nick: Twitch login name used for NICK.
        credential: OAuth token; the ``oauth:`` prefix is added when missing.
        channel: Channel to join, stored lowercase without ``#``.
        mode: Delivery mode for output and the command feed.
        output_format: Serialization of relayed messages.
        output_pipe / input_pipe: Named pipe paths for ``pipe`` mode.
        publish_endpoint / subscribe_endpoint: ZeroMQ endpoints for ``bus`` mode.
        replies: Extra ``trigger=text`` reply commands.
    """

    host: str = DEFAULT_SERVER
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    nick: str = Field(min_length=3, max_length=25)
    credential: str = Field(min_length=1)
    channel: str = Field(min_length=1)
    mode: DeliveryMode = DeliveryMode.STDIO
    output_format: OutputFormat = OutputFormat.TSV
    output_pipe: str | None = None
    input_pipe: str | None = None
    publish_endpoint: str | None = None
    subscribe_endpoint: str | None = None
    bus_topic: str = DEFAULT_BUS_TOPIC
    read_stdin: bool = True
    send_user: bool = False
    replies: list[str] = Field(default_factory=list)
    wait_timeout: float = Field(default=LOOP_WAIT_TIMEOUT, gt=0)
    activity_timeout: float = Field(default=SERVER_ACTIVITY_TIMEOUT, gt=0)
    step_timeout: float = Field(default=HANDSHAKE_STEP_TIMEOUT, gt=0)
    reconnect_attempts: int = Field(default=RECONNECT_MAX_ATTEMPTS, ge=1)
    reconnect_base_delay: float = Field(default=RECONNECT_BASE_DELAY, ge=0)
    reconnect_max_delay: float = Field(default=RECONNECT_MAX_DELAY, ge=0)
    debug: bool = False

    @field_validator("nick", mode="before")
    @classmethod
    def validate_nick(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("nick must be a string")
        return v.strip().lower()

    @field_validator("channel", mode="before")
    @classmethod
    def validate_channel(cls, v: Any) -> str:
        """Strip whitespace and leading '#', lowercase."""
        if not isinstance(v, str):
            raise ValueError("channel must be a string")
        stripped = v.strip().lstrip("#").lower()
        if not stripped or " " in stripped:
            raise ValueError(f"invalid channel name {v!r}")
        return stripped

    @field_validator("credential", mode="before")
    @classmethod
    def validate_credential(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("credential must be a non-empty string")
        token = v.strip()
        return token if token.startswith("oauth:") else f"oauth:{token}"

    @field_validator("replies")
    @classmethod
    def validate_replies(cls, v: list[str]) -> list[str]:
        for rule in v:
            parse_reply_rule(rule)
        return v

    @model_validator(mode="after")
    def validate_mode(self) -> RelaySettings:
        """Each delivery mode needs its own endpoints."""
        if self.mode is DeliveryMode.PIPE and not (self.output_pipe and self.input_pipe):
            raise ValueError("pipe mode needs both output_pipe and input_pipe")
        if self.mode is DeliveryMode.BUS and not (
            self.publish_endpoint and self.subscribe_endpoint
        ):
            raise ValueError("bus mode needs both publish_endpoint and subscribe_endpoint")
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError("reconnect_max_delay must not be below reconnect_base_delay")
        return self
