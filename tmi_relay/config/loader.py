"""Command line and environment parsing into RelaySettings."""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from ..errors.internal import ConfigError
from ..relay.formatting import OutputFormat
from .model import DeliveryMode, RelaySettings

ENV_NICK = "TWITCH_USER"
ENV_CREDENTIAL = "TWITCH_TOKEN"
ENV_CHANNEL = "TWITCH_CHANNEL"
ENV_HOST = "TWITCH_IRC_SERVER"
ENV_PORT = "TWITCH_IRC_PORT"
ENV_MODE = "TMI_RELAY_MODE"
ENV_FORMAT = "TMI_RELAY_FORMAT"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmi-relay",
        description="Relay a Twitch chat channel to stdout, named pipes or a ZeroMQ bus.",
    )
    parser.add_argument("-u", "--user", dest="nick", help=f"login name (env {ENV_NICK})")
    parser.add_argument(
        "-t", "--token", dest="credential", help=f"OAuth token (env {ENV_CREDENTIAL})"
    )
    parser.add_argument("-c", "--channel", help=f"channel to join (env {ENV_CHANNEL})")
    parser.add_argument("--host", help=f"chat server (env {ENV_HOST})")
    parser.add_argument("--port", type=int, help=f"chat server port (env {ENV_PORT})")
    parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in DeliveryMode],
        help=f"delivery mode (env {ENV_MODE}, default stdio)",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        help=f"output format (env {ENV_FORMAT}, default tsv)",
    )
    parser.add_argument("--output-pipe", help="named pipe receiving chat lines")
    parser.add_argument("--input-pipe", help="named pipe read for lines to send")
    parser.add_argument("--publish", dest="publish_endpoint", help="ZeroMQ PUB bind endpoint")
    parser.add_argument(
        "--subscribe", dest="subscribe_endpoint", help="ZeroMQ SUB connect endpoint"
    )
    parser.add_argument("--topic", dest="bus_topic", help="ZeroMQ topic")
    parser.add_argument(
        "--no-stdin",
        dest="read_stdin",
        action="store_false",
        default=None,
        help="do not forward standard input lines in stdio mode",
    )
    parser.add_argument(
        "--send-user", action="store_true", default=None, help="send USER during login"
    )
    parser.add_argument(
        "--reply",
        dest="replies",
        action="append",
        metavar="TRIGGER=TEXT",
        help="extra reply command, TRIGGER may carry @badge; repeatable",
    )
    parser.add_argument("--reconnect-attempts", type=int)
    parser.add_argument("--step-timeout", type=float)
    parser.add_argument("-v", "--debug", action="store_true", default=None)
    return parser


def _merge(args: argparse.Namespace, environ: Mapping[str, str]) -> dict[str, Any]:
    env_fallbacks = {
        "nick": ENV_NICK,
        "credential": ENV_CREDENTIAL,
        "channel": ENV_CHANNEL,
        "host": ENV_HOST,
        "port": ENV_PORT,
        "mode": ENV_MODE,
        "output_format": ENV_FORMAT,
    }
    data: dict[str, Any] = {}
    for key, value in vars(args).items():
        if value is None and key in env_fallbacks:
            value = environ.get(env_fallbacks[key]) or None
        if value is not None:
            data[key] = value
    return data


def load_settings(
    argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None
) -> RelaySettings:
    """Parse arguments, fill gaps from the environment, validate.

    Raises:
        ConfigError: The resulting settings are invalid or incomplete.
    """
    args = build_parser().parse_args(argv)
    data = _merge(args, os.environ if environ is None else environ)
    try:
        return RelaySettings.model_validate(data)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(
            "Invalid configuration: " + "; ".join(problems),
            data={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
        ) from e
