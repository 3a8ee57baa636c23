from __future__ import annotations

import pytest

from tmi_relay.config import DeliveryMode, RelaySettings, load_settings
from tmi_relay.errors.internal import ConfigError
from tmi_relay.relay.formatting import OutputFormat

BASE_ARGS = ["-u", "  MyBot ", "-t", "abc123", "-c", "#SomeChannel"]


def test_cli_arguments_are_normalized():
    settings = load_settings(BASE_ARGS, environ={})
    assert settings.nick == "mybot"
    assert settings.credential == "oauth:abc123"
    assert settings.channel == "somechannel"
    assert settings.mode is DeliveryMode.STDIO
    assert settings.output_format is OutputFormat.TSV
    assert settings.host == "irc.chat.twitch.tv"


def test_environment_fills_missing_arguments():
    env = {
        "TWITCH_USER": "envbot",
        "TWITCH_TOKEN": "oauth:tok",
        "TWITCH_CHANNEL": "envchan",
        "TMI_RELAY_FORMAT": "json",
    }
    settings = load_settings([], environ=env)
    assert (settings.nick, settings.credential, settings.channel) == ("envbot", "oauth:tok", "envchan")
    assert settings.output_format is OutputFormat.JSON


def test_arguments_win_over_environment():
    settings = load_settings(BASE_ARGS, environ={"TWITCH_CHANNEL": "other"})
    assert settings.channel == "somechannel"


def test_missing_credentials_raise_config_error():
    with pytest.raises(ConfigError) as exc_info:
        load_settings(["-c", "chan"], environ={})
    assert "nick" in exc_info.value.data["fields"]
    assert "credential" in exc_info.value.data["fields"]


def test_pipe_mode_requires_both_pipes():
    with pytest.raises(ConfigError):
        load_settings([*BASE_ARGS, "-m", "pipe", "--output-pipe", "/tmp/out"], environ={})
    settings = load_settings(
        [*BASE_ARGS, "-m", "pipe", "--output-pipe", "/tmp/out", "--input-pipe", "/tmp/in"],
        environ={},
    )
    assert settings.mode is DeliveryMode.PIPE


def test_bus_mode_requires_endpoints():
    with pytest.raises(ConfigError):
        load_settings([*BASE_ARGS, "-m", "bus", "--publish", "tcp://*:5556"], environ={})


def test_reply_rules_are_validated():
    settings = load_settings([*BASE_ARGS, "--reply", "$so=hello", "--reply", "!x@vip=y"], environ={})
    assert settings.replies == ["$so=hello", "!x@vip=y"]
    with pytest.raises(ConfigError):
        load_settings([*BASE_ARGS, "--reply", "broken"], environ={})
    with pytest.raises(ConfigError):
        load_settings([*BASE_ARGS, "--reply", "$x=hello {user}"], environ={})


def test_flags_default_from_model():
    settings = load_settings(BASE_ARGS, environ={})
    assert settings.read_stdin is True
    assert settings.send_user is False
    settings = load_settings([*BASE_ARGS, "--no-stdin", "--send-user", "-v"], environ={})
    assert settings.read_stdin is False
    assert settings.send_user is True
    assert settings.debug is True


@pytest.mark.parametrize("channel", ["#", "  ", "two words"])
def test_invalid_channel_rejected(channel):
    with pytest.raises(ValueError):
        RelaySettings(nick="bot", credential="x", channel=channel)


def test_port_range_checked():
    with pytest.raises(ConfigError):
        load_settings([*BASE_ARGS, "--port", "70000"], environ={})
