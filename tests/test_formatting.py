from __future__ import annotations

import json

import pytest

from tmi_relay.irc.parser import Message, parse_message
from tmi_relay.relay.formatting import OutputFormat, format_json, format_tsv, get_formatter

PRIVMSG = parse_message('@display-name=Foo :foo!foo@foo PRIVMSG #bar :say "hi" \\o/')


def test_tsv_has_tags_sender_command_body():
    assert format_tsv(PRIVMSG) == '@display-name=Foo\tfoo!foo@foo\tPRIVMSG\tsay "hi" \\o/'


def test_tsv_missing_fields_are_empty():
    assert format_tsv(Message(command="")) == "\t\t"
    assert format_tsv(Message(command="RECONNECT")) == "\t\tRECONNECT\t"


def test_json_escapes_quotes_and_backslashes():
    line = format_json(PRIVMSG)
    assert '\\"hi\\"' in line
    assert "\\\\o/" in line
    assert json.loads(line) == {
        "tags": "@display-name=Foo",
        "sender": "foo!foo@foo",
        "command": "PRIVMSG",
        "message": 'say "hi" \\o/',
    }


def test_json_keeps_non_ascii():
    assert "héllo" in format_json(Message(command="PRIVMSG", body="héllo"))


@pytest.mark.parametrize("value,expected", [("tsv", format_tsv), (OutputFormat.JSON, format_json)])
def test_get_formatter(value, expected):
    assert get_formatter(value) is expected


def test_get_formatter_rejects_unknown():
    with pytest.raises(ValueError):
        get_formatter("xml")
