from __future__ import annotations

import io
import json
import logging

import pytest

from tmi_relay.logging_config import LoggerConfigurator
from tmi_relay.logs import EVENT_TEMPLATES, reload_event_templates
from tmi_relay.logs.logger import RelayLogger


@pytest.fixture
def relay_logger(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    log = RelayLogger("tmi_relay.test")
    log.set_level(logging.INFO)
    return log


def test_template_is_rendered_with_prefix(relay_logger, caplog):
    with caplog.at_level(logging.INFO, logger="tmi_relay.test"):
        relay_logger.log_event("connection", "lost", level=logging.WARNING, user="bot", channel="chan", reason="eof")
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.getMessage().startswith("[bot#chan")
    assert "Connection lost: eof" in record.getMessage()


def test_unknown_event_gets_derived_text(relay_logger, caplog):
    with caplog.at_level(logging.INFO, logger="tmi_relay.test"):
        relay_logger.log_event("mystery", "did_something")
    assert "mystery: did something" in caplog.records[-1].getMessage()
    assert caplog.records[-1].getMessage().startswith("[system")


def test_missing_template_field_falls_back_to_raw_template(relay_logger, caplog):
    with caplog.at_level(logging.INFO, logger="tmi_relay.test"):
        relay_logger.log_event("connection", "lost")
    assert "{reason}" in caplog.records[-1].getMessage()


def test_debug_mode_adds_event_name_and_context(relay_logger, caplog):
    relay_logger.set_level(logging.DEBUG)
    with caplog.at_level(logging.DEBUG, logger="tmi_relay.test"):
        relay_logger.log_event("loop", "heartbeat", level=logging.DEBUG, idle=3.5)
    message = caplog.records[-1].getMessage()
    assert message.startswith("loop_heartbeat")
    assert "idle=3.5" in message


def test_below_level_is_skipped(relay_logger, caplog):
    with caplog.at_level(logging.INFO, logger="tmi_relay.test"):
        relay_logger.log_event("loop", "heartbeat", level=logging.DEBUG, idle=1)
    assert not caplog.records


def test_catalog_covers_used_events():
    for key in [
        ("handshake", "ready"),
        ("reconnect", "retry_scheduled"),
        ("loop", "stopped"),
        ("sink", "pipe_reader_gone"),
        ("feed", "closed"),
        ("command", "handler_error"),
        ("app", "starting"),
    ]:
        assert key in EVENT_TEMPLATES


def test_reload_from_custom_file(tmp_path):
    custom = tmp_path / "templates.json"
    custom.write_text(json.dumps({"x": {"y": "custom {v}", "bad": 3}}), encoding="utf-8")
    try:
        reload_event_templates(custom)
        from tmi_relay.logs import event_catalog

        assert event_catalog.EVENT_TEMPLATES == {("x", "y"): "custom {v}"}
        reload_event_templates(tmp_path / "missing.json")
        assert ("app", "load_error") in event_catalog.EVENT_TEMPLATES
    finally:
        reload_event_templates()


def test_configurator_writes_colored_output_to_given_stream(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    stream = io.StringIO()
    LoggerConfigurator(stream=stream).configure()
    try:
        assert logging.getLogger().level == logging.INFO
        logging.getLogger("tmi_relay.test").warning("visible")
        assert "visible" in stream.getvalue()
        LoggerConfigurator(debug=True, stream=stream).configure()
        assert logging.getLogger().level == logging.DEBUG
    finally:
        logging.basicConfig(force=True, handlers=[logging.NullHandler()])


def test_bound_context_is_applied_and_overridable(relay_logger, caplog):
    bound = relay_logger.bind(user="bot", channel="chan")
    with caplog.at_level(logging.INFO, logger="tmi_relay.test"):
        bound.log_event("connection", "lost", reason="eof")
        bound.log_event("connection", "lost", channel="other", reason="eof")
    first, second = (r.getMessage() for r in caplog.records[-2:])
    assert first.startswith("[bot#chan")
    assert second.startswith("[bot#other")
