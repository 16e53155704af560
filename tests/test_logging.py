from __future__ import annotations

import json
import logging

from hue_mqtt.logging import LogEvent, create_logger
from hue_mqtt.logging.structured import JSONFormatter


def _records(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records]


def test_record_is_json_with_event(caplog) -> None:
    events = create_logger("bridge-test")

    with caplog.at_level(logging.INFO, logger="hue_mqtt.bridge-test"):
        events.info(LogEvent.DEVICE_COMMAND_APPLIED, "Command applied", {"device_id": "Lamp"})

    (record,) = _records(caplog)
    assert record["event"] == "device.command.applied"
    assert record["component"] == "bridge-test"
    assert record["level"] == "INFO"
    assert record["metadata"] == {"device_id": "Lamp"}


def test_bound_context_is_merged(caplog) -> None:
    events = create_logger("pairing-test").bind(bridge_address="192.168.1.2")

    with caplog.at_level(logging.INFO, logger="hue_mqtt.pairing-test"):
        events.info(LogEvent.PAIRING_STARTED, "Connecting")
        events.error(LogEvent.PAIRING_FAILED, "Gave up", {"attempts": 12}, exc_info=RuntimeError("x"))

    started, failed = _records(caplog)
    assert started["metadata"] == {"bridge_address": "192.168.1.2"}
    assert failed["metadata"] == {"bridge_address": "192.168.1.2", "attempts": 12}
    assert failed["exception"] == {"type": "RuntimeError", "message": "x"}


def test_bind_does_not_change_parent(caplog) -> None:
    parent = create_logger("parent-test")
    parent.bind(device_id="Lamp")

    with caplog.at_level(logging.INFO, logger="hue_mqtt.parent-test"):
        parent.info(LogEvent.BRIDGE_STARTED, "Started")

    assert "metadata" not in _records(caplog)[0]


def test_debug_is_skipped_below_level(caplog) -> None:
    events = create_logger("quiet-test", level=logging.INFO)

    with caplog.at_level(logging.INFO, logger="hue_mqtt.quiet-test"):
        events.debug(LogEvent.MQTT_PUBLISH_SUCCESS, "Published message")

    assert caplog.records == []


def test_formatter_wraps_plain_records() -> None:
    record = logging.LogRecord("hue_bridge.registry", logging.INFO, __file__, 1, "Registered %s", ("Lamp",), None)

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "Registered Lamp"
    assert data["logger"] == "hue_bridge.registry"
