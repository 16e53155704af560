from __future__ import annotations

import threading
from types import SimpleNamespace

import paho.mqtt.client as mqtt
import pytest

from hue_mqtt import BusPublishError, BusSubscribeError, MQTTBusClient, create_logger


class FakePahoClient:
    def __init__(self) -> None:
        self.published: list[tuple[str, str, int, bool]] = []
        self.subscribed: list[tuple[str, int]] = []
        self.publish_rc = mqtt.MQTT_ERR_SUCCESS
        self.subscribe_rc = mqtt.MQTT_ERR_SUCCESS
        self.loop_running = False
        self.disconnected = False

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False):
        self.published.append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self.publish_rc)

    def subscribe(self, topic: str, qos: int = 0):
        self.subscribed.append((topic, qos))
        return self.subscribe_rc, 1

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True


def _reason(failure: bool = False):
    return SimpleNamespace(is_failure=failure)


@pytest.fixture
def client() -> MQTTBusClient:
    bus = MQTTBusClient(
        broker_host="localhost",
        broker_port=1883,
        client_id="test_bridge",
        logger=create_logger("mqtt-test"),
    )
    bus.client = FakePahoClient()
    yield bus
    bus.close()


def _connect(bus: MQTTBusClient) -> None:
    bus._on_connect(bus.client, None, None, _reason())


def test_publish_requires_connection(client: MQTTBusClient) -> None:
    with pytest.raises(BusPublishError):
        client.publish("Hue/Bridge/Device/Lamp/On", "true", retain=True)
    assert client.client.published == []


def test_publish_retained(client: MQTTBusClient) -> None:
    _connect(client)

    client.publish("Hue/Bridge/Device/Lamp/On", "true", retain=True)

    assert client.client.published == [("Hue/Bridge/Device/Lamp/On", "true", 1, True)]
    assert client.get_stats()["published"] == 1


def test_publish_broker_failure(client: MQTTBusClient) -> None:
    _connect(client)
    client.client.publish_rc = mqtt.MQTT_ERR_NO_CONN

    with pytest.raises(BusPublishError):
        client.publish("Hue/Bridge/Device/Lamp/On", "true")


def test_subscribe_failure(client: MQTTBusClient) -> None:
    client.client.subscribe_rc = mqtt.MQTT_ERR_NO_CONN

    with pytest.raises(BusSubscribeError):
        client.subscribe("Hue/Bridge/Device/Lamp/#")


def test_resubscribe_on_reconnect(client: MQTTBusClient) -> None:
    client.subscribe("Hue/Bridge/Device/Lamp/#")
    client.subscribe("Hue/Service/+/Register")
    client.client.subscribed.clear()

    _connect(client)

    assert [topic for topic, _ in client.client.subscribed] == [
        "Hue/Bridge/Device/Lamp/#",
        "Hue/Service/+/Register",
    ]
    assert client.is_connected()


def test_refused_connection_stays_disconnected(client: MQTTBusClient) -> None:
    client._on_connect(client.client, None, None, _reason(failure=True))
    assert not client.is_connected()


def test_disconnect_clears_connection(client: MQTTBusClient) -> None:
    _connect(client)
    client._on_disconnect(client.client, None, None, _reason(failure=True))
    assert not client.is_connected()


def test_message_delivered_to_handler(client: MQTTBusClient) -> None:
    received: list[tuple] = []
    done = threading.Event()

    def handler(topic, payload, error) -> None:
        received.append((topic, payload, error))
        done.set()

    client.set_handler(handler)
    client._on_message(client.client, None, SimpleNamespace(topic="Hue/Bridge/Device/Lamp/On/Set", payload=b"true"))

    assert done.wait(timeout=2.0)
    assert received == [("Hue/Bridge/Device/Lamp/On/Set", "true", None)]
    assert client.get_stats()["received"] == 1


def test_undecodable_payload_delivered_as_error(client: MQTTBusClient) -> None:
    received: list[tuple] = []
    done = threading.Event()

    def handler(topic, payload, error) -> None:
        received.append((topic, payload, error))
        done.set()

    client.set_handler(handler)
    client._on_message(client.client, None, SimpleNamespace(topic="Hue/x/y/Set", payload=b"\xff\xfe"))

    assert done.wait(timeout=2.0)
    topic, payload, error = received[0]
    assert payload is None
    assert isinstance(error, UnicodeDecodeError)


def test_handler_exception_does_not_escape(client: MQTTBusClient) -> None:
    calls: list[str] = []
    done = threading.Event()

    def handler(topic, payload, error) -> None:
        calls.append(topic)
        if len(calls) == 2:
            done.set()
        raise RuntimeError("boom")

    client.set_handler(handler)
    for _ in range(2):
        client._on_message(client.client, None, SimpleNamespace(topic="Hue/x/y/Set", payload=b"1"))

    assert done.wait(timeout=2.0)


def test_close_is_idempotent(client: MQTTBusClient) -> None:
    client._running = True
    _connect(client)

    client.close()
    client.close()

    assert client.client.disconnected
    assert not client.is_connected()
