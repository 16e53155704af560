from __future__ import annotations

from typing import Any

import pytest

from hue_bridge.errors import DeviceCommError, NotAuthorizedYet, TransportConnectError
from hue_mqtt.client import BusPublishError
from hue_transport.rest import color_mode_for


class FakeLight:
    def __init__(self, name: str, light_id: str = "1", state: dict[str, Any] | None = None) -> None:
        self.light_id = light_id
        self.name = name
        self.unique_id = f"00:17:88:01:00:00:00:0{light_id}-0b"
        self._state: dict[str, Any] = dict(state or {"on": False, "bri": 0})
        self.calls: list[dict[str, Any]] = []
        self.fail = False

    @property
    def state(self) -> dict[str, Any]:
        return dict(self._state)

    def set_state(self, **fields: Any) -> None:
        self.calls.append(fields)
        if self.fail:
            raise DeviceCommError(f"Light {self.name} is unreachable")
        self._state.update(fields)
        mode = color_mode_for(fields)
        if mode is not None:
            self._state["colormode"] = mode


class FakeSession:
    def __init__(self, lights: list[FakeLight], friendly_name: str = "Philips hue") -> None:
        self.lights = lights
        self.friendly_name = friendly_name
        self.tokens: list[str] = []
        self.user_names: list[str] = []
        # Each entry is either a token or an exception to raise
        self.create_user_results: list[Any] = []

    def authenticate(self, token: str) -> None:
        self.tokens.append(token)

    def create_user(self, proposed_name: str) -> str:
        self.user_names.append(proposed_name)
        if not self.create_user_results:
            raise NotAuthorizedYet("Link button not pressed")
        result = self.create_user_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def list_devices(self) -> list[FakeLight]:
        return list(self.lights)


class FakeTransport:
    def __init__(self, session: FakeSession) -> None:
        self.session = session
        self.addresses: list[str] = []
        self.unreachable = False

    def connect(self, address: str) -> FakeSession:
        self.addresses.append(address)
        if self.unreachable:
            raise TransportConnectError(f"No bridge at {address}")
        return self.session


class FakeBus:
    def __init__(self) -> None:
        self.published: list[tuple[str, str, bool]] = []
        self.subscriptions: list[str] = []
        self.handler = None
        self.close_calls = 0
        self.fail_publish = False

    def publish(self, topic: str, payload: str, retain: bool = False) -> None:
        if self.fail_publish:
            raise BusPublishError(f"Not connected to broker, dropped publish to '{topic}'")
        if "+" in topic or "#" in topic:
            # paho refuses wildcards in publish topics
            raise ValueError("Publish topic cannot contain wildcards.")
        self.published.append((topic, payload, retain))

    def subscribe(self, topic_filter: str) -> None:
        self.subscriptions.append(topic_filter)

    def set_handler(self, handler) -> None:
        self.handler = handler

    def close(self) -> None:
        self.close_calls += 1

    def states(self) -> list[tuple[str, str, bool]]:
        return [p for p in self.published if not p[0].startswith("New/")]

    def discoveries(self) -> list[tuple[str, str, bool]]:
        return [p for p in self.published if p[0].startswith("New/")]


@pytest.fixture
def light() -> FakeLight:
    return FakeLight("Desk Lamp")


@pytest.fixture
def session(light: FakeLight) -> FakeSession:
    return FakeSession([light])


@pytest.fixture
def transport(session: FakeSession) -> FakeTransport:
    return FakeTransport(session)


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()
