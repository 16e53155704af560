from __future__ import annotations

from typing import Any

import pytest
import requests

from hue_bridge.errors import AuthenticationError, DeviceCommError, NotAuthorizedYet, TransportConnectError
from hue_transport import HueRestTransport

BASE = "http://192.168.1.2/api"

LIGHTS = {
    "2": {"name": "Porch", "uniqueid": "00:17:88:01:00:bd:c7:b9-0b", "state": {"on": False, "bri": 1}},
    "10": {"name": "Hall", "uniqueid": "00:17:88:01:00:bd:c7:c0-0b", "state": {"on": True}},
    "1": {"name": "Desk Lamp", "modelid": "LCT015", "state": {"on": True, "bri": 144, "xy": [0.5, 0.4]}},
}


class FakeResponse:
    def __init__(self, body: Any, status: int = 200) -> None:
        self.body = body
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Server Error")

    def json(self) -> Any:
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class FakeHttp:
    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[tuple[str, str, Any]] = []

    def request(self, method: str, url: str, *, json: Any = None, timeout: float | None = None) -> FakeResponse:
        self.requests.append((method, url, json))
        result = self.routes[(method, url)]
        if isinstance(result, requests.RequestException):
            raise result
        return result if isinstance(result, FakeResponse) else FakeResponse(result)


@pytest.fixture
def http() -> FakeHttp:
    http = FakeHttp()
    http.routes[("GET", f"{BASE}/config")] = {"name": "Philips hue", "apiversion": "1.50.0"}
    http.routes[("GET", f"{BASE}/token/config")] = {"name": "Living Room", "whitelist": {}}
    http.routes[("GET", f"{BASE}/token/lights")] = LIGHTS
    return http


def _session(http: FakeHttp):
    session = HueRestTransport(http=http).connect("192.168.1.2")
    session.authenticate("token")
    return session


def test_connect_probes_bridge(http: FakeHttp) -> None:
    session = HueRestTransport(http=http).connect("192.168.1.2")

    assert session.friendly_name == "Philips hue"
    assert http.requests == [("GET", f"{BASE}/config", None)]


def test_connect_unreachable(http: FakeHttp) -> None:
    http.routes[("GET", f"{BASE}/config")] = requests.ConnectionError("No route to host")

    with pytest.raises(TransportConnectError):
        HueRestTransport(http=http).connect("192.168.1.2")


def test_connect_invalid_json(http: FakeHttp) -> None:
    http.routes[("GET", f"{BASE}/config")] = FakeResponse(ValueError("Expecting value"))

    with pytest.raises(TransportConnectError):
        HueRestTransport(http=http).connect("192.168.1.2")


def test_authenticate_records_bridge_name(http: FakeHttp) -> None:
    session = _session(http)

    assert session.token == "token"
    assert session.friendly_name == "Living Room"


def test_authenticate_rejected(http: FakeHttp) -> None:
    http.routes[("GET", f"{BASE}/token/config")] = [
        {"error": {"type": 1, "address": "/", "description": "unauthorized user"}}
    ]
    session = HueRestTransport(http=http).connect("192.168.1.2")

    with pytest.raises(AuthenticationError, match="unauthorized user"):
        session.authenticate("token")
    assert session.token is None


def test_authenticate_without_whitelist(http: FakeHttp) -> None:
    http.routes[("GET", f"{BASE}/token/config")] = {"name": "Philips hue"}
    session = HueRestTransport(http=http).connect("192.168.1.2")

    with pytest.raises(AuthenticationError):
        session.authenticate("token")


def test_list_devices_sorted_by_id(http: FakeHttp) -> None:
    lights = _session(http).list_devices()

    assert [light.light_id for light in lights] == ["1", "2", "10"]
    assert [light.name for light in lights] == ["Desk Lamp", "Porch", "Hall"]
    assert lights[0].state["bri"] == 144
    assert lights[0].model_id == "LCT015"


def test_list_devices_requires_authentication(http: FakeHttp) -> None:
    session = HueRestTransport(http=http).connect("192.168.1.2")

    with pytest.raises(AuthenticationError):
        session.list_devices()


def test_create_user_link_button_not_pressed(http: FakeHttp) -> None:
    http.routes[("POST", BASE)] = [
        {"error": {"type": 101, "address": "", "description": "link button not pressed"}}
    ]
    session = HueRestTransport(http=http).connect("192.168.1.2")

    with pytest.raises(NotAuthorizedYet):
        session.create_user("hue-mqtt#1700000000")
    assert http.requests[-1] == ("POST", BASE, {"devicetype": "hue-mqtt#1700000000"})


def test_create_user_success(http: FakeHttp) -> None:
    http.routes[("POST", BASE)] = [{"success": {"username": "83b7780291a6ceffbe0bd049104df"}}]
    session = HueRestTransport(http=http).connect("192.168.1.2")

    assert session.create_user("hue-mqtt#1700000000") == "83b7780291a6ceffbe0bd049104df"


def test_create_user_other_error(http: FakeHttp) -> None:
    http.routes[("POST", BASE)] = [{"error": {"type": 7, "description": "invalid value"}}]
    session = HueRestTransport(http=http).connect("192.168.1.2")

    with pytest.raises(DeviceCommError):
        session.create_user("x")


def test_set_state_updates_confirmed_state(http: FakeHttp) -> None:
    http.routes[("PUT", f"{BASE}/token/lights/1/state")] = [
        {"success": {"/lights/1/state/on": False}},
        {"success": {"/lights/1/state/bri": 20}},
    ]
    light = _session(http).list_devices()[0]

    light.set_state(on=False, bri=20)

    assert http.requests[-1] == ("PUT", f"{BASE}/token/lights/1/state", {"on": False, "bri": 20})
    assert light.state["on"] is False
    assert light.state["bri"] == 20


@pytest.mark.parametrize(
    "fields, mode",
    [({"xy": [0.3, 0.3]}, "xy"), ({"ct": 300}, "ct"), ({"hue": 1000, "sat": 200}, "hs")],
)
def test_set_state_records_color_mode(http: FakeHttp, fields: dict, mode: str) -> None:
    http.routes[("PUT", f"{BASE}/token/lights/1/state")] = [
        {"success": {f"/lights/1/state/{field}": value}} for field, value in fields.items()
    ]
    light = _session(http).list_devices()[0]

    light.set_state(**fields)

    assert light.state["colormode"] == mode


def test_set_state_brightness_keeps_color_mode(http: FakeHttp) -> None:
    http.routes[("PUT", f"{BASE}/token/lights/1/state")] = [{"success": {"/lights/1/state/bri": 20}}]
    light = _session(http).list_devices()[0]

    light.set_state(bri=20)

    assert "colormode" not in light.state


def test_set_state_partial_failure(http: FakeHttp) -> None:
    http.routes[("PUT", f"{BASE}/token/lights/1/state")] = [
        {"success": {"/lights/1/state/on": True}},
        {"error": {"type": 201, "description": "parameter, hue, is not modifiable. Device is set to off."}},
    ]
    light = _session(http).list_devices()[0]

    with pytest.raises(DeviceCommError, match="not modifiable"):
        light.set_state(on=True, hue=100)
    assert light.state["on"] is True


def test_set_state_network_failure(http: FakeHttp) -> None:
    http.routes[("PUT", f"{BASE}/token/lights/1/state")] = requests.Timeout("timed out")
    light = _session(http).list_devices()[0]

    with pytest.raises(DeviceCommError):
        light.set_state(on=False)
    assert light.state["on"] is True


def test_http_error_status(http: FakeHttp) -> None:
    http.routes[("GET", f"{BASE}/token/lights")] = FakeResponse({}, status=503)
    session = _session(http)

    with pytest.raises(DeviceCommError):
        session.list_devices()
