"""Hue REST API (v1) transport built on requests."""

from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from hue_bridge.errors import (
    AuthenticationError,
    DeviceCommError,
    NotAuthorizedYet,
    TransportConnectError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Error types from the Hue API error object
UNAUTHORIZED_USER = 1
LINK_BUTTON_NOT_PRESSED = 101

# Confirmed field -> colormode it puts the light in, highest precedence first
COLOR_MODE_FIELDS = (("xy", "xy"), ("ct", "ct"), ("hue", "hs"), ("sat", "hs"))


class HueRestTransport:
    def __init__(self, *, timeout_s: float = 5.0, http: requests.Session | None = None) -> None:
        self.timeout_s = timeout_s
        self.http = http or requests.Session()

    def connect(self, address: str) -> HueSession:
        session = HueSession(address, http=self.http, timeout_s=self.timeout_s)
        session.probe()
        return session


class HueSession:
    """Session with one bridge. Unauthenticated until ``authenticate`` succeeds."""

    def __init__(self, address: str, *, http: requests.Session, timeout_s: float) -> None:
        self.address = address
        self.base_url = f"http://{address}/api"
        self.http = http
        self.timeout_s = timeout_s
        self.token: str | None = None
        self.friendly_name = address

    def probe(self) -> None:
        # /api/config answers without a token and proves the bridge is reachable
        config = self._request("GET", "/config", error_cls=TransportConnectError)
        if not isinstance(config, dict):
            raise TransportConnectError(f"Unexpected response from bridge at {self.address}")
        self.friendly_name = config.get("name") or self.address

    def authenticate(self, token: str) -> None:
        config = self._request("GET", f"/{token}/config", error_cls=TransportConnectError)
        error = _first_error(config)
        if error is not None:
            if error.get("type") == UNAUTHORIZED_USER:
                raise AuthenticationError(f"Bridge {self.address} rejected the token: {error.get('description')}")
            raise AuthenticationError(f"Bridge {self.address} login failed: {error.get('description')}")
        if not isinstance(config, dict) or "whitelist" not in config:
            # An unauthenticated config only carries the public subset
            raise AuthenticationError(f"Bridge {self.address} did not accept the token")

        self.token = token
        self.friendly_name = config.get("name") or self.friendly_name

    def create_user(self, proposed_name: str) -> str:
        body = self._request("POST", "", json={"devicetype": proposed_name}, error_cls=DeviceCommError)
        error = _first_error(body)
        if error is not None:
            if error.get("type") == LINK_BUTTON_NOT_PRESSED:
                raise NotAuthorizedYet("Link button not pressed")
            raise DeviceCommError(f"User creation failed: {error.get('description')}")

        for entry in body:
            success = entry.get("success") if isinstance(entry, dict) else None
            if success and "username" in success:
                return success["username"]
        raise DeviceCommError(f"Unexpected user creation response: {body!r}")

    def list_devices(self) -> list[HueLight]:
        if self.token is None:
            raise AuthenticationError("Session is not authenticated")

        body = self._request("GET", f"/{self.token}/lights", error_cls=DeviceCommError)
        error = _first_error(body)
        if error is not None:
            raise DeviceCommError(f"Listing lights failed: {error.get('description')}")
        if not isinstance(body, dict):
            raise DeviceCommError(f"Unexpected lights response: {body!r}")

        return [HueLight(self, light_id, data) for light_id, data in sorted(body.items(), key=_light_sort_key)]

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        error_cls: type[TransportError] = DeviceCommError,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, json=json, timeout=self.timeout_s)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise error_cls(f"{method} {url} failed: {exc}") from exc
        except ValueError as exc:
            raise error_cls(f"{method} {url} returned invalid JSON") from exc


class HueLight:
    def __init__(self, session: HueSession, light_id: str, data: dict[str, Any]) -> None:
        self._session = session
        self.light_id = str(light_id)
        self.name = data.get("name") or self.light_id
        self.unique_id = data.get("uniqueid", "")
        self.model_id = data.get("modelid", "")
        self._state: dict[str, Any] = dict(data.get("state") or {})
        self._lock = threading.Lock()

    @property
    def state(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._state)

    def set_state(self, **fields: Any) -> None:
        path = f"/{self._session.token}/lights/{self.light_id}/state"
        body = self._session._request("PUT", path, json=fields, error_cls=DeviceCommError)

        if not isinstance(body, list):
            raise DeviceCommError(f"Unexpected state response for light {self.name}: {body!r}")

        errors = [entry["error"] for entry in body if isinstance(entry, dict) and "error" in entry]
        confirmed = {}
        for entry in body:
            success = entry.get("success") if isinstance(entry, dict) else None
            for address, value in (success or {}).items():
                confirmed[address.rsplit("/", 1)[-1]] = value

        mode = color_mode_for(confirmed)
        if mode is not None:
            # The bridge never reports colormode in success entries
            confirmed["colormode"] = mode

        with self._lock:
            self._state.update(confirmed)

        if errors:
            descriptions = "; ".join(str(e.get("description")) for e in errors)
            raise DeviceCommError(f"Light {self.name} rejected state change: {descriptions}")

        logger.debug("Light %s confirmed %s", self.name, confirmed)


def color_mode_for(fields: dict[str, Any]) -> str | None:
    """Colormode implied by a set of confirmed state fields, if any."""
    for field, mode in COLOR_MODE_FIELDS:
        if field in fields:
            return mode
    return None


def _first_error(body: Any) -> dict[str, Any] | None:
    if isinstance(body, list):
        for entry in body:
            if isinstance(entry, dict) and "error" in entry:
                return entry["error"]
    return None


def _light_sort_key(item: tuple[str, Any]) -> tuple[int, str]:
    light_id = item[0]
    return (int(light_id), "") if light_id.isdigit() else (0, light_id)
