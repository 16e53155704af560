"""Transport interfaces consumed by the bridge core."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence


class LightHandle(Protocol):
    """One light as enumerated by the bridge.

    ``state`` uses the bridge's field names (on, bri, hue, sat, effect, xy,
    ct, alert, colormode) and reflects the last state the bridge confirmed.
    """

    light_id: str
    name: str
    unique_id: str

    @property
    def state(self) -> Mapping[str, Any]: ...

    def set_state(self, **fields: Any) -> None:
        """Apply state fields; raises DeviceCommError on transport failure."""


class BridgeSession(Protocol):
    friendly_name: str

    def authenticate(self, token: str) -> None:
        """Log in with an existing token; raises AuthenticationError."""

    def create_user(self, proposed_name: str) -> str:
        """Exchange a client name for a token; raises NotAuthorizedYet."""

    def list_devices(self) -> Sequence[LightHandle]:
        """Enumerate all lights known to the bridge."""


class DeviceTransport(Protocol):
    def connect(self, address: str) -> BridgeSession:
        """Open a session with the bridge at ``address``; raises TransportConnectError."""
