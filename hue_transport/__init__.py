"""
hue_transport - Device transport for the Hue bridge

Bounded Context: Talking to the bridge hardware
Responsibilities:
  - Open a session with a bridge (reachability probe)
  - Authenticate with a token / create a new token (link button pairing)
  - Enumerate lights and apply state changes

The core only depends on the protocols in ``base``; ``rest`` is the
concrete REST API (v1) implementation.
"""

from .base import BridgeSession, DeviceTransport, LightHandle
from .rest import HueLight, HueRestTransport, HueSession

__all__ = [
    "BridgeSession",
    "DeviceTransport",
    "LightHandle",
    "HueLight",
    "HueRestTransport",
    "HueSession",
]
