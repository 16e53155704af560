"""
hue_bridge - Topic-addressable capability bridge for Philips Hue lights

This package maps a namespaced MQTT topic hierarchy to typed, bidirectional
light operations and keeps the retained bus state consistent with what the
bridge reports.

Architecture:
- Capability: One attribute (parse/apply/read), shared by all lights
- DeviceAdapter: One light, its capabilities and topic prefix
- BridgeRegistry: Thread-safe device map + topic dispatch
- PairingCoordinator: Link-button authorization with bounded retries
- HueBridgeService: Startup sequencing and the bus message handler
- BridgeConfig: Configuration management

Threading Model:
- paho-mqtt network thread (receives messages)
- Bus worker pool (one worker per inbound message, runs dispatch)
"""

from hue_bridge.capabilities import Capability, default_capabilities
from hue_bridge.config import BridgeConfig, HueConfig, MQTTConfig
from hue_bridge.device import DeviceAdapter
from hue_bridge.pairing import PairingCoordinator, PairingState
from hue_bridge.registry import BridgeRegistry
from hue_bridge.service import HueBridgeService

__all__ = [
    "Capability",
    "default_capabilities",
    "BridgeConfig",
    "HueConfig",
    "MQTTConfig",
    "DeviceAdapter",
    "PairingCoordinator",
    "PairingState",
    "BridgeRegistry",
    "HueBridgeService",
]
