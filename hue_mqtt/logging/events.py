"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for the bridge's structured logs.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, bridge, device, pairing, error
    category: connected, publish, command, attempt
    action: success, failed, rejected

Example Log Query (Loki):
    {app="hue-bridge"} | json | event="device.command.rejected"
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - bridge.*: Bridge lifecycle
    - device.*: Per-device discovery and commands
    - pairing.*: Link-button pairing flow
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost or closed."""

    MQTT_SUBSCRIBED = "mqtt.subscribed"
    """Topic filter subscribed."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message handed to the broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    MQTT_MESSAGE_RECEIVED = "mqtt.message.received"
    """Inbound message received."""

    # ========== Bridge Lifecycle ==========
    BRIDGE_STARTING = "bridge.starting"
    BRIDGE_STARTED = "bridge.started"
    BRIDGE_STOPPED = "bridge.stopped"

    # ========== Device Events ==========
    DEVICE_REGISTERED = "device.registered"
    """Device adapter added to the registry."""

    DEVICE_ANNOUNCED = "device.announced"
    """Discovery and initial state published for a device."""

    DEVICE_COMMAND_APPLIED = "device.command.applied"
    """Command applied and new state republished."""

    DEVICE_COMMAND_REJECTED = "device.command.rejected"
    """Command dropped (validation, unknown device/attribute, read-only)."""

    DEVICE_COMMAND_FAILED = "device.command.failed"
    """Transport failure while applying a valid command."""

    # ========== Pairing Events ==========
    PAIRING_STARTED = "pairing.started"
    PAIRING_WAITING = "pairing.waiting"
    """Waiting for the link button to be pressed."""

    PAIRING_ATTEMPT_FAILED = "pairing.attempt.failed"
    PAIRING_SUCCEEDED = "pairing.succeeded"
    PAIRING_FAILED = "pairing.failed"

    # ========== Error Events ==========
    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""

    DECODE_ERROR = "error.decode"
    """Inbound payload could not be decoded."""

    DISPATCH_ERROR = "error.dispatch"
    """Unexpected error while handling an inbound message."""

