"""
Topic Layout
============

Bounded Context: Topic namespace shared by the bridge and its command senders

Layout (case-sensitive, '/'-delimited):
    Discovery:  New/<Namespace>/<BridgeName>/Device/<deviceId>/<attribute>
    State:      <Namespace>/<BridgeName>/Device/<deviceId>/<attribute>
    Command:    <Namespace>/<BridgeName>/Device/<deviceId>/<attribute>/Set
    Pairing:    <Namespace>/Service/<bridgeAddress>/Register

Names reported by the bridge (bridge name, light names) are used as topic
segments after escaping "%", "/", "+" and "#" as %25, %2F, %2B and %23, so a
light called "Lamp #2" or "Kitchen/Island" still maps to exactly one segment.
parse_topic() undoes the escaping.

Example:
    >>> path = device_path("Hue", "Living Room", "Lamp")
    >>> state_topic(path, "On")
    'Hue/Living Room/Device/Lamp/On'
    >>> parse_topic("Hue/Living Room/Device/Lamp/On/Set")
    TopicParts(device_id='Lamp', attribute='On', verb='Set')
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

DEFAULT_NAMESPACE = "Hue"
DEVICE_SEGMENT = "Device"
SERVICE_SEGMENT = "Service"
DISCOVERY_PREFIX = "New"

SET_VERB = "Set"
REGISTER_VERB = "Register"

SEPARATOR = "/"

_SEGMENT_ESCAPES = str.maketrans({"%": "%25", "/": "%2F", "+": "%2B", "#": "%23"})


@dataclass(frozen=True)
class TopicParts:
    """
    Last three segments of an inbound topic.

    For a command topic these are (device id, attribute, verb). For a pairing
    trigger the "attribute" slot holds the bridge address.
    """
    device_id: str
    attribute: str
    verb: str

    @property
    def is_command(self) -> bool:
        return self.verb == SET_VERB

    @property
    def is_register(self) -> bool:
        return self.verb == REGISTER_VERB


def encode_segment(name: str) -> str:
    """Escape a name so it is one topic level without wildcards."""
    return name.translate(_SEGMENT_ESCAPES)


def decode_segment(segment: str) -> str:
    return unquote(segment)


def device_path(namespace: str, bridge_name: str, device_id: str) -> str:
    """Fully qualified topic prefix of one device."""
    return SEPARATOR.join((namespace, encode_segment(bridge_name), DEVICE_SEGMENT, encode_segment(device_id)))


def state_topic(path: str, attribute: str) -> str:
    return f"{path}{SEPARATOR}{attribute}"


def discovery_topic(path: str, attribute: str) -> str:
    return f"{DISCOVERY_PREFIX}{SEPARATOR}{path}{SEPARATOR}{attribute}"


def command_topic(path: str, attribute: str) -> str:
    return f"{path}{SEPARATOR}{attribute}{SEPARATOR}{SET_VERB}"


def subscription_filter(path: str) -> str:
    """Wildcard filter covering every attribute sub-topic of a device."""
    return f"{path}{SEPARATOR}#"


def register_topic(namespace: str, bridge_address: str) -> str:
    return SEPARATOR.join((namespace, SERVICE_SEGMENT, encode_segment(bridge_address), REGISTER_VERB))


def register_filter(namespace: str) -> str:
    return SEPARATOR.join((namespace, SERVICE_SEGMENT, "+", REGISTER_VERB))


def discovery_payload(param_spec: str, description: str) -> str:
    return f"{param_spec} : {description}"


def parse_topic(topic: str) -> Optional[TopicParts]:
    """
    Split a topic into its trailing (device id, attribute, verb) triple,
    with device id and attribute unescaped.

    Returns:
        TopicParts, or None when the topic has fewer than three segments.
    """
    segments = topic.split(SEPARATOR)
    if len(segments) < 3:
        return None
    return TopicParts(
        device_id=decode_segment(segments[-3]),
        attribute=decode_segment(segments[-2]),
        verb=segments[-1],
    )
