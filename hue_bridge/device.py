"""
DeviceAdapter - one light and its attribute topics.

The adapter owns the transport handle for its light and publishes every
state change it applies under ``<topic_path>/<attribute>``, retained, so all
subscribers converge on the value the bridge confirmed.
"""

import logging
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple

from hue_bridge.capabilities import Capability, default_capabilities
from hue_bridge.errors import UnknownAttributeError, UnsupportedOperationError
from hue_mqtt.topics import state_topic

logger = logging.getLogger(__name__)

# publish(topic, payload, retain)
Publisher = Callable[[str, str, bool], None]


class DeviceAdapter:
    """
    In-process representation of one controllable light.

    Attributes:
        device_id: Stable identifier from enumeration (the light's name)
        topic_path: <Namespace>/<BridgeName>/Device/<device_id>
        light: Transport handle (LightHandle protocol)

    Thread Safety:
        The capability map is fixed at construction. Concurrent commands on
        the same attribute are not serialized; the light's confirmed state
        is what gets republished.
    """

    def __init__(
        self,
        device_id: str,
        topic_path: str,
        light,
        publish: Publisher,
        capabilities: Optional[Mapping[str, Capability]] = None,
    ):
        self.device_id = device_id
        self.topic_path = topic_path
        self.light = light
        self._publish = publish
        self._capabilities: Dict[str, Capability] = dict(
            capabilities if capabilities is not None else default_capabilities()
        )

    @property
    def capabilities(self) -> Mapping[str, Capability]:
        return dict(self._capabilities)

    def set_attribute(self, name: str, payload: str) -> Dict[str, str]:
        """
        Apply a command payload to one attribute and republish its state.

        Returns:
            The {attribute: value} states that were published

        Raises:
            UnknownAttributeError: Attribute not exposed by this device
            UnsupportedOperationError: Attribute is read-only
            ValidationError: Payload malformed or out of range (nothing published)
            DeviceCommError: Transport failed (nothing published)
            BusPublishError: State could not be republished
        """
        capability = self._capability(name)
        if not capability.writable:
            raise UnsupportedOperationError(
                f"Attribute '{name}' of device '{self.device_id}' is read-only"
            )

        states = capability.apply(self, payload)

        for attribute, value in states.items():
            self._publish(state_topic(self.topic_path, attribute), value, True)

        logger.debug(f"{self.device_id}: {name} <- {payload!r}, published {states}")
        return states

    def get_attribute(self, name: str) -> str:
        """Current wire value of an attribute, as reported by the light."""
        return self._capability(name).read(self)

    def has_attribute(self, name: str) -> bool:
        return name in self._capabilities

    def list_capabilities(self) -> Iterator[Tuple[str, str, str]]:
        """Yield (name, param_spec, description) for every attribute."""
        for capability in self._capabilities.values():
            yield capability.describe()

    def _capability(self, name: str) -> Capability:
        capability = self._capabilities.get(name)
        if capability is None:
            raise UnknownAttributeError(
                f"Unknown attribute '{name}' for device '{self.device_id}'. "
                f"Available attributes: {', '.join(sorted(self._capabilities))}"
            )
        return capability

    def __repr__(self) -> str:
        return f"DeviceAdapter({self.device_id!r}, topic_path={self.topic_path!r})"
