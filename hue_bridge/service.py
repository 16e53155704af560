"""
Hue Bridge Service - Bridge lifecycle controller.

This module provides the HueBridgeService class which wires a Hue bridge to
the message bus: it authenticates, enumerates lights, populates the registry,
announces every attribute, subscribes to command topics and finally installs
the dispatch handler.

Startup is strictly sequential and all-or-nothing: any failing step raises
and the dispatch handler is never installed, so no command can race with
registry population.

Threading Model:
- start()/stop(): caller's thread
- handle_message(): bus worker pool (one worker per inbound message)
- Pairing: runs on the worker that received the Register trigger
"""

import logging
import threading
from typing import Callable, Dict, Mapping, Optional

from hue_bridge.capabilities import Capability, default_capabilities
from hue_bridge.config import HueConfig
from hue_bridge.device import DeviceAdapter
from hue_bridge.errors import CommandError, HueBridgeError
from hue_bridge.pairing import PairingCoordinator
from hue_bridge.registry import BridgeRegistry
from hue_mqtt.client import BusError
from hue_mqtt.logging import LogEvent, StructuredLogger, create_logger
from hue_mqtt.topics import (
    device_path,
    discovery_payload,
    discovery_topic,
    register_filter,
    state_topic,
    subscription_filter,
)

logger = logging.getLogger(__name__)


class HueBridgeService:
    """
    Bridge lifecycle controller.

    Usage:
        bus = MQTTBusClient(...)
        bus.connect()

        service = HueBridgeService(transport=HueRestTransport(), bus=bus)
        service.start(config.hue)   # raises on any startup failure
        ...
        service.stop()
    """

    def __init__(
        self,
        transport,  # DeviceTransport
        bus,  # MQTTBusClient
        logger: Optional[StructuredLogger] = None,
        pairing_factory: Optional[Callable[[str], PairingCoordinator]] = None,
        capabilities_factory: Callable[[], Mapping[str, Capability]] = default_capabilities,
    ):
        """
        Initialize bridge service.

        Args:
            transport: Device transport (connect/authenticate/list_devices)
            bus: Message bus client (publish/subscribe/set_handler/close)
            logger: Structured logger for command and pairing events
            pairing_factory: Builds a PairingCoordinator for a bridge address
            capabilities_factory: Attribute set bound to every light
        """
        self.transport = transport
        self.bus = bus
        self.events = logger or create_logger("bridge")
        self._pairing_factory = pairing_factory or self._default_pairing
        self._capabilities_factory = capabilities_factory

        self.registry: Optional[BridgeRegistry] = None
        self.bridge_name: Optional[str] = None

        self._running = False
        self._stopped = False
        self._lifecycle_lock = threading.Lock()
        self._pairing_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, config: HueConfig) -> None:
        """
        Start the bridge.

        Steps (in order, first failure aborts):
        1. Resolve bridge address and token (ConfigurationError)
        2. Connect and authenticate (transport errors propagate unchanged)
        3. Enumerate lights
        4. Build and register one DeviceAdapter per light
        5. Publish retained discovery + state per attribute, subscribe <path>/#
        6. Install the dispatch handler
        """
        with self._lifecycle_lock:
            if self._running:
                logger.warning("Bridge already running")
                return

            address, token = config.require_credentials()

            self.events.info(
                event=LogEvent.BRIDGE_STARTING,
                message="Starting Hue bridge",
                metadata={'bridge_address': address, 'namespace': config.namespace}
            )

            session = self.transport.connect(address)
            session.authenticate(token)
            bridge_name = session.friendly_name

            lights = session.list_devices()
            logger.info(f"Bridge '{bridge_name}' reports {len(lights)} light(s)")

            registry = BridgeRegistry(on_register=self.pair)
            for light in lights:
                adapter = DeviceAdapter(
                    device_id=light.name,
                    topic_path=device_path(config.namespace, bridge_name, light.name),
                    light=light,
                    publish=self.bus.publish,
                    capabilities=self._capabilities_factory(),
                )
                registry.register(adapter)
                self.events.info(
                    event=LogEvent.DEVICE_REGISTERED,
                    message="Registered device",
                    metadata={'device_id': adapter.device_id, 'light_id': light.light_id}
                )

            for adapter in registry.devices():
                self._announce(adapter)

            self.bus.subscribe(register_filter(config.namespace))

            self.registry = registry
            self.bridge_name = bridge_name
            self.events = self.events.bind(bridge_name=bridge_name)
            self.bus.set_handler(self.handle_message)
            self._running = True

            self.events.info(
                event=LogEvent.BRIDGE_STARTED,
                message="Hue bridge started",
                metadata={'devices': len(registry)}
            )

    def stop(self) -> None:
        """
        Close the bus connection.

        Idempotent; safe to call when start() never ran or failed.
        """
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False

            self.bus.close()
            self.events.info(
                event=LogEvent.BRIDGE_STOPPED,
                message="Hue bridge stopped",
            )

    def _announce(self, adapter: DeviceAdapter) -> None:
        """Publish discovery + current state for every attribute, then subscribe."""
        for name, param_spec, description in adapter.list_capabilities():
            self.bus.publish(
                discovery_topic(adapter.topic_path, name),
                discovery_payload(param_spec, description),
                retain=True,
            )
            self.bus.publish(
                state_topic(adapter.topic_path, name),
                adapter.get_attribute(name),
                retain=True,
            )

        self.bus.subscribe(subscription_filter(adapter.topic_path))
        self.events.info(
            event=LogEvent.DEVICE_ANNOUNCED,
            message="Announced device attributes",
            metadata={'device_id': adapter.device_id, 'topic_path': adapter.topic_path}
        )

    # ===== Dispatch (bus worker threads) =====

    def handle_message(self, topic: str, payload: Optional[str], error: Optional[Exception]) -> None:
        """
        Bus message handler.

        Every failure is confined to the message that caused it and logged;
        nothing is sent back on the bus.
        """
        if error is not None:
            self.events.warning(
                event=LogEvent.DECODE_ERROR,
                message="Dropped undecodable message",
                metadata={'topic': topic},
                exc_info=error
            )
            return

        registry = self.registry
        if registry is None or payload is None:
            return

        metadata: Dict[str, object] = {'topic': topic, 'payload': payload}
        try:
            states = registry.dispatch(topic, payload)

        except CommandError as e:
            self.events.warning(
                event=LogEvent.DEVICE_COMMAND_REJECTED,
                message="Command rejected",
                metadata=metadata,
                exc_info=e
            )
        except HueBridgeError as e:
            self.events.error(
                event=LogEvent.DEVICE_COMMAND_FAILED,
                message="Device did not accept command",
                metadata=metadata,
                exc_info=e
            )
        except BusError as e:
            self.events.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Command applied but state could not be republished",
                metadata=metadata,
                exc_info=e
            )
        except Exception as e:
            self.events.error(
                event=LogEvent.DISPATCH_ERROR,
                message="Error processing message",
                metadata=metadata,
                exc_info=e
            )
        else:
            if states:
                self.events.info(
                    event=LogEvent.DEVICE_COMMAND_APPLIED,
                    message="Command applied",
                    metadata={**metadata, 'published': states}
                )

    # ===== Pairing =====

    def pair(self, bridge_address: str) -> Optional[str]:
        """
        Run the pairing flow for ``bridge_address``.

        Only one pairing runs at a time; a trigger arriving while another
        pairing is in progress is dropped. The token is logged, not applied.
        """
        if not self._pairing_lock.acquire(blocking=False):
            self.events.warning(
                event=LogEvent.PAIRING_FAILED,
                message="Pairing already in progress, trigger ignored",
                metadata={'bridge_address': bridge_address}
            )
            return None

        try:
            return self._pairing_factory(bridge_address).run()
        finally:
            self._pairing_lock.release()

    def _default_pairing(self, bridge_address: str) -> PairingCoordinator:
        return PairingCoordinator(self.transport, bridge_address)
