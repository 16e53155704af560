"""
Bridge Registry - Thread-safe device adapter management.

This module provides the BridgeRegistry class which owns every DeviceAdapter
discovered at startup and routes inbound bus messages to the right
adapter/attribute pair.

Thread Safety:
- Uses a read/write lock for the device map
- register(): Write operation (exclusive, startup only)
- lookup(), dispatch(), devices(): Read operations (shared)
- Dispatch runs the device command outside the lock, on the adapter
  snapshot obtained from lookup()
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from hue_bridge.device import DeviceAdapter
from hue_bridge.errors import DuplicateDeviceError, UnknownDeviceError
from hue_mqtt.topics import parse_topic

logger = logging.getLogger(__name__)

# on_register(bridge_address)
PairingHandler = Callable[[str], None]


class ReadWriteLock:
    """
    Many readers or one writer.

    Writers wait for active readers to drain; new readers wait while a
    writer is waiting, so registration cannot be starved by dispatch.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class BridgeRegistry:
    """
    Registry of device adapters, indexed by device id.

    Populated once at startup; no device is added or removed afterwards
    (a restart re-runs full enumeration).

    Usage:
        registry = BridgeRegistry(on_register=pair_with_bridge)
        registry.register(adapter)

        # From the bus handler (any worker thread)
        registry.dispatch("Hue/Bridge/Device/Lamp/On/Set", "true")
    """

    def __init__(self, on_register: Optional[PairingHandler] = None):
        """
        Args:
            on_register: Called with the bridge address when a pairing
                trigger ("<address>/Register") is dispatched
        """
        self._devices: Dict[str, DeviceAdapter] = {}
        self._lock = ReadWriteLock()
        self._on_register = on_register

    def register(self, adapter: DeviceAdapter) -> None:
        """
        Add a device adapter.

        Raises:
            DuplicateDeviceError: If the device id is already registered

        Thread-safe: Acquires the write lock.
        """
        with self._lock.write():
            if adapter.device_id in self._devices:
                raise DuplicateDeviceError(
                    f"Device '{adapter.device_id}' already registered "
                    f"(enumeration returned two devices with the same id)"
                )
            self._devices[adapter.device_id] = adapter

        logger.info(f"Registered device: {adapter.device_id} ({adapter.topic_path})")

    def lookup(self, device_id: str) -> Optional[DeviceAdapter]:
        """Return the adapter for ``device_id``, or None."""
        with self._lock.read():
            return self._devices.get(device_id)

    def devices(self) -> List[DeviceAdapter]:
        """Snapshot of all adapters, in registration order."""
        with self._lock.read():
            return list(self._devices.values())

    @property
    def device_ids(self) -> List[str]:
        with self._lock.read():
            return list(self._devices.keys())

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        with self._lock.read():
            return device_id in self._devices

    def dispatch(self, topic: str, payload: str) -> Optional[Dict[str, str]]:
        """
        Route an inbound bus message.

        The last three topic segments are read as (device id, attribute,
        verb). Only "Set" commands reach a device; "Register" goes to the
        pairing handler; anything else (including our own retained state
        echoes) is ignored.

        Returns:
            The published {attribute: value} states for an applied command,
            None when the message was not a device command

        Raises:
            UnknownDeviceError: Command names an unregistered device
            CommandError / DeviceCommError: Propagated from the adapter
        """
        parts = parse_topic(topic)
        if parts is None:
            logger.debug(f"Ignoring message on short topic '{topic}'")
            return None

        if parts.is_register:
            self._dispatch_register(parts.attribute)
            return None

        if not parts.is_command:
            return None

        adapter = self.lookup(parts.device_id)
        if adapter is None:
            raise UnknownDeviceError(
                f"Invalid Hue device specified: '{parts.device_id}'. "
                f"Known devices: {', '.join(sorted(self.device_ids))}"
            )

        return adapter.set_attribute(parts.attribute, payload)

    def _dispatch_register(self, bridge_address: str) -> None:
        if self._on_register is None:
            logger.warning(f"Pairing requested for {bridge_address} but no pairing handler is installed")
            return
        self._on_register(bridge_address)
