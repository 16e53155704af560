"""
MQTTBusClient - Message bus client for the Hue bridge

Bounded Context: MQTT connection management + topic publish/subscribe
Responsibilities:
  - MQTT connection lifecycle (connect, close)
  - Publishing attribute state (retained) and discovery messages
  - Subscribing to command topic filters (re-subscribed on reconnect)
  - Handing inbound messages to the installed handler

QoS Policy:
  - Commands and state: QoS 1 by default (at-least-once delivery)
  - State and discovery: retained (last value persisted for new subscribers)

Threading:
  - paho-mqtt runs its own network thread (loop_start/loop_stop)
  - Callbacks (_on_connect, _on_message) run in the network thread
  - Each inbound message is handed to a worker pool, so a slow handler
    (device call, pairing wait) never stalls the network loop
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import paho.mqtt.client as mqtt

from .logging import LogEvent, StructuredLogger

# handler(topic, payload, error): exactly one of payload/error is set
MessageHandler = Callable[[str, Optional[str], Optional[Exception]], None]


class BusError(Exception):
    """Base error for message bus operations."""


class BusPublishError(BusError):
    """Raised when a message cannot be handed to the broker."""


class BusSubscribeError(BusError):
    """Raised when a topic filter cannot be subscribed."""


class MQTTBusClient:
    """
    MQTT client exposing publish/subscribe/set_handler/close.

    Features:
      - Event-based connection synchronization
      - Subscriptions remembered and replayed after reconnect
      - Worker pool for inbound messages (one worker per message)

    Example:
        bus = MQTTBusClient(
            broker_host="localhost",
            broker_port=1883,
            client_id="hue_bridge",
            logger=create_logger("mqtt"),
        )
        if bus.connect(timeout=5.0):
            bus.subscribe("Hue/Bridge/Device/Lamp/#")
            bus.set_handler(on_message)
            bus.publish("Hue/Bridge/Device/Lamp/On", "true", retain=True)
        bus.close()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        keepalive: int = 60,
        max_workers: int = 4,
    ):
        """
        Initialize MQTT bus client.

        Args:
            broker_host: MQTT broker hostname
            broker_port: MQTT broker port (typically 1883)
            client_id: MQTT client identifier
            logger: Structured logger for observability
            username: Optional MQTT authentication username
            password: Optional MQTT authentication password
            qos: Quality of Service for publish and subscribe
            keepalive: Keepalive interval in seconds
            max_workers: Size of the inbound message worker pool
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.client_id = client_id
        self.logger = logger.bind(broker=f"{broker_host}:{broker_port}")
        self.qos = qos
        self.keepalive = keepalive

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = threading.Event()
        self._running = False
        self._closed = False

        self._handler: Optional[MessageHandler] = None
        self._subscriptions: List[str] = []
        self._subscriptions_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="MQTTDispatch",
        )

        self._stats_lock = threading.Lock()
        self._published = 0
        self._received = 0

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=self.keepalive)
            self.client.loop_start()
            self._running = True

            if self._connected.wait(timeout=timeout):
                return True

            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Connection timeout",
                metadata={'timeout': timeout}
            )
            return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e
            )
            return False

    def is_connected(self) -> bool:
        """Check if currently connected to broker."""
        return self._connected.is_set()

    def publish(self, topic: str, payload: str, retain: bool = False) -> None:
        """
        Publish a raw string payload.

        Raises:
            BusPublishError: If not connected or the broker hand-off fails

        Thread Safety: Safe to call from any thread
        """
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker",
                metadata={'topic': topic}
            )
            raise BusPublishError(f"Not connected to broker, dropped publish to '{topic}'")

        result = self.client.publish(topic, payload, qos=self.qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={result.rc})",
                metadata={'topic': topic}
            )
            raise BusPublishError(f"Publish to '{topic}' failed: {mqtt.error_string(result.rc)}")

        with self._stats_lock:
            self._published += 1

        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Published message",
            metadata={'topic': topic, 'retain': retain, 'qos': self.qos}
        )

    def subscribe(self, topic_filter: str) -> None:
        """
        Subscribe to a topic filter and remember it for reconnects.

        Raises:
            BusSubscribeError: If the broker hand-off fails
        """
        with self._subscriptions_lock:
            if topic_filter not in self._subscriptions:
                self._subscriptions.append(topic_filter)

        result, _mid = self.client.subscribe(topic_filter, qos=self.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise BusSubscribeError(
                f"Subscribe to '{topic_filter}' failed: {mqtt.error_string(result)}"
            )

        self.logger.info(
            event=LogEvent.MQTT_SUBSCRIBED,
            message="Subscribed",
            metadata={'topic_filter': topic_filter, 'qos': self.qos}
        )

    def set_handler(self, handler: MessageHandler) -> None:
        """Install the inbound message handler (replaces any previous one)."""
        self._handler = handler

    def close(self) -> None:
        """
        Disconnect from the broker and stop the worker pool.

        Thread Safety: Safe to call multiple times
        """
        if self._closed:
            return
        self._closed = True

        if self._running:
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()

        # Pairing waits may still be sleeping on a worker; do not block on them
        self._executor.shutdown(wait=False, cancel_futures=True)

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Bus client closed",
            metadata=self.get_stats()
        )

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of publish/receive counters and connection status."""
        with self._stats_lock:
            return {
                'published': self._published,
                'received': self._received,
                'connected': self._connected.is_set(),
                'broker': self.broker,
            }

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Connection refused ({reason_code})",
            )
            self._connected.clear()
            return

        with self._subscriptions_lock:
            filters = list(self._subscriptions)
        for topic_filter in filters:
            client.subscribe(topic_filter, qos=self.qos)

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={
                'client_id': self.client_id,
                'resubscribed': len(filters),
            }
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected.clear()
        if reason_code.is_failure:
            self.logger.warning(
                event=LogEvent.MQTT_DISCONNECTED,
                message=f"Unexpected disconnection ({reason_code})",
            )

    def _on_message(self, client, userdata, msg):
        with self._stats_lock:
            self._received += 1

        try:
            payload = msg.payload.decode('utf-8')
            error = None
        except UnicodeDecodeError as e:
            self.logger.warning(
                event=LogEvent.DECODE_ERROR,
                message="Payload is not valid UTF-8",
                metadata={'topic': msg.topic}
            )
            payload, error = None, e

        if self._closed:
            return
        self._executor.submit(self._deliver, msg.topic, payload, error)

    def _deliver(self, topic: str, payload: Optional[str], error: Optional[Exception]) -> None:
        handler = self._handler
        if handler is None:
            self.logger.debug(
                event=LogEvent.MQTT_MESSAGE_RECEIVED,
                message="No handler installed, message dropped",
                metadata={'topic': topic}
            )
            return

        try:
            handler(topic, payload, error)
        except Exception as e:
            self.logger.error(
                event=LogEvent.DISPATCH_ERROR,
                message="Message handler raised",
                exc_info=e,
                metadata={'topic': topic}
            )
