"""
MQTT client wrapper for talking to a running Hue bridge.

Commands are plain publishes. Reads rely on the bridge's retained state and
discovery topics: subscribing to them returns the last published values
immediately, without the bridge being involved.
"""

import threading
from typing import Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    One-shot MQTT client for the CLI.

    Commands go out with QoS 1 and are never retained; only the bridge's
    own state and discovery topics are.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

    def _connect(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except OSError as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                f"Is mosquitto running? ({e})"
            )
        self.client.loop_start()

    def _disconnect(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()

    def send_command(
        self,
        topic: str,
        payload: str,
        qos: int = 1,
        timeout: float = 5.0
    ) -> None:
        """
        Publish a command payload and wait for the broker to take it.

        Args:
            topic: Command topic (e.g., "Hue/Bridge/Device/Lamp/On/Set")
            payload: Raw attribute value ("true", "128", "0.3,0.3", "Red")
            qos: Quality of Service (default: 1 for commands)
            timeout: Seconds to wait for the broker to acknowledge

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            RuntimeError: If the publish is not acknowledged
        """
        self._connect()
        try:
            info = self.client.publish(topic, payload, qos=qos)
            info.wait_for_publish(timeout=timeout)
            if not info.is_published():
                raise RuntimeError(f"Command to '{topic}' was not acknowledged within {timeout}s")
        finally:
            self._disconnect()

        print(f"✅ Command sent: {topic} <- {payload!r}")

    def read_retained(self, topic_filter: str, timeout: float = 2.0) -> Dict[str, str]:
        """
        Collect the retained messages matching ``topic_filter``.

        Retained values arrive right after the subscription is acknowledged;
        collection stops once ``timeout`` seconds pass without a new one.

        Returns:
            {topic: payload}, empty if nothing is retained under the filter
        """
        received: Dict[str, str] = {}
        activity = threading.Event()

        def on_message(client, userdata, msg):
            if msg.retain:
                received[msg.topic] = msg.payload.decode("utf-8", errors="replace")
                activity.set()

        self.client.on_message = on_message
        self._connect()
        try:
            self.client.subscribe(topic_filter, qos=1)
            while activity.wait(timeout=timeout):
                activity.clear()
        finally:
            self._disconnect()

        return received
