"""
Configuration schema for the Hue MQTT bridge.

This module defines the configuration structure for the bridge: the Hue
bridge address and token, the topic namespace, and MQTT broker settings.

The token is optional at load time, because the pairing flow runs from a
configuration that does not have one yet. start() turns a missing address or
token into a ConfigurationError.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from hue_bridge.errors import ConfigurationError
from hue_mqtt.topics import DEFAULT_NAMESPACE

ENV_BRIDGE_ADDRESS = "HUE_BRIDGE_ADDRESS"
ENV_AUTH_TOKEN = "HUE_AUTH_TOKEN"

_TOPIC_RESERVED = ("/", "+", "#")


@dataclass(frozen=True)
class HueConfig:
    """Hue bridge connection settings."""

    bridge_address: Optional[str] = None
    auth_token: Optional[str] = None
    namespace: str = DEFAULT_NAMESPACE
    request_timeout: float = 5.0

    def __post_init__(self):
        """Validate Hue configuration."""
        if not self.namespace:
            raise ValueError("namespace cannot be empty")

        if any(c in self.namespace for c in _TOPIC_RESERVED):
            raise ValueError(
                f"namespace must be a single topic segment without wildcards, got {self.namespace!r}"
            )

        if self.request_timeout <= 0:
            raise ValueError(
                f"request_timeout must be > 0, got {self.request_timeout}"
            )

    def require_credentials(self) -> Tuple[str, str]:
        """
        Return (bridge_address, auth_token).

        Raises:
            ConfigurationError: If either setting is missing or empty
        """
        missing = [
            name
            for name, value in (("bridge_address", self.bridge_address), ("auth_token", self.auth_token))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"No valid Hue bridge found in config (missing: {', '.join(missing)}). "
                f"Complete pairing first and set the token in the configuration."
            )
        return self.bridge_address, self.auth_token


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1
    client_id: str = "hue_bridge"
    keepalive: int = 60
    connect_timeout: float = 5.0

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

        if self.keepalive <= 0:
            raise ValueError(f"keepalive must be > 0, got {self.keepalive}")


@dataclass(frozen=True)
class BridgeConfig:
    """
    Main configuration for the bridge process.

    Loaded from YAML and validated at startup. Immutable after construction.
    """

    hue: HueConfig = field(default_factory=HueConfig)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BridgeConfig":
        """
        Build configuration from a parsed mapping.

        HUE_BRIDGE_ADDRESS / HUE_AUTH_TOKEN in ``environ`` override the
        file values, so the token does not have to live in the YAML.
        """
        data = data or {}
        environ = os.environ if environ is None else environ

        hue_data: Dict[str, Any] = dict(data.get("hue") or {})
        if environ.get(ENV_BRIDGE_ADDRESS):
            hue_data["bridge_address"] = environ[ENV_BRIDGE_ADDRESS]
        if environ.get(ENV_AUTH_TOKEN):
            hue_data["auth_token"] = environ[ENV_AUTH_TOKEN]

        mqtt_data: Dict[str, Any] = dict(data.get("mqtt") or {})

        try:
            return cls(hue=HueConfig(**hue_data), mqtt=MQTTConfig(**mqtt_data))
        except TypeError as e:
            raise ValueError(f"Invalid configuration key: {e}")

    @classmethod
    def from_yaml(
        cls,
        yaml_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BridgeConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            hue:
              bridge_address: "192.168.1.2"
              auth_token: "1028d66426293e821ecfd9ef1a0731df"
              namespace: "Hue"
              request_timeout: 5.0

            mqtt:
              broker: "localhost"
              port: 1883
              username: null
              password: null
              qos: 1
              client_id: "hue_bridge"
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {yaml_path}")

        return cls.from_dict(data, environ=environ)
