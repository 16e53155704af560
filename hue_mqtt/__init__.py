"""
Hue MQTT Communication Package
==============================

Bounded Context: Message bus plumbing for the Hue bridge

Architecture:
- client: paho-mqtt bus client (publish, subscribe, handler, close)
- topics: Topic layout (discovery, state, command, pairing)
- logging/: Structured JSON logging for observability
"""

__version__ = "1.0.0"

from .client import (
    BusError,
    BusPublishError,
    BusSubscribeError,
    MessageHandler,
    MQTTBusClient,
)
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Client
    'BusError',
    'BusPublishError',
    'BusSubscribeError',
    'MessageHandler',
    'MQTTBusClient',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
