"""
Structured JSON Logger
======================

Bounded Context: Observability Infrastructure

Every record is one JSON object keyed by a LogEvent, so bridge logs can be
filtered by event name, device id or topic without parsing free text.

Context binding:
    A logger can be bound to fixed fields (bridge address, device id) that are
    merged into the metadata of every record it emits:

    >>> events = create_logger("pairing").bind(bridge_address="192.168.1.2")
    >>> events.info(LogEvent.PAIRING_STARTED, "Connecting to bridge for pairing")

Output:
    {"timestamp": "2026-10-19T15:30:45.123456+00:00", "level": "INFO",
     "component": "pairing", "event": "pairing.started",
     "message": "Connecting to bridge for pairing",
     "metadata": {"bridge_address": "192.168.1.2"}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON logger for one component of the bridge.

    Attributes:
        component: Component name ("bridge", "mqtt", "pairing")
        context: Fields merged into every record's metadata
        logger: Underlying ``logging.Logger`` (hue_mqtt.<component>)

    Thread Safety:
        Safe to share between the MQTT network thread and the dispatch
        workers; bound loggers never mutate their parent.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        self.component = component
        self.context: Dict[str, Any] = dict(context or {})
        self.logger = logging.getLogger(logger_name or f"hue_mqtt.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger sharing the same output with extra fixed fields."""
        bound = StructuredLogger.__new__(StructuredLogger)
        bound.component = self.component
        bound.context = {**self.context, **context}
        bound.logger = self.logger
        return bound

    def _emit(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Mapping[str, Any]],
        exc_info: Optional[BaseException] = None,
    ) -> None:
        # Skip serialisation for filtered levels
        if not self.logger.isEnabledFor(level):
            return

        record: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }

        merged = {**self.context, **(metadata or {})}
        if merged:
            record['metadata'] = merged

        if exc_info is not None:
            record['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info),
            }

        # Tracebacks only for errors; warnings carry the exception summary
        self.logger.log(
            level,
            json.dumps(record, default=str),
            exc_info=exc_info if level >= logging.ERROR else None,
        )

    def debug(self, event: LogEvent, message: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Mapping[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """Expected failures: rejected commands, pairing attempts, dropped publishes."""
        self._emit(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Mapping[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """
        Failures that need an operator: device errors, broker errors, pairing
        that ran out of attempts.

        Args:
            event: Typed log event
            message: Human-readable message
            metadata: Record-specific fields (override bound context)
            exc_info: Exception instance; its traceback is attached
        """
        self._emit(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """
    Emits StructuredLogger records unchanged.

    Records from plain ``logging`` calls that end up on the same handler are
    wrapped in a minimal JSON object so the stream stays line-delimited JSON.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if message.startswith('{'):
            text = message
        else:
            text = json.dumps({
                'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                'level': record.levelname,
                'logger': record.name,
                'message': message,
            })

        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def create_logger(
    component: str,
    level: int = logging.INFO,
    **context: Any,
) -> StructuredLogger:
    """
    Build a StructuredLogger, optionally bound to context fields.

    Example:
        >>> events = create_logger("mqtt", broker="localhost:1883")
    """
    return StructuredLogger(component=component, level=level, context=context)
