"""
Pairing Coordinator - one-shot link-button authorization flow.

State machine:

    IDLE ──run()──▶ CONNECTING ──▶ AWAITING_APPROVAL ──▶ PAIRED
                        │                   │
                        └──▶ FAILED ◀───────┘

- CONNECTING: open a session with the bridge. Failure is terminal (the
  hardware is unreachable, not merely unauthorized); no retry.
- AWAITING_APPROVAL: every ``poll_interval`` seconds, up to ``max_attempts``
  times, try to exchange a generated client name for a token.
  NotAuthorizedYet (button not pressed yet) is expected and logged at debug;
  other transport errors are logged but do not forfeit remaining attempts.
- PAIRED: token obtained and logged for the operator to put in the
  configuration. It is not persisted or applied to the running bridge.
- FAILED: attempts exhausted (or connect failed); no token.

Sleep and clock are injected so tests run without wall-clock delay.
"""

import time
from enum import Enum
from typing import Callable, Optional

from hue_bridge.errors import HueBridgeError, NotAuthorizedYet
from hue_mqtt.logging import LogEvent, StructuredLogger, create_logger

MAX_ATTEMPTS = 12
POLL_INTERVAL_S = 5.0
CLIENT_NAME_PREFIX = "hue-mqtt"


class PairingState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_APPROVAL = "awaiting_approval"
    PAIRED = "paired"
    FAILED = "failed"


class PairingCoordinator:
    """
    Runs the pairing flow against one bridge address, exactly once.

    Example:
        coordinator = PairingCoordinator(HueRestTransport(), "192.168.1.2")
        token = coordinator.run()   # blocks up to ~60s
        if token:
            print(f"auth_token: {token}")
    """

    def __init__(
        self,
        transport,  # DeviceTransport
        bridge_address: str,
        max_attempts: int = MAX_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL_S,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        logger: Optional[StructuredLogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {poll_interval}")

        self.transport = transport
        self.bridge_address = bridge_address
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self.logger = (logger or create_logger("pairing")).bind(bridge_address=bridge_address)

        self.state = PairingState.IDLE
        self.token = ""
        self.attempts_made = 0

    @property
    def attempts_remaining(self) -> int:
        return self.max_attempts - self.attempts_made

    def client_name(self) -> str:
        """Locally generated client identifier sent to the bridge."""
        return f"{CLIENT_NAME_PREFIX}#{int(self._clock())}"

    def run(self) -> Optional[str]:
        """
        Drive the state machine to a terminal state.

        Returns:
            The new token on success, None on failure

        Raises:
            RuntimeError: If called more than once
        """
        if self.state is not PairingState.IDLE:
            raise RuntimeError(f"Pairing already ran (state={self.state.value})")

        self.state = PairingState.CONNECTING
        self.logger.info(
            event=LogEvent.PAIRING_STARTED,
            message="Connecting to bridge for pairing",
        )

        try:
            session = self.transport.connect(self.bridge_address)
        except HueBridgeError as e:
            self.state = PairingState.FAILED
            self.logger.error(
                event=LogEvent.PAIRING_FAILED,
                message="Unable to connect to Hue bridge",
                exc_info=e
            )
            return None

        self.state = PairingState.AWAITING_APPROVAL
        self.logger.info(
            event=LogEvent.PAIRING_WAITING,
            message="Press the link button on the Hue bridge",
            metadata={'timeout_s': self.max_attempts * self.poll_interval}
        )

        while self.attempts_remaining > 0:
            self._sleep(self.poll_interval)
            self.attempts_made += 1
            attempt = {'attempt': self.attempts_made, 'max_attempts': self.max_attempts}

            try:
                token = session.create_user(self.client_name())
            except NotAuthorizedYet:
                self.logger.debug(
                    event=LogEvent.PAIRING_ATTEMPT_FAILED,
                    message="Link button not pressed yet",
                    metadata=attempt
                )
                continue
            except HueBridgeError as e:
                self.logger.warning(
                    event=LogEvent.PAIRING_ATTEMPT_FAILED,
                    message="Pairing attempt failed",
                    metadata=attempt,
                    exc_info=e
                )
                continue

            if token:
                self.token = token
                self.state = PairingState.PAIRED
                self.logger.info(
                    event=LogEvent.PAIRING_SUCCEEDED,
                    message="Token created; add it to the configuration as auth_token",
                    metadata={**attempt, 'token': token}
                )
                return token

        self.state = PairingState.FAILED
        self.logger.error(
            event=LogEvent.PAIRING_FAILED,
            message="Unable to create user on Hue bridge. Please try again",
            metadata={'attempts': self.attempts_made}
        )
        return None
