#!/usr/bin/env python3
"""
Hue MQTT Bridge - Entry Point
=============================

This script starts the Hue bridge service, which:
- Authenticates with a Philips Hue bridge
- Enumerates lights and announces every attribute on MQTT (retained)
- Applies "<...>/Set" commands and republishes the confirmed state
- Runs link-button pairing on "<Namespace>/Service/<address>/Register"

Usage:
    python run_bridge.py --config config/bridge.yaml
    python run_bridge.py --config config/bridge.yaml --pair 192.168.1.2

Lifecycle:
    1. Load configuration from YAML (+ HUE_* environment overrides)
    2. Setup logging (console + file)
    3. Connect the MQTT bus client
    4. Start HueBridgeService (all-or-nothing)
    5. Wait for stop signal (Ctrl+C or SIGTERM)
    6. Graceful shutdown

Logs:
    - Console: INFO level
    - File: logs/bridge.log (INFO level)
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from hue_bridge import BridgeConfig, HueBridgeService, PairingCoordinator
from hue_bridge.errors import HueBridgeError, TransportConnectError
from hue_mqtt import MQTTBusClient, create_logger
from hue_transport import HueRestTransport


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the bridge.

    Args:
        log_file: Optional path to log file (default: logs/bridge.log)

    Returns:
        Logger instance for the bridge app
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class BridgeApp:
    """
    Application wrapper for HueBridgeService.

    Handles:
    - Configuration loading
    - Component initialization (transport, bus client)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None):
        self.config_path = config_path
        self.logger = setup_logging(log_file)

        self.config: Optional[BridgeConfig] = None
        self.transport: Optional[HueRestTransport] = None
        self.bus: Optional[MQTTBusClient] = None
        self.service: Optional[HueBridgeService] = None

        self._shutdown_requested = False
        self._stopped = threading.Event()

    def load_config(self) -> BridgeConfig:
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = BridgeConfig.from_yaml(self.config_path)
        self.transport = HueRestTransport(timeout_s=self.config.hue.request_timeout)
        return self.config

    def setup(self):
        """
        Setup all components and start the bridge.

        Steps:
        1. Load configuration
        2. Create and connect the MQTT bus client
        3. Create HueBridgeService and start it
        """
        self.logger.info("=" * 80)
        self.logger.info("🚀 Hue MQTT Bridge - Starting")
        self.logger.info("=" * 80)

        config = self.load_config()

        self.logger.info(f"🔌 Connecting to MQTT broker {config.mqtt.broker}:{config.mqtt.port}")
        self.bus = MQTTBusClient(
            broker_host=config.mqtt.broker,
            broker_port=config.mqtt.port,
            client_id=config.mqtt.client_id,
            logger=create_logger(component="mqtt"),
            username=config.mqtt.username,
            password=config.mqtt.password,
            qos=config.mqtt.qos,
            keepalive=config.mqtt.keepalive,
        )
        self.service = HueBridgeService(transport=self.transport, bus=self.bus)

        if not self.bus.connect(timeout=config.mqtt.connect_timeout):
            raise TransportConnectError(
                f"Failed to connect to MQTT broker at {config.mqtt.broker}:{config.mqtt.port}"
            )

        self.service.start(config.hue)
        self.logger.info(f"✅ Bridge '{self.service.bridge_name}' running")
        self.logger.info("=" * 80)

    def pair(self, bridge_address: str) -> Optional[str]:
        """Run link-button pairing out of band (no MQTT needed)."""
        self.load_config()
        self.logger.info(f"🔗 Pairing with Hue bridge at {bridge_address}")
        return PairingCoordinator(self.transport, bridge_address).run()

    def run(self):
        """
        Block until shutdown is requested (via signal or exception).
        """
        if not self.service or not self.service.is_running:
            raise RuntimeError("Service not started. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.logger.info("Press Ctrl+C to stop")
        try:
            while not self._stopped.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("⚠️  KeyboardInterrupt received")
            self.shutdown()

    def shutdown(self):
        """Graceful shutdown of all components."""
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True
        self.logger.info("🛑 Shutting down bridge")

        if self.service:
            try:
                self.service.stop()
            except Exception as e:
                self.logger.error(f"❌ Error stopping service: {e}")
        elif self.bus:
            self.bus.close()

        self._stopped.set()
        self.logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Hue MQTT Bridge - Philips Hue lights on an MQTT bus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the bridge
  python run_bridge.py --config config/bridge.yaml

  # Start without file logging (console only)
  python run_bridge.py --config config/bridge.yaml --no-log-file

  # Obtain a token (press the link button within 60 seconds)
  python run_bridge.py --config config/bridge.yaml --pair 192.168.1.2
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to bridge configuration YAML file'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/bridge.log'),
        help='Path to log file (default: logs/bridge.log)'
    )
    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )
    parser.add_argument(
        '--pair',
        metavar='ADDRESS',
        default=None,
        help='Pair with the Hue bridge at ADDRESS, print the token and exit'
    )

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = BridgeApp(config_path=args.config, log_file=log_file)

    if args.pair:
        token = app.pair(args.pair)
        if not token:
            print("❌ Pairing failed: link button was not pressed in time", file=sys.stderr)
            sys.exit(1)
        print(f"auth_token: {token}")
        return

    try:
        app.setup()
    except (HueBridgeError, ValueError) as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        app.shutdown()
        sys.exit(1)

    app.run()


if __name__ == '__main__':
    main()
