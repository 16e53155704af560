"""
Hue CLI - Main entry point.

Sends commands to a running Hue bridge and reads back the state and attribute
descriptions it keeps retained on the broker.
"""

import argparse
import sys
from typing import List, Optional

from hue_mqtt.topics import (
    DEFAULT_NAMESPACE,
    DISCOVERY_PREFIX,
    command_topic,
    decode_segment,
    device_path,
    discovery_topic,
    register_topic,
    state_topic,
)

from .mqtt_client import MQTTCommandClient

DEVICE_COMMANDS = ("set", "get", "describe")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hue-cli",
        description="Hue CLI - Control lights through the Hue MQTT bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Turn a light on
  hue-cli --bridge-name "Philips hue" set "Desk Lamp" On true

  # Set brightness / named color / xy color
  hue-cli --bridge-name "Philips hue" set "Desk Lamp" Brightness 200
  hue-cli --bridge-name "Philips hue" set "Desk Lamp" "Color Name" Red
  hue-cli --bridge-name "Philips hue" set "Desk Lamp" "XY Color" 0.3,0.3

  # Read the current value / list the attributes of a light
  hue-cli --bridge-name "Philips hue" get "Desk Lamp" Brightness
  hue-cli --bridge-name "Philips hue" describe "Desk Lamp"

  # Ask a running bridge to pair with a Hue bridge (press the link button)
  hue-cli register 192.168.1.2
"""
    )

    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument("--username", default=None, help="MQTT username")
    parser.add_argument("--password", default=None, help="MQTT password")
    parser.add_argument(
        "--namespace",
        default=DEFAULT_NAMESPACE,
        help=f"Topic namespace (default: {DEFAULT_NAMESPACE})"
    )
    parser.add_argument(
        "--bridge-name",
        default=None,
        help="Friendly name of the Hue bridge (second topic segment)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=2.0,
        help="Seconds to wait for retained values on get/describe (default: 2.0)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    set_cmd = subparsers.add_parser("set", help="Set a light attribute")
    set_cmd.add_argument("device_id", help="Device id (light name)")
    set_cmd.add_argument("attribute", help="Attribute name (On, Brightness, Hue, ...)")
    set_cmd.add_argument("value", help="Raw attribute value")

    get_cmd = subparsers.add_parser("get", help="Read a light attribute")
    get_cmd.add_argument("device_id", help="Device id (light name)")
    get_cmd.add_argument("attribute", help="Attribute name")

    describe = subparsers.add_parser("describe", help="List the attributes of a light")
    describe.add_argument("device_id", help="Device id (light name)")

    register = subparsers.add_parser("register", help="Trigger pairing with a Hue bridge")
    register.add_argument("bridge_address", help="Network address of the Hue bridge")

    return parser


def resolve_topic(args: argparse.Namespace) -> str:
    """Build the topic (or topic filter) a parsed command works on."""
    if args.command == "register":
        return register_topic(args.namespace, args.bridge_address)

    if args.command not in DEVICE_COMMANDS:
        raise ValueError(f"Unknown command: {args.command}")

    if not args.bridge_name:
        raise ValueError(f"--bridge-name is required for '{args.command}'")
    path = device_path(args.namespace, args.bridge_name, args.device_id)

    if args.command == "set":
        return command_topic(path, args.attribute)
    if args.command == "get":
        return state_topic(path, args.attribute)
    return discovery_topic(path, "+")


def format_descriptions(retained: dict) -> List[str]:
    """Turn retained discovery messages into "<attribute>: <spec> : <description>" lines."""
    lines = []
    for topic in sorted(retained):
        if topic.startswith(f"{DISCOVERY_PREFIX}/"):
            attribute = decode_segment(topic.rsplit("/", 1)[-1])
            lines.append(f"{attribute}: {retained[topic]}")
    return lines


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        topic = resolve_topic(args)

        client = MQTTCommandClient(
            broker=args.broker,
            port=args.port,
            username=args.username,
            password=args.password,
        )

        if args.command == "get":
            retained = client.read_retained(topic, timeout=args.timeout)
            if topic not in retained:
                raise LookupError(f"No state retained on '{topic}'. Is the bridge running?")
            print(retained[topic])

        elif args.command == "describe":
            lines = format_descriptions(client.read_retained(topic, timeout=args.timeout))
            if not lines:
                raise LookupError(f"No attributes announced for device '{args.device_id}'")
            print("\n".join(lines))

        else:
            payload = args.value if args.command == "set" else ""
            client.send_command(topic, payload, qos=1)

    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
