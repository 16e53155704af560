"""
Hue CLI - Command-line interface for the Hue MQTT bridge.

Sends commands to the bridge and reads back retained state without
hand-writing topic paths.

Usage:
    hue-cli --bridge-name "Philips hue" set "Desk Lamp" On true
    hue-cli --bridge-name "Philips hue" get "Desk Lamp" Brightness
    hue-cli register 192.168.1.2
"""

__version__ = "1.0.0"
