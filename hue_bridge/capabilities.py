"""
Capability descriptors - one controllable or observable light attribute each.

A capability knows how to parse a command payload, how to push the parsed
value to the light, and how to render the light's confirmed state as the
canonical wire string. Capabilities hold no per-device state: the owning
DeviceAdapter is passed in on every call, so a single instance is shared by
all devices.

apply() returns the state topics to republish as {attribute: value}: its own
value, re-read from the light after the transport confirmed the change, plus
the "companion" attributes the change also moves. Every color setter moves
Color Mode; Color Name and XY Color also return the other color
representation so both stay consistent.
"""

import math
import re
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Iterable, Tuple

from hue_bridge.colors import NO_COLOR, color_name_for, format_xy, lookup_color
from hue_bridge.errors import UnsupportedOperationError, ValidationError

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")

TRUE_VALUES = frozenset({"true", "t", "1"})
FALSE_VALUES = frozenset({"false", "f", "0"})

XY_COLOR = "XY Color"
COLOR_NAME = "Color Name"
COLOR_MODE = "Color Mode"


class Capability(ABC):
    """
    Base class for light attributes.

    Subclasses implement read(); writable ones also implement parse() and
    write(). apply() must stay idempotent: sending the same payload twice
    just re-confirms the same state on the light.
    """

    name: str = ""
    param_spec: str = ""
    description: str = ""
    writable: bool = True
    companions: Tuple[str, ...] = ()

    def apply(self, device, payload: str) -> Dict[str, str]:
        """
        Parse ``payload``, push it to the light and report the new state.

        Raises:
            ValidationError: Payload malformed or out of range
            DeviceCommError: Transport call failed
            UnsupportedOperationError: Attribute is read-only
        """
        value = self.parse(payload)
        self.write(device, value)
        return self._with_companions(device, {self.name: self.read(device)})

    def _with_companions(self, device, states: Dict[str, str]) -> Dict[str, str]:
        for name in self.companions:
            if device.has_attribute(name):
                states[name] = device.get_attribute(name)
        return states

    def parse(self, payload: str):
        raise UnsupportedOperationError(f"Attribute '{self.name}' is read-only")

    def write(self, device, value) -> None:
        raise UnsupportedOperationError(f"Attribute '{self.name}' is read-only")

    @abstractmethod
    def read(self, device) -> str:
        """Render the light's current state as the wire string."""

    def describe(self) -> Tuple[str, str, str]:
        return self.name, self.param_spec, self.description

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class OnOffCapability(Capability):
    def __init__(self, name: str = "On"):
        self.name = name
        self.param_spec = "on bool"
        self.description = "Turns the light on or off"

    def parse(self, payload: str) -> bool:
        text = payload.strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise ValidationError(f"{self.name}: expected 'true' or 'false', got {payload!r}")

    def write(self, device, value: bool) -> None:
        device.light.set_state(on=value)

    def read(self, device) -> str:
        return "true" if device.light.state.get("on") else "false"


class RangeCapability(Capability):
    """
    Bounded integer attribute. Out-of-range values are rejected, not clamped.

    Args:
        field: Light state field the value maps to (bri, hue, sat, ct)
        turn_on: Also switch the light on when setting the value
        companions: Other attributes the new value changes (Color Mode)
    """

    def __init__(
        self,
        name: str,
        field: str,
        minimum: int,
        maximum: int,
        param_spec: str,
        description: str,
        turn_on: bool = False,
        companions: Tuple[str, ...] = (),
    ):
        self.name = name
        self.field = field
        self.minimum = minimum
        self.maximum = maximum
        self.param_spec = param_spec
        self.description = description
        self.turn_on = turn_on
        self.companions = companions

    def parse(self, payload: str) -> int:
        text = payload.strip()
        if not _INTEGER_RE.fullmatch(text):
            raise ValidationError(f"{self.name}: expected a base-10 integer, got {payload!r}")

        value = int(text)
        if not self.minimum <= value <= self.maximum:
            raise ValidationError(
                f"{self.name}: {value} is outside the range {self.minimum}-{self.maximum}"
            )
        return value

    def write(self, device, value: int) -> None:
        fields = {self.field: value}
        if self.turn_on:
            fields["on"] = True
        device.light.set_state(**fields)

    def read(self, device) -> str:
        return str(int(device.light.state.get(self.field) or 0))


class ChoiceCapability(Capability):
    """String attribute restricted to a fixed set of values (case-insensitive)."""

    def __init__(
        self,
        name: str,
        field: str,
        choices: Iterable[str],
        param_spec: str,
        description: str,
        default: str = "none",
    ):
        self.name = name
        self.field = field
        self.choices: FrozenSet[str] = frozenset(c.lower() for c in choices)
        self.param_spec = param_spec
        self.description = description
        self.default = default

    def parse(self, payload: str) -> str:
        value = payload.strip().lower()
        if value not in self.choices:
            raise ValidationError(
                f"{self.name}: {payload!r} is not one of {', '.join(sorted(self.choices))}"
            )
        return value

    def write(self, device, value: str) -> None:
        device.light.set_state(**{self.field: value, "on": True})

    def read(self, device) -> str:
        return str(device.light.state.get(self.field) or self.default)


class XYColorCapability(Capability):
    """CIE xy color, wire-encoded as "x,y" with each coordinate in 0.0-1.0."""

    companions = (COLOR_MODE,)

    def __init__(self, name: str = XY_COLOR):
        self.name = name
        self.param_spec = "x,y float"
        self.description = "Sets the light to the `x,y` positions on the CIE color space"

    def apply(self, device, payload: str) -> Dict[str, str]:
        states = super().apply(device, payload)
        # A raw xy point no longer corresponds to a named color
        states[COLOR_NAME] = NO_COLOR
        return states

    def parse(self, payload: str) -> Tuple[float, float]:
        parts = payload.split(",")
        if len(parts) != 2:
            raise ValidationError(f"{self.name}: expected 'x,y', got {payload!r}")

        tokens = [part.strip() for part in parts]
        if not all(_DECIMAL_RE.fullmatch(token) for token in tokens):
            raise ValidationError(f"{self.name}: coordinates must be decimals, got {payload!r}")
        x, y = float(tokens[0]), float(tokens[1])

        for coordinate in (x, y):
            if not math.isfinite(coordinate) or not 0.0 <= coordinate <= 1.0:
                raise ValidationError(f"{self.name}: coordinate {coordinate} is outside 0.0-1.0")
        return x, y

    def write(self, device, value: Tuple[float, float]) -> None:
        device.light.set_state(xy=[value[0], value[1]], on=True)

    def read(self, device) -> str:
        xy = device.light.state.get("xy")
        if not xy or len(xy) != 2:
            return format_xy((0.0, 0.0))
        return format_xy(xy)


class ColorNameCapability(Capability):
    """
    Named color from the color table.

    "None" or an empty payload is accepted and only republishes "None".
    A known name sets the light's xy and republishes both the name and the
    derived "XY Color" state.
    """

    companions = (COLOR_MODE,)

    def __init__(self, name: str = COLOR_NAME):
        self.name = name
        self.param_spec = "name string"
        self.description = "Sets the light to the predefined color"

    def apply(self, device, payload: str) -> Dict[str, str]:
        if payload in ("", NO_COLOR):
            return {self.name: NO_COLOR}

        xy = self.parse(payload)
        self.write(device, xy)
        return self._with_companions(device, {
            self.name: payload,
            XY_COLOR: format_xy(xy),
        })

    def parse(self, payload: str) -> Tuple[float, float]:
        xy = lookup_color(payload)
        if xy is None:
            raise ValidationError(f"{self.name}: unknown color name {payload!r}")
        return xy

    def write(self, device, value: Tuple[float, float]) -> None:
        device.light.set_state(xy=[value[0], value[1]], on=True)

    def read(self, device) -> str:
        return color_name_for(device.light.state.get("xy"))


class ReadOnlyCapability(Capability):
    """Observable attribute with no apply; commands fail with UnsupportedOperationError."""

    writable = False

    def __init__(self, name: str, field: str, description: str, default: str = ""):
        self.name = name
        self.field = field
        self.param_spec = "read only"
        self.description = description
        self.default = default

    def apply(self, device, payload: str) -> Dict[str, str]:
        raise UnsupportedOperationError(f"Attribute '{self.name}' is read-only")

    def read(self, device) -> str:
        return str(device.light.state.get(self.field) or self.default)


def default_capabilities() -> Dict[str, Capability]:
    """The static attribute set every light is bound to, keyed by name."""
    capabilities = (
        OnOffCapability(),
        RangeCapability(
            "Brightness", "bri", 0, 254,
            param_spec="value uint8",
            description="Sets the light brightness to the specified value from 0-254",
        ),
        RangeCapability(
            "Hue", "hue", 0, 65535,
            param_spec="value uint16",
            description="Sets the hue to the specified value from 0-65535",
            turn_on=True,
            companions=(COLOR_MODE,),
        ),
        RangeCapability(
            "Saturation", "sat", 0, 254,
            param_spec="value uint8",
            description="Sets the saturation to the specified value from 0-254",
            turn_on=True,
            companions=(COLOR_MODE,),
        ),
        ChoiceCapability(
            "Effect", "effect", ("colorloop", "none"),
            param_spec="effect string",
            description="Sets the effect mode. Acceptable values are 'colorloop' or 'none'",
        ),
        XYColorCapability(),
        ColorNameCapability(),
        RangeCapability(
            "Color Temp", "ct", 153, 500,
            param_spec="value uint16",
            description="Sets the mired color temperature to the specified value from 153-500",
            turn_on=True,
            companions=(COLOR_MODE,),
        ),
        ChoiceCapability(
            "Alert", "alert", ("none", "select", "lselect"),
            param_spec="selected string",
            description="Sets the light alert state. Valid values are 'select', 'lselect' or 'none'",
        ),
        ReadOnlyCapability(
            COLOR_MODE, "colormode",
            description=(
                "Specifies the last mode used for choosing colors. Values are 'hs' for Hue "
                "and Saturation, 'xy' for XY and 'ct' for Color Temperature."
            ),
        ),
    )
    return {capability.name: capability for capability in capabilities}
