"""
Named color table.

Maps canonical color names to CIE xy points (gamut B). The table is built
once at import time and exposed read-only, so it can be shared between
dispatch threads without locking.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

NO_COLOR = "None"

COLORS: Mapping[str, Tuple[float, float]] = MappingProxyType({
    "Red": (0.6915, 0.3083),
    "Yellow": (0.4023, 0.4725),
    "Orange": (0.4693, 0.4007),
    "Green": (0.1700, 0.7000),
    "Cyan": (0.1610, 0.3549),
    "Blue": (0.1530, 0.0480),
    "Purple": (0.2363, 0.1158),
    "Pink": (0.3951, 0.2128),
    "White": (0.3174, 0.3207),
})

# Bridges round xy to 4 decimals
MATCH_TOLERANCE = 0.0005


def lookup_color(name: str) -> Optional[Tuple[float, float]]:
    """Return the xy point for a color name, or None if unknown."""
    return COLORS.get(name)


def color_name_for(xy: Optional[Sequence[float]], tolerance: float = MATCH_TOLERANCE) -> str:
    """
    Reverse lookup: find the table name whose point matches ``xy``.

    Returns:
        The color name, or ``NO_COLOR`` if nothing in the table is close enough.
    """
    if not xy or len(xy) != 2:
        return NO_COLOR

    x, y = float(xy[0]), float(xy[1])
    for name, (cx, cy) in COLORS.items():
        if abs(cx - x) <= tolerance and abs(cy - y) <= tolerance:
            return name
    return NO_COLOR


def format_coordinate(value: float) -> str:
    """Render one coordinate as a short decimal (0.6915, 0.17, 1)."""
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return text or "0"


def format_xy(xy: Sequence[float]) -> str:
    """Render an xy pair as the comma-joined wire encoding."""
    return f"{format_coordinate(xy[0])},{format_coordinate(xy[1])}"
