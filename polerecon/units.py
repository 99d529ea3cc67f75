"""units.py – length conversion helpers.

Every height leaving the adapters is in decimal feet; nothing downstream
converts units again.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Optional, Tuple

METRES_PER_FOOT = 0.3048
INCHES_PER_FOOT = 12.0


class Unit(str, Enum):
    METRE = "METRE"
    FOOT = "FOOT"
    INCH = "INCH"


_UNIT_NAMES = {
    "METRE": Unit.METRE, "METER": Unit.METRE, "METRES": Unit.METRE,
    "METERS": Unit.METRE, "M": Unit.METRE,
    "FOOT": Unit.FOOT, "FEET": Unit.FOOT, "FT": Unit.FOOT,
    "INCH": Unit.INCH, "INCHES": Unit.INCH, "IN": Unit.INCH,
}


def parse_unit(raw: Any, default: Unit = Unit.METRE) -> Unit:
    """Map a SPIDA unit label ("METRE", "FEET", …) to :class:`Unit`."""
    if isinstance(raw, Unit):
        return raw
    if raw is None:
        return default
    return _UNIT_NAMES.get(str(raw).strip().upper(), default)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# scalar conversions
# ---------------------------------------------------------------------------

def metres_to_feet(metres: float) -> float:
    return metres / METRES_PER_FOOT

def feet_to_metres(feet: float) -> float:
    return feet * METRES_PER_FOOT

def inches_to_feet(inches: float) -> float:
    return inches / INCHES_PER_FOOT

def feet_to_inches(feet: float) -> float:
    return feet * INCHES_PER_FOOT

def to_feet(value: float, unit: Unit | str = Unit.METRE) -> float:
    """Convert *value* expressed in *unit* to feet."""
    unit = parse_unit(unit)
    if unit is Unit.METRE:
        return metres_to_feet(value)
    if unit is Unit.INCH:
        return inches_to_feet(value)
    return float(value)

def to_whole_inches(feet: float) -> int:
    """Height in feet rounded to the nearest whole inch."""
    return round_half_up(feet_to_inches(feet))

def ft_in(feet: float) -> Tuple[int, int]:
    """Split decimal feet into whole (feet, inches), carrying 12" into the next foot."""
    total = round_half_up(feet_to_inches(abs(feet)))
    return total // 12, total % 12

def format_ft_in(feet: Optional[float]) -> str:
    """Format decimal feet as ``30' 6"``; ``None`` becomes ``N/A``."""
    if feet is None:
        return "N/A"
    whole, inches = ft_in(feet)
    sign = "-" if feet < 0 and (whole or inches) else ""
    return f"{sign}{whole}' {inches}\""


# ---------------------------------------------------------------------------
# SPIDA measurement dicts
# ---------------------------------------------------------------------------

def measurement_to_feet(raw: Any, default_unit: Unit = Unit.METRE) -> Optional[float]:
    """Convert a raw SPIDA measurement to decimal feet.

    Accepts:
        • dicts from SPIDA JSON, e.g. {"unit":"METRE","value":16.764}
        • numeric values, taken to be in *default_unit*

    Returns ``None`` when no numeric value can be found.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, dict):
        try:
            value = float(raw.get("value"))
        except (TypeError, ValueError):
            return None
        return to_feet(value, parse_unit(raw.get("unit"), default_unit))

    if isinstance(raw, (int, float)):
        return to_feet(float(raw), default_unit)

    try:
        return to_feet(float(str(raw).strip()), default_unit)
    except ValueError:
        return None


class LengthConverter:
    """Memoizing wrapper around :func:`measurement_to_feet`.

    One instance per reconciliation run; the cache has no observable effect
    other than speed.
    """

    def __init__(self, default_unit: Unit = Unit.METRE) -> None:
        self.default_unit = default_unit
        self._cache: Dict[Tuple[Any, str], Optional[float]] = {}
        self.hits = 0

    def __call__(self, raw: Any) -> Optional[float]:
        if isinstance(raw, dict):
            key = (raw.get("value"), str(raw.get("unit") or self.default_unit.value).upper())
        elif isinstance(raw, (int, float, str)) and not isinstance(raw, bool):
            key = (raw, self.default_unit.value)
        else:
            return measurement_to_feet(raw, self.default_unit)

        try:
            cached = self._cache[key]
        except KeyError:
            cached = self._cache[key] = measurement_to_feet(raw, self.default_unit)
        except TypeError:
            # unhashable value inside the measurement dict
            return measurement_to_feet(raw, self.default_unit)
        else:
            self.hits += 1
        return cached

    def __len__(self) -> int:
        return len(self._cache)
