"""config.py – immutable lookup tables and tunables for a reconciliation run.

Defaults cover the CPS Energy / AT&T / Charter service territory the tool
was written for.  A JSON file can override any top-level key:

    {
        "owner_aliases": {"windstream": "windstream"},
        "implausible_height_buffer_ft": 8
    }

Mapping values are *merged* into the defaults; scalars and lists replace them.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

_NON_ALPHA_RE = re.compile(r"[^a-z]")

# ---------------------------------------------------------------------------
# default tables
# ---------------------------------------------------------------------------

# key: owner lower-cased with everything but a-z stripped
DEFAULT_OWNER_ALIASES: Mapping[str, str] = MappingProxyType({
    "cpsenergy": "cps",
    "cpsenerg": "cps",
    "attcom": "at&t",
    "att": "at&t",
    "suddenlink": "suddenlink",
    "charter": "charter",
    "chartercomm": "charter",
    "spectrum": "charter",
    "city": "city",
    "municipal": "city",
})

# key: company lower-cased with everything but a-z stripped -> guy key name
DEFAULT_COMPANY_NAMES: Mapping[str, str] = MappingProxyType({
    "cpsenergy": "CPS",
    "cpsenerg": "CPS",
    "cps": "CPS",
    "attcom": "AT&T",
    "att": "AT&T",
    "charter": "CHARTER",
    "chartercomm": "CHARTER",
    "spectrum": "CHARTER",
    "suddenlink": "SUDDENLINK",
    "city": "CITY",
    "municipal": "CITY",
})

# Katapult node types accepted as poles
DEFAULT_POLE_NODE_TYPES: FrozenSet[str] = frozenset({
    "pole", "power", "power transformer", "joint", "joint transformer",
})

# standard cross-arm mounting heights in feet, top to bottom
DEFAULT_BAND_HEIGHTS_FT: Tuple[float, ...] = (16.5, 14.5, 10.5, 6.5, 2.5)


@dataclass(frozen=True)
class ReconcileConfig:
    owner_aliases: Mapping[str, str] = field(default_factory=lambda: DEFAULT_OWNER_ALIASES)
    company_names: Mapping[str, str] = field(default_factory=lambda: DEFAULT_COMPANY_NAMES)
    pole_node_types: FrozenSet[str] = DEFAULT_POLE_NODE_TYPES
    band_heights_ft: Tuple[float, ...] = DEFAULT_BAND_HEIGHTS_FT
    band_tolerance_ft: float = 0.25
    implausible_height_buffer_ft: float = 5.0
    # filled by load_config() so callers can tell where overrides came from
    source: Optional[str] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_aliases": dict(self.owner_aliases),
            "company_names": dict(self.company_names),
            "pole_node_types": sorted(self.pole_node_types),
            "band_heights_ft": list(self.band_heights_ft),
            "band_tolerance_ft": self.band_tolerance_ft,
            "implausible_height_buffer_ft": self.implausible_height_buffer_ft,
        }


DEFAULT_CONFIG = ReconcileConfig()


def _freeze(name: str, value: Any) -> Any:
    if name in ("owner_aliases", "company_names"):
        return MappingProxyType({
            _NON_ALPHA_RE.sub("", str(k).lower()): str(v) for k, v in dict(value).items()
        })
    if name == "pole_node_types":
        return frozenset(str(v).lower() for v in value)
    if name == "band_heights_ft":
        return tuple(sorted((float(v) for v in value), reverse=True))
    return float(value)


def config_from_dict(overrides: Mapping[str, Any], source: Optional[str] = None) -> ReconcileConfig:
    """Return a config with *overrides* applied on top of the defaults.

    Unknown keys are ignored with a warning.
    """
    config = DEFAULT_CONFIG.to_dict()
    known = {f.name for f in fields(ReconcileConfig)} - {"source"}
    for key, value in overrides.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}'")
            continue
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value

    return ReconcileConfig(
        **{name: _freeze(name, value) for name, value in config.items()},
        source=source,
    )


def load_config(path: Path | str | None = None) -> ReconcileConfig:
    """Load configuration, starting from defaults and applying *path* on top."""
    if path is None:
        return DEFAULT_CONFIG

    config_file = Path(path)
    if not config_file.exists():
        logger.warning(f"Configuration file {config_file} not found, using defaults")
        return DEFAULT_CONFIG

    try:
        with config_file.open("r", encoding="utf-8") as f:
            loaded = json.load(f)
        config = config_from_dict(loaded, source=str(config_file))
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to load configuration from {config_file}: {e}")
        return DEFAULT_CONFIG

    logger.info(f"Configuration successfully loaded from {config_file}")
    return config
