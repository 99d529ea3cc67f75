"""naming.py – owner canonicalization, type-class mapping and description builders.

The lookup tables live in :mod:`polerecon.config`; every function here takes
them as an argument (defaulting to the built-in tables) so a run can inject
its own without touching module state.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional

from .config import DEFAULT_COMPANY_NAMES, DEFAULT_OWNER_ALIASES
from .models import AttachmentRecord, Kind

UNKNOWN_OWNER = "unknown"
UNKNOWN_NAME = "‼ Unknown Name"

_POLE_TAG_RE = re.compile(r"([A-Z]+\d+)")
_NON_ALPHA_RE = re.compile(r"[^a-z]")

# ---------------------------------------------------------------------------
# owners
# ---------------------------------------------------------------------------

def normalize_owner(owner: Any, aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> str:
    """Lower-case, strip non-letters and resolve through *aliases*.

    ``"CPS Energy"`` → ``"cps"``, ``"AT&T"`` → ``"at&t"``; empty → ``"unknown"``.
    """
    if owner is None:
        return UNKNOWN_OWNER
    key = _NON_ALPHA_RE.sub("", str(owner).lower())
    if not key:
        return UNKNOWN_OWNER
    return aliases.get(key, key)


def normalize_company_name(company: Any, names: Mapping[str, str] = DEFAULT_COMPANY_NAMES) -> str:
    """Display company name used in guy keys (``"CPS"``, ``"AT&T"`` …).

    The letters-only key must be in *names* exactly; anything else is
    upper-cased as is, so ``"Matthews Telecom"`` never becomes AT&T.
    """
    if not company:
        return "UNKNOWN"
    key = _NON_ALPHA_RE.sub("", str(company).lower())
    return names.get(key, str(company).strip().upper())


def owner_from_equipment_type(type_label: str) -> str:
    """Best-guess owner for items whose source carries no owner."""
    lowered = type_label.lower()
    if "drip" in lowered or "loop" in lowered:
        return "cps"
    if "communication" in lowered or "service" in lowered or "comm" in lowered:
        return "charter"
    if "street" in lowered or "light" in lowered:
        return "city"
    if "guy" in lowered:
        return "cps"
    return UNKNOWN_OWNER


def resolve_owner(record: AttachmentRecord, aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> str:
    """Normalized owner of *record*, falling back to its type class."""
    owner = normalize_owner(record.owner, aliases)
    if owner != UNKNOWN_OWNER:
        return owner
    return owner_from_equipment_type(type_label(record))

# ---------------------------------------------------------------------------
# type classes
# ---------------------------------------------------------------------------

def map_equipment_type(type_label: str) -> str:
    """Collapse free-text attachment types into a small set of classes."""
    lowered = type_label.lower()
    if ("communication" in lowered or "comm" in lowered
            or "service" in lowered or "drop" in lowered):
        return "communication_service"
    if "drip" in lowered or "loop" in lowered:
        return "drip_loop"
    if "guy" in lowered:
        return "guy"
    if "street" in lowered and "light" in lowered:
        return "street_light"
    if "transformer" in lowered:
        return "transformer"
    return lowered


def type_label(record: AttachmentRecord) -> str:
    """Lower-case type string used by the fuzzy matcher and filters."""
    subtype = (record.subtype or "").strip().lower()
    if record.kind is Kind.INSULATOR:
        return f"insulator {subtype}".strip()
    if record.kind is Kind.GUY:
        return f"guy {subtype}".strip() if "guy" not in subtype else subtype
    if record.kind is Kind.CROSS_ARM:
        return "cross-arm"
    if record.kind is Kind.EQUIPMENT:
        return subtype or "equipment"
    return subtype or "wire"


def is_communication_service(record: AttachmentRecord) -> bool:
    return map_equipment_type(type_label(record)) == "communication_service"


def wire_phase(type_label: str, description: str = "") -> str:
    """Phase class of a wire: primary/neutral/secondary/service/communication."""
    text = f"{type_label} {description}".lower()
    for phase in ("primary", "neutral", "secondary", "service"):
        if phase in text:
            return phase
    if "comm" in text or "catv" in text or "fiber" in text or "telco" in text:
        return "communication"
    return type_label.lower() or "unknown"

# ---------------------------------------------------------------------------
# pole identifiers
# ---------------------------------------------------------------------------

def extract_pole_tag(label: Any) -> Optional[str]:
    """Pull the letters+digits pole tag out of a label.

    ``"8-PL239434"`` → ``"PL239434"``; labels without such a run are
    returned stripped, and empty labels give ``None``.
    """
    if label is None:
        return None
    text = str(label).strip()
    if not text:
        return None
    match = _POLE_TAG_RE.search(text.upper())
    return match.group(1) if match else text

# ---------------------------------------------------------------------------
# description builders
# ---------------------------------------------------------------------------

def safe_name(item: dict) -> str:
    """Name of a SPIDA item from ``clientItem.size``, a string clientItem, or ``size``."""
    client_item = item.get("clientItem")
    if isinstance(client_item, dict) and client_item.get("size"):
        return str(client_item["size"])
    if isinstance(client_item, str) and client_item.strip():
        return client_item.strip()
    if item.get("size"):
        return str(item["size"])
    return UNKNOWN_NAME


def safe_alias(item: dict) -> Optional[str]:
    alias = item.get("clientItemAlias")
    if isinstance(alias, str) and alias.strip():
        return alias.strip()
    return None


def safe_owner(item: dict) -> str:
    owner = item.get("owner")
    if isinstance(owner, dict):
        owner = owner.get("id") or owner.get("name")
    return str(owner).strip() if owner else "Unknown"


def wire_description(wire: dict) -> str:
    usage = wire.get("usageGroup") or ""
    name = safe_name(wire)
    if "BUNDLE" in usage:
        return f"{name} (Bundle Messenger)"
    if "SERVICE" in usage:
        return f"{name} (Service Drop)"
    tension = wire.get("tensionGroup")
    return f"{name} - {tension}" if tension else name


def insulator_description(insulator: dict, cross_arm_ids: set, notes: List[str]) -> str:
    """Alias first, then size.  Ids that collide with a cross-arm are flagged."""
    description = safe_alias(insulator) or safe_name(insulator)
    if insulator.get("id") and insulator["id"] in cross_arm_ids:
        notes.append(f"Insulator {insulator['id']} shares an id with a cross-arm - check data integrity")
        description = "‼ Cross-arm in Insulator"
    return description


def cross_arm_description(arm: dict) -> str:
    name = safe_name(arm)
    if arm.get("type") == "DOUBLE" or "double" in name.lower():
        return f"Double {name}"
    return name


def guy_description(guy: dict) -> str:
    description = safe_alias(guy) or safe_name(guy)
    guy_type = guy.get("type")
    if guy_type and guy_type != "GUY":
        description += f" ({guy_type})"
    return description


def equipment_description(equipment: dict) -> str:
    name = safe_name(equipment)
    client_item = equipment.get("clientItem")
    equipment_type = (
        (client_item.get("type") if isinstance(client_item, dict) else None)
        or equipment.get("type") or "Equipment"
    )
    if str(equipment_type).lower() not in name.lower():
        return f"{equipment_type} - {name}"
    return name


def trace_name(trace: dict, notes: List[str]) -> str:
    """Katapult trace name: label → cable_type → _trace_type → company."""
    for key in ("label", "cable_type", "_trace_type"):
        value = str(trace.get(key) or "").strip()
        if value:
            return value
    company = str(trace.get("company") or "").strip()
    if company:
        notes.append("Trace name derived from company only - may be ambiguous")
        return f"{company} Attachment"
    notes.append("No identifying information found in trace data")
    return "‼ No Trace Name"


def katapult_equipment_name(equipment_type: str | None, measurement_of: str | None = None) -> str:
    description = (equipment_type or "Equipment").replace("_", " ")
    description = description[:1].upper() + description[1:]
    if measurement_of and str(measurement_of).strip():
        description += f" ({str(measurement_of).strip()})"
    return description
