"""points.py – attachment-point view of a pole.

Source A points come straight from its insulators.  Katapult has no
insulator entity, so its insulator-mounted wires are clustered by owner,
phase and height, and every cluster that does not land on a known point
becomes a synthetic point.  The two point lists are then paired up.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import DEFAULT_OWNER_ALIASES
from .models import (
    AttachmentPoint,
    AttachmentPointComparison,
    AttachmentRecord,
    Kind,
    Layer,
    PointMatchType,
    Source,
    WireGroup,
)
from .naming import normalize_owner, type_label, wire_phase
from .units import metres_to_feet, round_half_up, to_whole_inches

logger = logging.getLogger(__name__)

POINT_TOLERANCE_M = 0.05
STAGGERED_PRIMARY_TOLERANCE_M = 0.1

POINT_TOLERANCE_FT = metres_to_feet(POINT_TOLERANCE_M)
STAGGERED_PRIMARY_TOLERANCE_FT = metres_to_feet(STAGGERED_PRIMARY_TOLERANCE_M)

_NOT_ON_INSULATORS = ("guy", "pole top", "pole_top", "drop", "service")

# ---------------------------------------------------------------------------
# point construction
# ---------------------------------------------------------------------------

def _insulator_points(records: List[AttachmentRecord], source: Source,
                      aliases: Mapping[str, str]) -> List[AttachmentPoint]:
    children: Dict[Tuple[str, Layer, str], List[str]] = {}
    for rec in records:
        if rec.kind is Kind.WIRE and rec.parent_ref:
            children.setdefault((rec.pole_id, rec.layer, rec.parent_ref), []).append(rec.ref)

    return [
        AttachmentPoint(
            id=rec.ref,
            source=source,
            owner=normalize_owner(rec.owner, aliases),
            description=rec.description,
            height_ft=rec.height_ft,
            pole_id=rec.pole_id,
            wires=list(children.get((rec.pole_id, rec.layer, rec.ref), [])),
        )
        for rec in records
        if rec.kind is Kind.INSULATOR and not rec.synthetic
    ]


def build_source_a_points(records: Iterable[AttachmentRecord],
                          aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> List[AttachmentPoint]:
    """One point per explicit Source A insulator, carrying its wires."""
    ours = [r for r in records if r.source is Source.SOURCE_A]
    return _insulator_points(ours, Source.SOURCE_A, aliases)


def is_insulator_mounted(record: AttachmentRecord) -> bool:
    """True for real wires that plausibly hang from an insulator."""
    if record.kind is not Kind.WIRE or record.synthetic:
        return False
    text = f"{type_label(record)} {record.description.lower()}"
    return not any(word in text for word in _NOT_ON_INSULATORS)


def _tolerance_for(group: WireGroup) -> float:
    if group.phase == "primary" and len(group.wires) == 1:
        return STAGGERED_PRIMARY_TOLERANCE_FT
    return POINT_TOLERANCE_FT


def cluster_wires(wires: Iterable[AttachmentRecord],
                  aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> List[WireGroup]:
    """Greedy single pass: join the first open cluster that fits, else open one.

    A cluster's height is that of its first wire.
    """
    groups: List[WireGroup] = []
    for wire in wires:
        owner = normalize_owner(wire.owner, aliases)
        phase = wire_phase(type_label(wire), wire.description)
        height_cm = round_half_up(wire.height_ft * 30.48)
        for group in groups:
            if (group.key.startswith(f"{wire.pole_id}|") and group.owner == owner
                    and group.phase == phase
                    and abs(group.height_ft - wire.height_ft) <= _tolerance_for(group)):
                group.wires.append(wire)
                break
        else:
            groups.append(WireGroup(
                key=f"{wire.pole_id}|{owner}|{phase}|{height_cm}",
                owner=owner,
                phase=phase,
                height_ft=wire.height_ft,
                wires=[wire],
            ))
    return groups


def _synthetic_id(key: str) -> str:
    return "srcb-" + hashlib.md5(key.encode("utf-8")).hexdigest()[:10]


def build_source_b_points(records: Iterable[AttachmentRecord],
                          aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> List[AttachmentPoint]:
    """Explicit Source B insulators plus synthetic points for clustered wires."""
    ours = [r for r in records if r.source is Source.SOURCE_B]
    points = _insulator_points(ours, Source.SOURCE_B, aliases)
    explicit = list(points)

    loose = [r for r in ours if is_insulator_mounted(r) and not r.parent_ref]
    groups = cluster_wires(loose, aliases)
    for group in groups:
        pole_id = group.wires[0].pole_id
        tolerance = _tolerance_for(group)
        host = next(
            (p for p in explicit
             if p.pole_id == pole_id and p.owner == group.owner
             and abs(p.height_ft - group.height_ft) <= tolerance),
            None,
        )
        wire_refs = [w.ref for w in group.wires]
        if host is not None:
            host.wires.extend(wire_refs)
            continue
        first = group.wires[0]
        points.append(AttachmentPoint(
            id=_synthetic_id(group.key),
            source=Source.SOURCE_B,
            owner=group.owner,
            description=f"Synthetic - {first.subtype or group.phase}",
            height_ft=group.height_ft,
            pole_id=pole_id,
            wires=wire_refs,
            synthetic=True,
        ))

    logger.debug(f"Clustered {len(loose)} Katapult wires into {len(groups)} groups "
                 f"({len(points) - len(explicit)} synthetic points)")
    return points

# ---------------------------------------------------------------------------
# comparison
# ---------------------------------------------------------------------------

def _exact_key(point: AttachmentPoint) -> Tuple[str, str, int, str]:
    return (point.pole_id, point.owner, to_whole_inches(point.height_ft),
            point.description.strip().lower())


def compare_attachment_points(
    source_a: Iterable[AttachmentPoint],
    source_b: Iterable[AttachmentPoint],
    tolerance_ft: float = POINT_TOLERANCE_FT,
) -> List[AttachmentPointComparison]:
    """Pair points: exact key first, then nearest unclaimed same-owner point in tolerance.

    Source A order is kept; unclaimed Source B points are appended last.
    """
    b_points = list(source_b)
    by_key: Dict[Tuple[str, str, int, str], List[int]] = {}
    for index, point in enumerate(b_points):
        by_key.setdefault(_exact_key(point), []).append(index)
    claimed = set()
    results: List[AttachmentPointComparison] = []

    for a in source_a:
        match: Optional[int] = next((i for i in by_key.get(_exact_key(a), ()) if i not in claimed), None)
        if match is not None:
            claimed.add(match)
            b = b_points[match]
            results.append(AttachmentPointComparison(
                PointMatchType.EXACT, a, b, abs(a.height_ft - b.height_ft)))
            continue

        # nearest unclaimed point wins, not the first one inside the tolerance;
        # ties still go to the earliest point
        best, best_diff = None, None
        for i, b in enumerate(b_points):
            if i in claimed or b.pole_id != a.pole_id or b.owner != a.owner:
                continue
            diff = abs(a.height_ft - b.height_ft)
            if diff <= tolerance_ft and (best_diff is None or diff < best_diff):
                best, best_diff = i, diff
        if best is not None:
            claimed.add(best)
            results.append(AttachmentPointComparison(
                PointMatchType.HEIGHT_ONLY, a, b_points[best], best_diff))
        else:
            results.append(AttachmentPointComparison(PointMatchType.SOURCE_A_ONLY, source_a=a))

    for i, b in enumerate(b_points):
        if i not in claimed:
            results.append(AttachmentPointComparison(PointMatchType.SOURCE_B_ONLY, source_b=b))
    return results
