"""crossarms.py – which wires sit on which cross-arm, on both sides.

Source A names its arms and the insulators on them.  Katapult does not, so
its wires are snapped to the standard mounting bands and each band that
catches wires becomes a pseudo arm (``KArm#n@h ft``).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_BAND_HEIGHTS_FT
from .models import (
    AttachmentRecord,
    CrossArmGroup,
    CrossArmMatch,
    CrossArmMatchType,
    CrossArmWiring,
    Kind,
    Source,
)
from .naming import type_label

logger = logging.getLogger(__name__)

STANDARD_BANDS_FT = DEFAULT_BAND_HEIGHTS_FT
BAND_TOLERANCE_FT = 0.25
ARM_MATCH_TOLERANCE_FT = 1.0
EXACT_ARM_MATCH_FT = 0.1


def snap_to_band(height_ft: float, bands: Sequence[float] = STANDARD_BANDS_FT,
                 tolerance_ft: float = BAND_TOLERANCE_FT) -> float:
    """Nearest band within ±*tolerance_ft* (boundary included), else *height_ft*."""
    best: Optional[float] = None
    for band in bands:
        diff = abs(height_ft - band)
        # 1e-9 absorbs float error at the window edge
        if diff <= tolerance_ft + 1e-9 and (best is None or diff < abs(height_ft - best)):
            best = band
    return height_ft if best is None else best


def source_a_cross_arm_wiring(records: Iterable[AttachmentRecord]) -> List[CrossArmWiring]:
    """Walk arm → insulator → wire through the explicit references."""
    ours = [r for r in records if r.source is Source.SOURCE_A]
    arms = {(r.pole_id, r.layer, r.ref): r for r in ours if r.kind is Kind.CROSS_ARM}
    insulators = {
        (r.pole_id, r.layer, r.ref): r for r in ours
        if r.kind is Kind.INSULATOR and r.parent_arm_ref and not r.synthetic
    }

    wiring: List[CrossArmWiring] = []
    for wire in ours:
        if wire.kind is not Kind.WIRE or not wire.parent_ref:
            continue
        insulator = insulators.get((wire.pole_id, wire.layer, wire.parent_ref))
        if insulator is None:
            continue
        arm = arms.get((wire.pole_id, wire.layer, insulator.parent_arm_ref))
        if arm is None:
            logger.debug(f"Insulator {insulator.ref} points at unknown arm {insulator.parent_arm_ref}")
            continue
        wiring.append(CrossArmWiring(
            source=Source.SOURCE_A,
            arm_id=arm.ref,
            arm_height_ft=arm.height_ft,
            wire_id=wire.ref,
            wire_type=wire.subtype or type_label(wire),
            wire_owner=wire.owner,
            insulator_id=insulator.ref,
        ))
    return wiring


def source_b_cross_arm_wiring(records: Iterable[AttachmentRecord],
                              bands: Sequence[float] = STANDARD_BANDS_FT,
                              tolerance_ft: float = BAND_TOLERANCE_FT) -> List[CrossArmWiring]:
    """Group Katapult wires into pseudo arms by snapped band height.

    Wires outside every band window are grouped by their own raw height.
    """
    wires = [r for r in records
             if r.source is Source.SOURCE_B and r.kind is Kind.WIRE and not r.synthetic]
    arm_ids: Dict[float, str] = {}
    wiring: List[CrossArmWiring] = []
    for wire in wires:
        snapped = snap_to_band(wire.height_ft, bands, tolerance_ft)
        if snapped not in arm_ids:
            arm_ids[snapped] = f"KArm#{len(arm_ids) + 1}@{snapped:.2f}ft"
        wiring.append(CrossArmWiring(
            source=Source.SOURCE_B,
            arm_id=arm_ids[snapped],
            arm_height_ft=snapped,
            wire_id=wire.ref,
            wire_type=wire.subtype or type_label(wire),
            wire_owner=wire.owner,
            pseudo=True,
        ))
    return wiring


def group_wiring_by_cross_arm(*wiring_lists: Iterable[CrossArmWiring]) -> List[CrossArmGroup]:
    """Collect wiring rows into one group per arm, highest arm first."""
    groups: Dict[tuple, CrossArmGroup] = {}
    for wiring in wiring_lists:
        for row in wiring:
            key = (row.source, row.arm_id)
            group = groups.get(key)
            if group is None:
                group = groups[key] = CrossArmGroup(
                    arm_id=row.arm_id,
                    height_ft=row.arm_height_ft,
                    source=row.source,
                    pseudo=row.pseudo,
                )
            group.wires.append(row)
    return sorted(groups.values(), key=lambda g: g.height_ft, reverse=True)


def match_cross_arms(
    source_a: Iterable[CrossArmGroup],
    source_b: Iterable[CrossArmGroup],
    tolerance_ft: float = ARM_MATCH_TOLERANCE_FT,
) -> List[CrossArmMatch]:
    """Greedy nearest-height pairing of real arms with pseudo arms.

    For each Source A arm the closest unused Source B arm within
    *tolerance_ft* wins (first one on a tie).  Output is highest first.
    """
    b_groups = list(source_b)
    used = set()
    matches: List[CrossArmMatch] = []

    for a in source_a:
        best, best_diff = None, None
        for i, b in enumerate(b_groups):
            if i in used:
                continue
            diff = abs(a.height_ft - b.height_ft)
            if diff <= tolerance_ft and (best_diff is None or diff < best_diff):
                best, best_diff = i, diff
        if best is None:
            matches.append(CrossArmMatch(CrossArmMatchType.SOURCE_A_ONLY, source_a=a))
            continue
        used.add(best)
        kind = CrossArmMatchType.EXACT if best_diff < EXACT_ARM_MATCH_FT else CrossArmMatchType.CLOSE
        matches.append(CrossArmMatch(kind, a, b_groups[best], best_diff))

    for i, b in enumerate(b_groups):
        if i not in used:
            matches.append(CrossArmMatch(CrossArmMatchType.SOURCE_B_ONLY, source_b=b))

    def height(match: CrossArmMatch) -> float:
        return (match.source_a or match.source_b).height_ft

    return sorted(matches, key=height, reverse=True)
