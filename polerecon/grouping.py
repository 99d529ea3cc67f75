"""grouping.py – insulator/wire nesting and ordering for display.

A wire belongs to an insulator through its explicit ``parent_ref``.  Without
one, it is placed under an insulator only when exactly one real insulator
sits in the same height bucket on the same pole and layer.  Insulators are
indexed once up front, so grouping stays linear in the record count.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .bucketing import bucket_key
from .models import AttachmentRecord, InsulatorGroup, Kind, Layer

InsulatorIndex = Dict[Tuple[str, Layer, float], List[AttachmentRecord]]


def index_insulators(records: Iterable[AttachmentRecord]) -> InsulatorIndex:
    """(pole, layer, bucket) → real insulators in that bucket."""
    index: InsulatorIndex = {}
    for rec in records:
        if rec.kind is Kind.INSULATOR and not rec.synthetic:
            index.setdefault((rec.pole_id, rec.layer, bucket_key(rec.height_ft)), []).append(rec)
    return index


def _parent_of(wire: AttachmentRecord, by_ref: Dict[Tuple[str, Layer, str], AttachmentRecord],
               index: InsulatorIndex) -> Optional[AttachmentRecord]:
    if wire.parent_ref:
        return by_ref.get((wire.pole_id, wire.layer, wire.parent_ref))
    candidates = index.get((wire.pole_id, wire.layer, bucket_key(wire.height_ft)), [])
    return candidates[0] if len(candidates) == 1 else None


def group_by_insulator(records: Iterable[AttachmentRecord]) -> Tuple[List[InsulatorGroup], List[AttachmentRecord]]:
    """Split records into insulator groups and the records that stand alone.

    Both lists keep input order.
    """
    records = list(records)
    index = index_insulators(records)
    groups: Dict[Tuple[str, Layer, str], InsulatorGroup] = {}
    for rec in records:
        if rec.kind is Kind.INSULATOR and not rec.synthetic:
            groups[(rec.pole_id, rec.layer, rec.ref)] = InsulatorGroup(rec)
    by_ref = {key: group.insulator for key, group in groups.items()}

    standalone: List[AttachmentRecord] = []
    for rec in records:
        if rec.kind is Kind.INSULATOR and not rec.synthetic:
            continue
        if rec.kind is Kind.WIRE:
            parent = _parent_of(rec, by_ref, index)
            if parent is not None:
                groups[(parent.pole_id, parent.layer, parent.ref)].wires.append(rec)
                continue
        standalone.append(rec)
    return list(groups.values()), standalone


def remove_duplicate_wires(records: Iterable[AttachmentRecord]) -> List[AttachmentRecord]:
    """Drop wires that will be shown under their insulator anyway."""
    records = list(records)
    index = index_insulators(records)
    by_ref = {
        (r.pole_id, r.layer, r.ref): r for r in records
        if r.kind is Kind.INSULATOR and not r.synthetic
    }
    return [
        r for r in records
        if r.kind is not Kind.WIRE or _parent_of(r, by_ref, index) is None
    ]


def sort_with_cross_arm_hierarchy(records: Iterable[AttachmentRecord]) -> List[AttachmentRecord]:
    """Height-descending order with each cross-arm moved right above its first insulator.

    Arms with no insulator keep their own height position.
    """
    ordered = sorted(records, key=lambda r: r.height_ft, reverse=True)
    arms = {
        (r.pole_id, r.layer, r.ref): r for r in ordered if r.kind is Kind.CROSS_ARM
    }
    placed = set()
    result: List[AttachmentRecord] = []
    for rec in ordered:
        if rec.kind is Kind.CROSS_ARM:
            continue
        arm_key = (rec.pole_id, rec.layer, rec.parent_arm_ref)
        if rec.kind is Kind.INSULATOR and arm_key in arms and arm_key not in placed:
            placed.add(arm_key)
            result.append(arms[arm_key])
        result.append(rec)

    # arms without insulators go back in at their own height
    for key, arm in arms.items():
        if key in placed:
            continue
        position = next((i for i, r in enumerate(result) if r.height_ft < arm.height_ft), len(result))
        result.insert(position, arm)
    return result
