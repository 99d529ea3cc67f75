"""frames.py – pandas tables built from a ReconciliationResult.

Column names are meant for people ("Pole", "Height (ft)") and the frames
are what export and display code consume.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Tuple

import pandas as pd

from .engine import ReconciliationResult
from .grouping import group_by_insulator, remove_duplicate_wires, sort_with_cross_arm_hierarchy
from .models import AttachmentRecord, Kind, Layer
from .units import format_ft_in

_LAYER_COLUMNS = {
    Layer.SOURCE_A_BASELINE: "SourceA Baseline",
    Layer.SOURCE_A_PROPOSED: "SourceA Proposed",
    Layer.SOURCE_B_BASELINE: "SourceB Baseline",
    Layer.SOURCE_B_PROPOSED: "SourceB Proposed",
}


def _describe(records) -> str:
    return "; ".join(
        f"{r.description}{' *' if r.synthetic else ''}" for r in records
    )


def _round(value, digits: int = 2):
    return round(value, digits) if value is not None else None


def records_frame(records: List[AttachmentRecord]) -> pd.DataFrame:
    """One row per normalized record."""
    return pd.DataFrame([r.to_dict() for r in records],
                        columns=["pole_id", "scid", "layer", "kind", "description", "height_ft",
                                 "ref", "parent_ref", "subtype", "synthetic", "owner",
                                 "parent_arm_ref"])


def _attachment_row(rec: AttachmentRecord, depth: int) -> dict:
    return {
        "Pole": rec.pole_id,
        "Layer": rec.layer.value,
        "Attachment": f"{'   ' * depth}{rec.description}",
        "Kind": rec.kind.value,
        "Owner": rec.owner,
        "Height (ft)": _round(rec.height_ft),
        "Height": format_ft_in(rec.height_ft),
        "Ref": rec.ref,
        "Depth": depth,
    }


def attachments_frame(result: ReconciliationResult) -> pd.DataFrame:
    """Records of each pole and layer nested for display.

    Cross-arms sit above their insulators and wires are listed once, under
    the insulator they hang from.
    """
    by_layer: Dict[Tuple[str, Layer], List[AttachmentRecord]] = OrderedDict()
    for rec in result.records:
        by_layer.setdefault((rec.pole_id, rec.layer), []).append(rec)

    rows = []
    for records in by_layer.values():
        groups, _ = group_by_insulator(records)
        wires = {group.insulator.ref: group.wires for group in groups}
        arms = {r.ref for r in records if r.kind is Kind.CROSS_ARM}
        for rec in sort_with_cross_arm_hierarchy(remove_duplicate_wires(records)):
            depth = 1 if rec.kind is Kind.INSULATOR and rec.parent_arm_ref in arms else 0
            rows.append(_attachment_row(rec, depth))
            if rec.kind is Kind.INSULATOR:
                rows.extend(_attachment_row(wire, depth + 1) for wire in wires.get(rec.ref, []))
    return pd.DataFrame(rows, columns=["Pole", "Layer", "Attachment", "Kind", "Owner",
                                       "Height (ft)", "Height", "Ref", "Depth"])


def buckets_frame(result: ReconciliationResult) -> pd.DataFrame:
    """One row per pole × height bucket, highest bucket first within a pole."""
    rows = []
    for comparison in result.pole_comparisons:
        for bucket in comparison.buckets:
            row = {
                "Pole": comparison.pole_id,
                "SCID": comparison.scid,
                "Height (ft)": bucket.height_ft,
                "Height": format_ft_in(bucket.height_ft),
            }
            for layer, column in _LAYER_COLUMNS.items():
                row[column] = _describe(bucket.records(layer))
            row["Delta (ft)"] = _round(bucket.delta_ft)
            row["Severity"] = bucket.severity.value
            rows.append(row)
    return pd.DataFrame(rows, columns=["Pole", "SCID", "Height (ft)", "Height",
                                       *_LAYER_COLUMNS.values(), "Delta (ft)", "Severity"])


def points_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for pole in result.poles.values():
        for comp in pole.point_comparisons:
            a, b = comp.source_a, comp.source_b
            rows.append({
                "Pole": pole.pole_id,
                "Match": comp.match_type.value,
                "SourceA Point": a.description if a else None,
                "SourceA Owner": a.owner if a else None,
                "SourceA Height (ft)": _round(a.height_ft) if a else None,
                "SourceB Point": b.description if b else None,
                "SourceB Owner": b.owner if b else None,
                "SourceB Height (ft)": _round(b.height_ft) if b else None,
                "SourceB Synthetic": b.synthetic if b else None,
                "Difference (ft)": _round(comp.height_difference_ft),
            })
    return pd.DataFrame(rows)


def cross_arms_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for pole in result.poles.values():
        for match in pole.cross_arm_matches:
            a, b = match.source_a, match.source_b
            rows.append({
                "Pole": pole.pole_id,
                "Match": match.match_type.value,
                "SourceA Arm": a.arm_id if a else None,
                "SourceA Height (ft)": _round(a.height_ft) if a else None,
                "SourceA Wires": len(a.wires) if a else 0,
                "SourceB Arm": b.arm_id if b else None,
                "SourceB Height (ft)": _round(b.height_ft) if b else None,
                "SourceB Wires": len(b.wires) if b else 0,
                "Difference (ft)": _round(match.height_difference_ft),
            })
    return pd.DataFrame(rows)


def guys_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = [
        {
            "Pole": pole.pole_id,
            "Status": r.status.value,
            "Owner": r.owner,
            "Height (in)": r.height_in,
            "SourceA Guy": r.source_a_id,
            "SourceB Guy": r.source_b_id,
        }
        for pole in result.poles.values()
        for r in pole.guy_results
    ]
    return pd.DataFrame(rows, columns=["Pole", "Status", "Owner", "Height (in)",
                                       "SourceA Guy", "SourceB Guy"])


def fuzzy_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for pole in result.poles.values():
        for match in pole.fuzzy_matches:
            a, b = match.source_a, match.source_b
            rows.append({
                "Pole": pole.pole_id,
                "SourceA Attachment": f"{a.owner} - {a.description}",
                "SourceA Height": format_ft_in(a.height_ft),
                "SourceB Attachment": f"{b.owner} - {b.description}" if b else "No match found",
                "SourceB Height": format_ft_in(b.height_ft) if b else None,
                "Priority": int(match.priority) if match.priority is not None else None,
                "Difference (ft)": _round(match.height_delta_ft),
            })
    return pd.DataFrame(rows)


def summary_frame(result: ReconciliationResult) -> pd.DataFrame:
    """Run totals as a two-column table."""
    return pd.DataFrame(list(result.summary().items()), columns=["Metric", "Value"])


def proposed_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for pole in result.poles.values():
        for change in pole.proposed_changes:
            a, b = change.source_a, change.source_b
            rows.append({
                "Pole": pole.pole_id,
                "Change": change.change_type.value,
                "SourceA Attachment": a.description if a else None,
                "SourceA Height (ft)": _round(a.height_ft) if a else None,
                "Was (ft)": _round(change.source_a_baseline_ft),
                "SourceB Attachment": b.description if b else None,
                "SourceB Height (ft)": _round(b.height_ft) if b else None,
                "SourceB Layer": change.source_b_layer.value if change.source_b_layer else None,
            })
    return pd.DataFrame(rows)
