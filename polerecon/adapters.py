"""adapters.py – walk a SPIDAcalc or Katapult document and emit AttachmentRecords.

Both schemas converge on :class:`~polerecon.models.AttachmentRecord`; pick
the walker with :class:`SourceSchema` and :func:`normalize`.

Records come out in document traversal order.  Missing heights become
``0.0`` with a warning, heights far above the pole top are warned about but
kept, and nothing here raises for bad data.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .config import DEFAULT_CONFIG, ReconcileConfig
from .diagnostics import WarningCollector
from .errors import MissingCollaboratorError
from .models import AttachmentRecord, Kind, Layer
from .naming import (
    cross_arm_description,
    equipment_description,
    extract_pole_tag,
    guy_description,
    insulator_description,
    katapult_equipment_name,
    safe_name,
    safe_owner,
    trace_name,
    wire_description,
)
from .units import LengthConverter, inches_to_feet

logger = logging.getLogger(__name__)


class SourceSchema(str, Enum):
    SOURCE_A = "spida"
    SOURCE_B = "katapult"


def normalize(
    document: dict,
    schema: SourceSchema | str,
    warnings: WarningCollector,
    config: ReconcileConfig = DEFAULT_CONFIG,
    converter: Optional[LengthConverter] = None,
) -> List[AttachmentRecord]:
    """Dispatch *document* to the walker for *schema*."""
    _require_collector(warnings, "normalize")
    schema = SourceSchema(schema)
    if schema is SourceSchema.SOURCE_A:
        return normalize_source_a(document, warnings, config, converter)
    return normalize_source_b(document, warnings, config, converter)

# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _require_collector(warnings: Optional[WarningCollector], where: str) -> None:
    if warnings is None:
        raise MissingCollaboratorError("warnings", where)


def _first_val(d: dict | None) -> Any | None:
    if isinstance(d, dict) and d:
        return next(iter(d.values()), None)
    return None


def _get_imported_val(d: Any) -> Any | None:
    """Katapult attribute value: the ``-Imported`` key, else the first value."""
    if isinstance(d, dict) and d:
        imported = d.get("-Imported")
        if imported is not None:
            return imported
        return _first_val(d)
    return d or None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_plausible(
    records: List[AttachmentRecord],
    pole_top_ft: Optional[float],
    buffer_ft: float,
    warnings: WarningCollector,
) -> None:
    if not pole_top_ft:
        return
    limit = pole_top_ft + buffer_ft
    for rec in records:
        if rec.height_ft > limit:
            warnings.add(
                f"{rec.layer.value} {rec.kind.value} {rec.ref} on pole {rec.pole_id} "
                f"at {rec.height_ft:.2f} ft is above pole top {pole_top_ft:.2f} ft + {buffer_ft:g} ft"
            )

# ---------------------------------------------------------------------------
# Source A – SPIDAcalc exchange JSON
# ---------------------------------------------------------------------------

def _spida_layer(design: dict, index: int) -> Optional[Layer]:
    layer_type = str(design.get("layerType") or "").strip().upper()
    if layer_type == "MEASURED":
        return Layer.SOURCE_A_BASELINE
    if layer_type == "RECOMMENDED":
        return Layer.SOURCE_A_PROPOSED
    if index == 0:
        return Layer.SOURCE_A_BASELINE
    if index == 1:
        return Layer.SOURCE_A_PROPOSED
    return None


def normalize_source_a(
    document: dict,
    warnings: WarningCollector,
    config: ReconcileConfig = DEFAULT_CONFIG,
    converter: Optional[LengthConverter] = None,
) -> List[AttachmentRecord]:
    """Flatten every Measured/Recommended design in a SPIDAcalc document."""
    _require_collector(warnings, "normalize_source_a")
    convert = converter or LengthConverter()
    records: List[AttachmentRecord] = []

    for lead in _as_list(document.get("leads")):
        for loc in _as_list(_as_dict(lead).get("locations")):
            loc = _as_dict(loc)
            label = loc.get("label")
            pole_id = extract_pole_tag(label)
            if not pole_id:
                warnings.add("SPIDA location without a label was skipped")
                continue
            scid = str(loc.get("scid") or label).strip()

            for index, design in enumerate(_as_list(loc.get("designs"))):
                design = _as_dict(design)
                layer = _spida_layer(design, index)
                if layer is None:
                    logger.debug(f"Skipping extra SPIDA design #{index} on {pole_id}")
                    continue
                structure = _as_dict(design.get("structure"))
                design_records, pole_top = _spida_structure_records(
                    pole_id, scid, layer, structure, warnings, convert
                )
                _check_plausible(design_records, pole_top, config.implausible_height_buffer_ft, warnings)
                records.extend(design_records)

    logger.info(f"📋 Normalized {len(records)} SPIDA records")
    return records


def _spida_structure_records(
    pole_id: str,
    scid: str,
    layer: Layer,
    structure: dict,
    warnings: WarningCollector,
    convert: Callable[[Any], Optional[float]],
) -> Tuple[List[AttachmentRecord], Optional[float]]:
    """Records for one design structure, plus the pole's above-ground length."""
    out: List[AttachmentRecord] = []
    pole_top = convert(_as_dict(structure.get("pole")).get("agl"))
    where = f"{pole_id} ({layer.value})"

    def height_of(item: dict, keys: Tuple[str, ...], what: str, ref: str) -> float:
        for key in keys:
            value = convert(item.get(key))
            if value is not None:
                return value
        if "distanceToBottom" in item and pole_top is not None:
            offset = convert(item.get("distanceToBottom"))
            if offset is not None:
                return pole_top - offset
        warnings.add(f"SPIDA {what} {ref} on {where} has no height - using 0 ft")
        return 0.0

    def add(kind: Kind, item: dict, ref: str, description: str, height: float, **extra: Any) -> None:
        out.append(AttachmentRecord(
            pole_id=pole_id,
            scid=scid,
            layer=layer,
            kind=kind,
            description=description,
            height_ft=height,
            ref=ref,
            owner=safe_owner(item),
            **extra,
        ))

    # cross-arms first: insulators mounted on them take the arm height
    arm_heights: Dict[str, float] = {}
    insulator_arm: Dict[str, str] = {}
    for i, arm in enumerate(_as_list(structure.get("crossArms"))):
        arm = _as_dict(arm)
        ref = str(arm.get("id") or f"crossarm-{i}")
        height = height_of(arm, ("attachmentHeight", "offset"), "cross-arm", ref)
        arm_heights[ref] = height
        for ins_id in _as_list(arm.get("insulators")):
            insulator_arm[str(ins_id)] = ref
        add(Kind.CROSS_ARM, arm, ref, cross_arm_description(arm), height, subtype="CrossArm")
    cross_arm_ids = set(arm_heights)

    wires_by_id = {
        str(w.get("id")): w for w in _as_list(structure.get("wires"))
        if isinstance(w, dict) and w.get("id") is not None
    }
    attached = set()

    for i, ins in enumerate(_as_list(structure.get("insulators"))):
        ins = _as_dict(ins)
        ref = str(ins.get("id") or f"insulator-{i}")
        arm_ref = insulator_arm.get(ref)
        if arm_ref is not None:
            height = arm_heights[arm_ref]
        else:
            height = height_of(ins, ("offset", "attachmentHeight"), "insulator", ref)

        notes: List[str] = []
        description = insulator_description(ins, cross_arm_ids, notes)
        for note in notes:
            warnings.add(f"{note} ({where})")

        ins_wires = []
        for wire_id in _as_list(ins.get("wires")):
            wire = wires_by_id.get(str(wire_id))
            if wire is None:
                warnings.add(f"Insulator {ref} on {where} references missing wire {wire_id}")
                continue
            ins_wires.append(wire)

        if safe_owner(ins) == "Unknown" and ins_wires:
            ins = dict(ins, owner=ins_wires[0].get("owner"))
        add(Kind.INSULATOR, ins, ref, description, height,
            subtype=(safe_name(ins) if ins.get("clientItem") else None),
            parent_arm_ref=arm_ref)

        # wires hang from the insulator, so they share its height
        for wire in ins_wires:
            wire_ref = str(wire["id"])
            attached.add(wire_ref)
            add(Kind.WIRE, wire, wire_ref, wire_description(wire), height,
                subtype=wire.get("usageGroup"), parent_ref=ref)

    for i, wire in enumerate(_as_list(structure.get("wires"))):
        wire = _as_dict(wire)
        ref = str(wire.get("id") or f"wire-{i}")
        if ref in attached:
            continue
        height = height_of(wire, ("attachmentHeight",), "wire", ref)
        add(Kind.WIRE, wire, ref, wire_description(wire), height, subtype=wire.get("usageGroup"))

    for i, equipment in enumerate(_as_list(structure.get("equipments") or structure.get("equipment"))):
        equipment = _as_dict(equipment)
        ref = str(equipment.get("id") or f"equipment-{i}")
        height = height_of(equipment, ("attachmentHeight",), "equipment", ref)
        client_item = equipment.get("clientItem")
        subtype = client_item.get("type") if isinstance(client_item, dict) else None
        add(Kind.EQUIPMENT, equipment, ref, equipment_description(equipment), height,
            subtype=subtype or equipment.get("type") or "Equipment")

    seen_guys = set()
    for section, keys in (("guys", ("attachmentHeight",)), ("guyAttachPoints", ("attachHeight", "attachmentHeight"))):
        for i, guy in enumerate(_as_list(structure.get(section))):
            guy = _as_dict(guy)
            ref = str(guy.get("id") or f"{section}-{i}")
            if ref in seen_guys:
                continue
            seen_guys.add(ref)
            height = height_of(guy, keys, "guy", ref)
            add(Kind.GUY, guy, ref, guy_description(guy), height, subtype=str(guy.get("type") or "GUY"))

    return out, pole_top

# ---------------------------------------------------------------------------
# Source B – Katapult Pro job JSON
# ---------------------------------------------------------------------------

_PHOTO_SECTIONS = ("wire", "equipment", "guying")
# ref suffix of the Proposed-layer copy of a baseline Katapult item
PROPOSED_SUFFIX = "@proposed"


def _is_pole_node(attrs: dict, config: ReconcileConfig) -> bool:
    node_type_attr = attrs.get("node_type")
    if isinstance(node_type_attr, dict):
        node_type = node_type_attr.get("button_added") or _first_val(node_type_attr)
    else:
        node_type = node_type_attr
    return not node_type or str(node_type).strip().lower() in config.pole_node_types


def _katapult_pole_id(attrs: dict) -> Optional[str]:
    assessment = _as_dict(attrs.get("electric_pole_tag")).get("assessment")
    if assessment:
        return extract_pole_tag(assessment)
    tagtext = _as_dict(_first_val(attrs.get("pole_tag"))).get("tagtext")
    if tagtext and tagtext != "N/A":
        return extract_pole_tag(tagtext)
    dloc = _get_imported_val(attrs.get("DLOC_number"))
    if dloc and dloc != "N/A":
        return extract_pole_tag(dloc if str(dloc).upper().startswith("PL") else f"PL{dloc}")
    scid = _get_imported_val(attrs.get("scid"))
    return str(scid).strip() if scid else None


def _main_photo_data(node: dict, photos: dict) -> Iterator[Tuple[str, dict]]:
    """``photofirst_data`` blocks of the node's main photos."""
    for photo_id, link in _as_dict(node.get("photos")).items():
        photo = _as_dict(photos.get(photo_id))
        association = _as_dict(link).get("association") if isinstance(link, dict) else link
        data = photo.get("photofirst_data")
        if not isinstance(data, dict):
            designs = _as_dict(_as_dict(photo.get("alternate_designs")).get("designs"))
            active = _as_dict(designs.get(photo.get("active_design")))
            data = _as_dict(_as_dict(active.get("data")).get("photo")).get("photofirst_data")
        if not isinstance(data, dict):
            continue
        if association in ("main", True) or data:
            yield photo_id, data


def _alternate_design_moves(document: dict) -> Dict[str, float]:
    """mr_move inches by tag id from the job's first alternate design."""
    designs = _as_dict(_as_dict(document.get("alternate_designs")).get("designs"))
    for design in designs.values():
        photo_data = _as_dict(_as_dict(_as_dict(design).get("data")).get("photo")).get("photofirst_data")
        moves: Dict[str, float] = {}
        for section in ("wire", "equipment"):
            for tag_id, item in _as_dict(_as_dict(photo_data).get(section)).items():
                move = _number(_as_dict(item).get("mr_move"))
                if move:
                    moves[tag_id] = move
        if moves:
            return moves
    return {}


def normalize_source_b(
    document: dict,
    warnings: WarningCollector,
    config: ReconcileConfig = DEFAULT_CONFIG,
    converter: Optional[LengthConverter] = None,
) -> List[AttachmentRecord]:
    """Flatten the main-photo measurements of every pole node in a Katapult job.

    Non-proposed items go to the Baseline layer and, shifted by their
    ``mr_move``, to the Proposed layer; proposed traces go to Proposed only.
    """
    _require_collector(warnings, "normalize_source_b")
    nodes = _as_dict(document.get("nodes"))
    photos = _as_dict(document.get("photos"))
    traces = _as_dict(_as_dict(document.get("traces")).get("trace_data"))
    moves = _alternate_design_moves(document)
    records: List[AttachmentRecord] = []

    for node_id, node in nodes.items():
        node = _as_dict(node)
        attrs = _as_dict(node.get("attributes"))
        if not _is_pole_node(attrs, config):
            continue
        pole_id = _katapult_pole_id(attrs)
        if not pole_id:
            warnings.add(f"Katapult node {node_id} has no pole tag or SCID - skipped")
            continue
        scid = _get_imported_val(attrs.get("scid"))
        scid = str(scid) if scid is not None else None

        walker = _KatapultPole(pole_id, scid, traces, moves, warnings)
        photo_data = list(_main_photo_data(node, photos))
        if photo_data:
            for photo_id, data in photo_data:
                walker.read_photo(photo_id, data)
        elif isinstance(node.get("heights"), dict):
            walker.read_heights(node["heights"])
        else:
            logger.debug(f"Katapult pole {pole_id} has no measured photos")
            continue

        _check_plausible(walker.records, walker.pole_top_ft, config.implausible_height_buffer_ft, warnings)
        records.extend(walker.records)

    logger.info(f"📋 Normalized {len(records)} Katapult records")
    return records


def _looks_like_guy(item: dict, trace: dict) -> bool:
    return (
        item.get("wire_type") == "guy_wire"
        or trace.get("_trace_type") == "down_guy"
        or "guy" in str(trace.get("cable_type") or "").lower()
    )


def _legacy_kind(text: str) -> Kind:
    lowered = text.lower()
    if "insulator" in lowered:
        return Kind.INSULATOR
    if "guy" in lowered:
        return Kind.GUY
    if "crossarm" in lowered or "cross_arm" in lowered or "cross-arm" in lowered:
        return Kind.CROSS_ARM
    if any(word in lowered for word in ("transformer", "equipment", "light", "riser")):
        return Kind.EQUIPMENT
    return Kind.WIRE


class _KatapultPole:
    """Accumulates records for one Katapult pole across its main photos."""

    def __init__(self, pole_id: str, scid: Optional[str], traces: dict,
                 moves: Dict[str, float], warnings: WarningCollector):
        self.pole_id = pole_id
        self.scid = scid
        self.traces = traces
        self.moves = moves
        self.warnings = warnings
        self.records: List[AttachmentRecord] = []
        self.pole_top_ft: Optional[float] = None
        self._seen = set()

    def _trace(self, section: str, tag_id: str, item: dict, required: bool) -> dict:
        trace_id = item.get("_trace")
        trace = self.traces.get(trace_id) if trace_id else None
        if isinstance(trace, dict):
            return trace
        if required or trace_id:
            self.warnings.add(
                f"Katapult {section} {tag_id} on {self.pole_id} has no trace data ({trace_id or 'no _trace'})"
            )
        return {}

    def _height(self, section: str, tag_id: str, inches: Any) -> float:
        value = _number(inches)
        if value is None:
            self.warnings.add(f"Katapult {section} {tag_id} on {self.pole_id} has no measured height - using 0 ft")
            return 0.0
        return inches_to_feet(value)

    def _emit(self, kind: Kind, tag_id: str, description: str, height: float, owner: str,
              subtype: Optional[str], proposed: bool, move_in: Optional[float]) -> None:
        common = dict(pole_id=self.pole_id, scid=self.scid, kind=kind, description=description,
                      owner=owner or "Unknown", subtype=subtype)
        if proposed:
            self.records.append(AttachmentRecord(layer=Layer.SOURCE_B_PROPOSED, height_ft=height,
                                                 ref=tag_id, **common))
            return
        self.records.append(AttachmentRecord(layer=Layer.SOURCE_B_BASELINE, height_ft=height,
                                             ref=tag_id, **common))
        moved = height + inches_to_feet(move_in) if move_in else height
        self.records.append(AttachmentRecord(layer=Layer.SOURCE_B_PROPOSED, height_ft=moved,
                                             ref=f"{tag_id}{PROPOSED_SUFFIX}", **common))

    def _move(self, tag_id: str, item: dict) -> Optional[float]:
        move = _number(item.get("mr_move"))
        return move if move else self.moves.get(tag_id)

    # -- photofirst_data -----------------------------------------------------

    def read_photo(self, photo_id: str, data: dict) -> None:
        top = _as_dict(_first_val(data.get("pole_top")))
        top_in = _number(top.get("_measured_height"))
        if top_in is not None and self.pole_top_ft is None:
            self.pole_top_ft = inches_to_feet(top_in)

        for section in _PHOTO_SECTIONS:
            for tag_id, item in _as_dict(data.get(section)).items():
                if tag_id in self._seen or not isinstance(item, dict):
                    continue
                self._seen.add(tag_id)
                getattr(self, f"_read_{section}")(tag_id, item)
        logger.debug(f"Read photo {photo_id} for pole {self.pole_id}")

    def _read_wire(self, tag_id: str, item: dict) -> None:
        trace = self._trace("wire", tag_id, item, required=True)
        height = self._height("wire", tag_id, item.get("_measured_height"))
        company = str(trace.get("company") or "")
        proposed = trace.get("proposed") is True

        if _looks_like_guy(item, trace):
            guy_type = trace.get("_trace_type") or trace.get("cable_type") or "guy"
            subtype = "down_guy" if "down" in str(guy_type).lower() else "guy"
            self._emit(Kind.GUY, tag_id, f"{guy_type} [wire]", height, company, subtype,
                       proposed, self._move(tag_id, item))
            return

        notes: List[str] = []
        description = trace_name(trace, notes) if trace else str(item.get("_trace") or tag_id)
        for note in notes:
            self.warnings.add(f"{note} (Katapult wire {tag_id} on {self.pole_id})")
        subtype = trace.get("cable_type") or trace.get("_trace_type") or "Unknown"
        self._emit(Kind.WIRE, tag_id, description, height, company, subtype,
                   proposed, self._move(tag_id, item))

    def _read_equipment(self, tag_id: str, item: dict) -> None:
        trace = self._trace("equipment", tag_id, item, required=False)
        height = self._height("equipment", tag_id, item.get("_measured_height"))
        equipment_type = item.get("equipment_type") or trace.get("_trace_type")
        description = katapult_equipment_name(equipment_type, item.get("measurement_of"))
        self._emit(Kind.EQUIPMENT, tag_id, description, height, str(trace.get("company") or ""),
                   equipment_type or "Equipment", trace.get("proposed") is True,
                   self._move(tag_id, item))

    def _read_guying(self, tag_id: str, item: dict) -> None:
        trace = self._trace("guy", tag_id, item, required=True)
        height = self._height("guy", tag_id, item.get("_measured_height"))
        guy_type = (
            str(item.get("guy_type") or item.get("guying_type") or "").strip()
            or trace.get("_trace_type") or trace.get("cable_type")
        )
        if not guy_type:
            self.warnings.add(f"Katapult guy {tag_id} on {self.pole_id} has no guy type - using 'guy'")
            guy_type = "guy"
        subtype = "down_guy" if "down" in str(guy_type).lower() else "guy"
        self._emit(Kind.GUY, tag_id, f"{guy_type} [guying]", height, str(trace.get("company") or ""),
                   subtype, trace.get("proposed") is True, self._move(tag_id, item))

    # -- legacy node.heights -------------------------------------------------

    def read_heights(self, heights: dict) -> None:
        for tag_id, entry in heights.items():
            entry = _as_dict(entry)
            feet = _number(entry.get("height_ft"))
            inches = _number(entry.get("height_in")) or 0.0
            if feet is None:
                self.warnings.add(f"Katapult height {tag_id} on {self.pole_id} has no height_ft - using 0 ft")
                feet = 0.0
            label = str(entry.get("type") or tag_id)
            self._emit(_legacy_kind(label), tag_id, label, feet + inches_to_feet(inches),
                       str(entry.get("company") or ""), entry.get("type"),
                       entry.get("proposed") is True, self._move(tag_id, entry))
