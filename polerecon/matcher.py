"""matcher.py – attachment-by-attachment matching for the pole detail view.

For every Source A record the best Source B candidate is chosen by type
tier (insulator↔insulator, then direct type match, then insulator→wire)
and height.  Ties go to the first candidate found, in Source B order.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from .adapters import PROPOSED_SUFFIX
from .config import DEFAULT_OWNER_ALIASES
from .models import (
    AttachmentRecord,
    ChangeType,
    FuzzyMatch,
    Layer,
    MatchPriority,
    ProposedChange,
)
from .naming import (
    UNKNOWN_OWNER,
    is_communication_service,
    map_equipment_type,
    normalize_owner,
    resolve_owner,
    type_label,
)

logger = logging.getLogger(__name__)

HEIGHT_TOLERANCE_FT = 0.5
COMM_SERVICE_TOLERANCE_FT = 1.0
PRIORITY_BONUS_FT = 0.1

_OWNER_INSENSITIVE = ("guy", "communication_service")
_WIRE_WORDS = ("wire", "cable", "primary", "neutral")


def owners_compatible(a: AttachmentRecord, b: AttachmentRecord,
                      aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> bool:
    """Owners agree, or either is unresolved, or *a* is a guy / comm drop."""
    if map_equipment_type(type_label(a)) in _OWNER_INSENSITIVE:
        return True
    a_owner = resolve_owner(a, aliases)
    b_owner = resolve_owner(b, aliases)
    if a_owner == UNKNOWN_OWNER or b_owner == UNKNOWN_OWNER:
        return True
    return a_owner == b_owner


def match_priority(a: AttachmentRecord, b: AttachmentRecord) -> Optional[MatchPriority]:
    a_type = type_label(a)
    b_type = type_label(b)
    a_insulator = "insulator" in a_type
    b_insulator = "insulator" in b_type
    if a_insulator and b_insulator:
        return MatchPriority.INSULATOR
    if not a_insulator and (a_type in b_type or b_type in a_type
                            or map_equipment_type(a_type) == map_equipment_type(b_type)):
        return MatchPriority.DIRECT
    if a_insulator and not b_insulator and any(word in b_type for word in _WIRE_WORDS):
        return MatchPriority.INSULATOR_TO_WIRE
    return None


def height_tolerance(record: AttachmentRecord) -> float:
    return COMM_SERVICE_TOLERANCE_FT if is_communication_service(record) else HEIGHT_TOLERANCE_FT


def find_best_match(
    record: AttachmentRecord,
    candidates: Iterable[AttachmentRecord],
    aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES,
) -> FuzzyMatch:
    """Best candidate for *record*, minimizing height delta minus 0.1 ft per tier.

    A later candidate only wins with a strictly smaller score.
    """
    tolerance = height_tolerance(record)
    best: Optional[AttachmentRecord] = None
    best_priority: Optional[MatchPriority] = None
    best_score = float("inf")

    for candidate in candidates:
        if not owners_compatible(record, candidate, aliases):
            continue
        priority = match_priority(record, candidate)
        if priority is None:
            continue
        delta = abs(record.height_ft - candidate.height_ft)
        score = delta - int(priority) * PRIORITY_BONUS_FT
        if delta < tolerance and score < best_score:
            best, best_priority, best_score = candidate, priority, score

    if best is None:
        return FuzzyMatch(record)
    return FuzzyMatch(record, best, best_priority, abs(record.height_ft - best.height_ft))


def match_attachments(
    source_a: Iterable[AttachmentRecord],
    source_b: Sequence[AttachmentRecord],
    aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES,
) -> List[FuzzyMatch]:
    """Best match for every Source A record, highest record first.

    Candidates are not claimed, so two records may share a match.
    """
    ordered = sorted(source_a, key=lambda r: r.height_ft, reverse=True)
    candidates = list(source_b)
    return [find_best_match(rec, candidates, aliases) for rec in ordered]

# ---------------------------------------------------------------------------
# proposed-design changes
# ---------------------------------------------------------------------------

def same_attachment(a: AttachmentRecord, b: AttachmentRecord,
                    aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES) -> bool:
    """Same owner and type class, height ignored."""
    a_owner = normalize_owner(a.owner, aliases)
    b_owner = normalize_owner(b.owner, aliases)
    if a_owner != b_owner and UNKNOWN_OWNER not in (a_owner, b_owner):
        return False
    a_type = type_label(a)
    b_type = type_label(b)
    return (
        a_type in b_type or b_type in a_type
        or map_equipment_type(a_type) == map_equipment_type(b_type)
        or ("insulator" in a_type and ("wire" in b_type or "cable" in b_type))
        or ("insulator" in b_type and ("wire" in a_type or "cable" in a_type))
    )


def same_height(a: AttachmentRecord, b: AttachmentRecord) -> bool:
    tolerance = (COMM_SERVICE_TOLERANCE_FT
                 if is_communication_service(a) or is_communication_service(b)
                 else HEIGHT_TOLERANCE_FT)
    return abs(a.height_ft - b.height_ft) < tolerance


def _twin(record: AttachmentRecord, pool: Iterable[AttachmentRecord],
          aliases: Mapping[str, str]) -> Optional[AttachmentRecord]:
    """Nearest-height record in *pool* that is the same attachment; first on ties."""
    best, best_diff = None, None
    for other in pool:
        if not same_attachment(record, other, aliases):
            continue
        diff = abs(record.height_ft - other.height_ft)
        if best_diff is None or diff < best_diff:
            best, best_diff = other, diff
    return best


def proposed_changes(
    records: Iterable[AttachmentRecord],
    aliases: Mapping[str, str] = DEFAULT_OWNER_ALIASES,
) -> List[ProposedChange]:
    """What the proposed Source A design adds or moves on one pole.

    Each change is paired with a Source B baseline item when one exists,
    else with a Source B proposed item.  Source B proposals left unpaired
    are listed at the end.
    """
    by_layer = {layer: [] for layer in Layer}
    for rec in records:
        if not rec.synthetic:
            by_layer[rec.layer].append(rec)
    a_baseline = by_layer[Layer.SOURCE_A_BASELINE]
    b_baseline = by_layer[Layer.SOURCE_B_BASELINE]
    # moved copies of baseline items are not proposals of their own
    b_new = [r for r in by_layer[Layer.SOURCE_B_PROPOSED] if not r.ref.endswith(PROPOSED_SUFFIX)]

    changes: List[ProposedChange] = []
    paired = set()
    for rec in by_layer[Layer.SOURCE_A_PROPOSED]:
        twin = _twin(rec, a_baseline, aliases)
        if twin is not None and same_height(rec, twin):
            continue
        change_type = ChangeType.BRAND_NEW if twin is None else ChangeType.HEIGHT_CHANGE

        match, layer = _twin(rec, b_baseline, aliases), Layer.SOURCE_B_BASELINE
        if match is None:
            match, layer = _twin(rec, b_new, aliases), Layer.SOURCE_B_PROPOSED
            if match is not None:
                paired.add(match.ref)
        changes.append(ProposedChange(
            change_type=change_type,
            source_a=rec,
            source_a_baseline_ft=twin.height_ft if twin is not None else None,
            source_b=match,
            source_b_layer=layer if match is not None else None,
        ))

    for rec in b_new:
        if rec.ref not in paired:
            changes.append(ProposedChange(ChangeType.SOURCE_B_ONLY, source_b=rec,
                                          source_b_layer=Layer.SOURCE_B_PROPOSED))

    logger.debug(f"{len(changes)} proposed changes")
    return changes
