"""guys.py – exact (company, whole-inch height) matching of down-guys.

No tolerance and no partial credit: a guy one inch off is unmatched on both
sides.  Near misses of 1-3 inches are only logged at DEBUG.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Tuple

from .config import DEFAULT_COMPANY_NAMES
from .models import AttachmentRecord, GuyMatchStatus, GuyRecord, Kind, Layer, MatchResult
from .naming import normalize_company_name
from .units import to_whole_inches

logger = logging.getLogger(__name__)

NEAR_MISS_MAX_IN = 3


def collect_guys(records: Iterable[AttachmentRecord], layer: Layer,
                 company_names: Mapping[str, str] = DEFAULT_COMPANY_NAMES) -> List[GuyRecord]:
    """Real guys of one layer, keyed by display company and whole inches."""
    return [
        GuyRecord(
            id=rec.ref,
            owner=normalize_company_name(rec.owner, company_names),
            height_in=to_whole_inches(rec.height_ft),
            pole_id=rec.pole_id,
            raw_height_ft=rec.height_ft,
        )
        for rec in records
        if rec.kind is Kind.GUY and rec.layer is layer and not rec.synthetic
    ]


def _by_key(guys: Iterable[GuyRecord]) -> Dict[Tuple[str, int], List[GuyRecord]]:
    grouped: Dict[Tuple[str, int], List[GuyRecord]] = OrderedDict()
    for guy in guys:
        grouped.setdefault(guy.key, []).append(guy)
    return grouped


def match_guys(source_a: Iterable[GuyRecord], source_b: Iterable[GuyRecord]) -> List[MatchResult]:
    """Pair guys one-to-one per key; leftovers are reported per side.

    Swapping the sides gives the same number of matched pairs.
    """
    a_keys = _by_key(source_a)
    b_keys = _by_key(source_b)
    results: List[MatchResult] = []
    leftover_a: List[GuyRecord] = []

    for key, a_guys in a_keys.items():
        b_guys = b_keys.get(key, [])
        paired = min(len(a_guys), len(b_guys))
        for a, b in zip(a_guys, b_guys):
            results.append(MatchResult(GuyMatchStatus.MATCHED, key[0], key[1], a.id, b.id))
        leftover_a.extend(a_guys[paired:])
        b_keys[key] = b_guys[paired:]

    leftover_b = [guy for guys in b_keys.values() for guy in guys]
    for a in leftover_a:
        results.append(MatchResult(GuyMatchStatus.SOURCE_A_ONLY, a.owner, a.height_in, source_a_id=a.id))
    for b in leftover_b:
        results.append(MatchResult(GuyMatchStatus.SOURCE_B_ONLY, b.owner, b.height_in, source_b_id=b.id))

    _log_near_misses(leftover_a, leftover_b)
    matched = sum(1 for r in results if r.matched)
    logger.debug(f"Guy matching: {matched} matched, {len(leftover_a)} Source A only, "
                 f"{len(leftover_b)} Source B only")
    return results


def _log_near_misses(leftover_a: List[GuyRecord], leftover_b: List[GuyRecord]) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    for a in leftover_a:
        for b in leftover_b:
            gap = abs(a.height_in - b.height_in)
            if a.owner == b.owner and 1 <= gap <= NEAR_MISS_MAX_IN:
                logger.debug(f"Near miss: {a.owner} guy {a.id} @ {a.height_in}\" vs "
                             f"{b.id} @ {b.height_in}\" ({gap}\" apart, not matched)")
