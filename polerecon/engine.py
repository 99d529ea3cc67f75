"""engine.py – reusable engine that reconciles a SPIDAcalc exchange JSON
with a Katapult Pro job JSON.

Returns a :class:`ReconciliationResult` with:
    severity-tagged height buckets per pole, attachment-point pairs,
    cross-arm pairs, guy matches, detail-view matches, proposed-design
    changes and the run's data-quality warnings.
"""

from __future__ import annotations

import logging
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .adapters import SourceSchema, normalize
from .bucketing import build_pole_comparisons
from .config import DEFAULT_CONFIG, ReconcileConfig
from .crossarms import (
    group_wiring_by_cross_arm,
    match_cross_arms,
    source_a_cross_arm_wiring,
    source_b_cross_arm_wiring,
)
from .diagnostics import WarningCollector
from .guys import collect_guys, match_guys
from .loader import load_document
from .matcher import match_attachments, proposed_changes
from .models import (
    AttachmentPointComparison,
    AttachmentRecord,
    CrossArmMatch,
    FuzzyMatch,
    Kind,
    Layer,
    MatchResult,
    PoleComparison,
    ProposedChange,
    Severity,
    Source,
)
from .points import build_source_a_points, build_source_b_points, compare_attachment_points
from .units import LengthConverter

logger = logging.getLogger(__name__)


@dataclass
class PoleReconciliation:
    pole_id: str
    scid: Optional[str]
    comparison: PoleComparison
    in_source_a: bool
    in_source_b: bool
    point_comparisons: List[AttachmentPointComparison] = field(default_factory=list)
    cross_arm_matches: List[CrossArmMatch] = field(default_factory=list)
    guy_results: List[MatchResult] = field(default_factory=list)
    fuzzy_matches: List[FuzzyMatch] = field(default_factory=list)
    proposed_changes: List[ProposedChange] = field(default_factory=list)


@dataclass
class ReconciliationResult:
    pole_comparisons: List[PoleComparison]
    poles: Dict[str, PoleReconciliation]
    warnings: List[str]
    records: List[AttachmentRecord] = field(default_factory=list)

    @property
    def point_comparisons(self) -> List[AttachmentPointComparison]:
        return [c for pole in self.poles.values() for c in pole.point_comparisons]

    @property
    def guy_results(self) -> List[MatchResult]:
        return [r for pole in self.poles.values() for r in pole.guy_results]

    def severity_counts(self) -> Dict[Severity, int]:
        counts = Counter(b.severity for c in self.pole_comparisons for b in c.buckets)
        return {severity: counts.get(severity, 0) for severity in Severity}

    def summary(self) -> Dict[str, int]:
        severities = self.severity_counts()
        guys = self.guy_results
        return {
            "poles": len(self.poles),
            "poles_in_both": sum(1 for p in self.poles.values() if p.in_source_a and p.in_source_b),
            "source_a_only_poles": sum(1 for p in self.poles.values() if not p.in_source_b),
            "source_b_only_poles": sum(1 for p in self.poles.values() if not p.in_source_a),
            "buckets": sum(severities.values()),
            **{f"{s.value}_buckets": n for s, n in severities.items()},
            "guys_matched": sum(1 for r in guys if r.matched),
            "guys_unmatched": sum(1 for r in guys if not r.matched),
            "warnings": len(self.warnings),
        }

# ---------------------------------------------------------------------------
# per-pole analysis
# ---------------------------------------------------------------------------

def reconcile_pole(
    comparison: PoleComparison,
    records: List[AttachmentRecord],
    config: ReconcileConfig = DEFAULT_CONFIG,
) -> PoleReconciliation:
    """Run the point, cross-arm, guy and detail matchers on one pole's records."""
    a_base = [r for r in records if r.layer is Layer.SOURCE_A_BASELINE]
    b_base = [r for r in records if r.layer is Layer.SOURCE_B_BASELINE]

    points = compare_attachment_points(
        build_source_a_points(a_base, config.owner_aliases),
        build_source_b_points(b_base, config.owner_aliases),
    )
    arms = match_cross_arms(
        group_wiring_by_cross_arm(source_a_cross_arm_wiring(a_base)),
        group_wiring_by_cross_arm(
            source_b_cross_arm_wiring(b_base, config.band_heights_ft, config.band_tolerance_ft)
        ),
    )
    guys = match_guys(
        collect_guys(records, Layer.SOURCE_A_BASELINE, config.company_names),
        collect_guys(records, Layer.SOURCE_B_BASELINE, config.company_names),
    )
    fuzzy = match_attachments(
        [r for r in a_base if r.kind is not Kind.CROSS_ARM],
        [r for r in b_base if r.kind is not Kind.CROSS_ARM],
        config.owner_aliases,
    )

    return PoleReconciliation(
        pole_id=comparison.pole_id,
        scid=comparison.scid,
        comparison=comparison,
        in_source_a=any(r.source is Source.SOURCE_A for r in records),
        in_source_b=any(r.source is Source.SOURCE_B for r in records),
        point_comparisons=points,
        cross_arm_matches=arms,
        guy_results=guys,
        fuzzy_matches=fuzzy,
        proposed_changes=proposed_changes(records, config.owner_aliases),
    )

# ---------------------------------------------------------------------------
# main entry points
# ---------------------------------------------------------------------------

def reconcile(
    source_a: dict,
    source_b: dict,
    warnings: Optional[WarningCollector] = None,
    config: Optional[ReconcileConfig] = None,
) -> ReconciliationResult:
    """Reconcile two parsed documents.

    *warnings* defaults to a fresh collector; pass your own to keep a
    handle on it, but never reuse one across runs.
    """
    warnings = warnings if warnings is not None else WarningCollector()
    config = config or DEFAULT_CONFIG
    converter = LengthConverter()

    records = (
        normalize(source_a, SourceSchema.SOURCE_A, warnings, config, converter)
        + normalize(source_b, SourceSchema.SOURCE_B, warnings, config, converter)
    )
    comparisons = build_pole_comparisons(records, warnings)

    by_pole: Dict[str, List[AttachmentRecord]] = OrderedDict()
    for rec in records:
        by_pole.setdefault(rec.pole_id, []).append(rec)

    poles = OrderedDict(
        (c.pole_id, reconcile_pole(c, by_pole.get(c.pole_id, []), config)) for c in comparisons
    )
    result = ReconciliationResult(
        pole_comparisons=comparisons,
        poles=poles,
        warnings=warnings.messages,
        records=records,
    )
    _report(result, converter)
    return result


def compare(spida_path: Path | str, kat_path: Path | str,
            config: Optional[ReconcileConfig] = None) -> ReconciliationResult:
    """Load both exports from disk and reconcile them."""
    spida = load_document(spida_path)
    kat = load_document(kat_path)
    return reconcile(spida, kat, config=config)


def _report(result: ReconciliationResult, converter: LengthConverter) -> None:
    stats = result.summary()
    logger.info("📊 Reconciliation results:")
    logger.info(f"   🎯 Poles in both sources: {stats['poles_in_both']}")
    logger.info(f"   🅰️  Source A only: {stats['source_a_only_poles']}")
    logger.info(f"   🅱️  Source B only: {stats['source_b_only_poles']}")
    logger.info(f"   🟢 {stats['green_buckets']}  🟠 {stats['amber_buckets']}  "
                f"🔴 {stats['red_buckets']}  ⚪ {stats['grey_buckets']} height buckets")
    logger.info(f"   🔗 Guys matched: {stats['guys_matched']}, unmatched: {stats['guys_unmatched']}")
    logger.info(f"   ⚠️  {stats['warnings']} data-quality warnings")
    logger.debug(f"Unit cache: {len(converter)} entries, {converter.hits} hits")
