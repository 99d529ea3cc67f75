"""bucketing.py – align records from both sources into 0.1 ft height buckets.

Every (pole, bucket, layer) that holds a real wire but no real insulator
gets one synthetic ``(implicit)`` insulator at the front of its list, since
the wire has to hang from something even when the survey did not record it.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional

from .diagnostics import WarningCollector
from .errors import MissingCollaboratorError
from .models import AttachmentRecord, HeightBucket, Kind, Layer, PoleComparison
from .severity import bucket_delta, classify_bucket

logger = logging.getLogger(__name__)

BUCKET_RESOLUTION_FT = 0.1
IMPLICIT_INSULATOR = "(implicit)"

# pole -> bucket key -> layer -> records
Buckets = Dict[str, Dict[float, Dict[Layer, List[AttachmentRecord]]]]


def bucket_key(height_ft: float, resolution: float = BUCKET_RESOLUTION_FT) -> float:
    """Nearest multiple of *resolution*; halves round up.  Idempotent."""
    steps = math.floor(height_ft / resolution + 0.5)
    return round(steps * resolution, 10)


def _empty_layers() -> Dict[Layer, List[AttachmentRecord]]:
    return {layer: [] for layer in Layer}


def implicit_insulator(pole_id: str, scid: Optional[str], layer: Layer, key: float) -> AttachmentRecord:
    return AttachmentRecord(
        pole_id=pole_id,
        scid=scid,
        layer=layer,
        kind=Kind.INSULATOR,
        description=IMPLICIT_INSULATOR,
        height_ft=key,
        ref=f"synthetic-insulator-{layer.slug}-{key:g}",
        synthetic=True,
    )


def needs_implicit_insulator(records: Iterable[AttachmentRecord]) -> bool:
    has_wire = has_insulator = False
    for rec in records:
        if rec.synthetic:
            continue
        has_wire = has_wire or rec.kind is Kind.WIRE
        has_insulator = has_insulator or rec.kind is Kind.INSULATOR
    return has_wire and not has_insulator


def bucket_and_join(records: Iterable[AttachmentRecord], warnings: WarningCollector) -> Buckets:
    """Group *records* by pole and bucket key, then add implicit insulators.

    Poles keep first-seen order; buckets are unordered here.
    """
    if warnings is None:
        raise MissingCollaboratorError("warnings", "bucket_and_join")

    buckets: Buckets = OrderedDict()
    scids: Dict[str, Optional[str]] = {}
    for rec in records:
        if rec.synthetic and rec.kind is Kind.INSULATOR and rec.description == IMPLICIT_INSULATOR:
            # re-bucketing output: drop old placeholders, they are rebuilt below
            continue
        pole = buckets.setdefault(rec.pole_id, {})
        key = bucket_key(rec.height_ft)
        pole.setdefault(key, _empty_layers())[rec.layer].append(rec)
        if scids.get(rec.pole_id) is None and rec.scid:
            scids[rec.pole_id] = rec.scid

    synthesized = 0
    for pole_id, pole in buckets.items():
        for key, layers in pole.items():
            for layer, layer_records in layers.items():
                if needs_implicit_insulator(layer_records):
                    layer_records.insert(0, implicit_insulator(pole_id, scids.get(pole_id), layer, key))
                    synthesized += 1
                    continue
                real_insulators = sum(
                    1 for r in layer_records if r.kind is Kind.INSULATOR and not r.synthetic
                )
                has_wire = any(r.kind is Kind.WIRE and not r.synthetic for r in layer_records)
                if real_insulators > 1 and has_wire:
                    warnings.add(
                        f"{real_insulators} insulators share the {key:g} ft bucket on {pole_id} "
                        f"({layer.value}); wires there cannot be tied to one insulator"
                    )

    logger.debug(f"Synthesized {synthesized} implicit insulators across {len(buckets)} poles")
    return buckets


def build_pole_comparisons(
    records: Iterable[AttachmentRecord], warnings: WarningCollector
) -> List[PoleComparison]:
    """Bucket, synthesize and classify; buckets come out highest first."""
    records = list(records)
    buckets = bucket_and_join(records, warnings)
    scids: Dict[str, Optional[str]] = {}
    for rec in records:
        if scids.get(rec.pole_id) is None:
            scids[rec.pole_id] = rec.scid

    comparisons = []
    for pole_id, pole in buckets.items():
        frozen = []
        for key in sorted(pole, reverse=True):
            layers = MappingProxyType({layer: tuple(recs) for layer, recs in pole[key].items()})
            frozen.append(HeightBucket(
                height_ft=key,
                layers=layers,
                severity=classify_bucket(layers),
                delta_ft=bucket_delta(layers),
            ))
        comparisons.append(PoleComparison(pole_id=pole_id, scid=scids.get(pole_id), buckets=tuple(frozen)))

    logger.info(f"📊 Bucketed {len(records)} records into {sum(len(c.buckets) for c in comparisons)} "
                f"height buckets on {len(comparisons)} poles")
    return comparisons
