"""severity.py – colour a height bucket by how far the two sources disagree."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from .models import AttachmentRecord, Layer, Severity

GREEN_MAX_FT = 0.5
AMBER_MAX_FT = 1.0

# (Source A layer, Source B layer) pairs that describe the same design state
LAYER_PAIRS = (
    (Layer.SOURCE_A_BASELINE, Layer.SOURCE_B_BASELINE),
    (Layer.SOURCE_A_PROPOSED, Layer.SOURCE_B_PROPOSED),
)


def mean_height(records: Iterable[AttachmentRecord]) -> Optional[float]:
    """Mean height of the non-synthetic records, or ``None`` if there are none."""
    heights = [r.height_ft for r in records if not r.synthetic]
    if not heights:
        return None
    return sum(heights) / len(heights)


def bucket_delta(layers: Mapping[Layer, Sequence[AttachmentRecord]]) -> Optional[float]:
    """Largest |mean A − mean B| over the layer pairs that have data on both sides."""
    deltas = []
    for a_layer, b_layer in LAYER_PAIRS:
        a_mean = mean_height(layers.get(a_layer, ()))
        b_mean = mean_height(layers.get(b_layer, ()))
        if a_mean is None or b_mean is None:
            continue
        deltas.append(abs(a_mean - b_mean))
    return max(deltas) if deltas else None


def classify_delta(delta_ft: Optional[float]) -> Severity:
    if delta_ft is None:
        return Severity.GREEN
    if delta_ft <= GREEN_MAX_FT:
        return Severity.GREEN
    if delta_ft <= AMBER_MAX_FT:
        return Severity.AMBER
    return Severity.RED


def classify_bucket(layers: Mapping[Layer, Sequence[AttachmentRecord]]) -> Severity:
    """Severity of one bucket.

    Grey only when no layer holds real data.  Real data on one side only
    cannot disagree with anything and is green.
    """
    has_data = any(not r.synthetic for records in layers.values() for r in records)
    if not has_data:
        return Severity.GREY
    return classify_delta(bucket_delta(layers))
