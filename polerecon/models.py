"""models.py – value types shared by every stage of a reconciliation run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class Source(str, Enum):
    SOURCE_A = "SourceA"
    SOURCE_B = "SourceB"


class Layer(str, Enum):
    SOURCE_A_BASELINE = "SourceA-Baseline"
    SOURCE_A_PROPOSED = "SourceA-Proposed"
    SOURCE_B_BASELINE = "SourceB-Baseline"
    SOURCE_B_PROPOSED = "SourceB-Proposed"

    @property
    def source(self) -> Source:
        return Source.SOURCE_A if self.value.startswith("SourceA") else Source.SOURCE_B

    @property
    def proposed(self) -> bool:
        return self.value.endswith("Proposed")

    @property
    def slug(self) -> str:
        return self.value.lower()


class Kind(str, Enum):
    WIRE = "Wire"
    INSULATOR = "Insulator"
    GUY = "Guy"
    EQUIPMENT = "Equipment"
    CROSS_ARM = "CrossArm"


class Severity(str, Enum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"
    GREY = "grey"


@dataclass(frozen=True)
class AttachmentRecord:
    """One normalized attachment.  ``height_ft`` is always decimal feet."""
    pole_id: str
    layer: Layer
    kind: Kind
    description: str
    height_ft: float
    ref: str
    scid: Optional[str] = None
    parent_ref: Optional[str] = None
    subtype: Optional[str] = None
    synthetic: bool = False
    owner: str = "Unknown"
    parent_arm_ref: Optional[str] = None

    @property
    def source(self) -> Source:
        return self.layer.source

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["layer"] = self.layer.value
        data["kind"] = self.kind.value
        return data

# ---------------------------------------------------------------------------
# height buckets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeightBucket:
    height_ft: float
    layers: Mapping[Layer, Tuple[AttachmentRecord, ...]]
    severity: Severity = Severity.GREY
    delta_ft: Optional[float] = None

    def records(self, layer: Layer) -> Tuple[AttachmentRecord, ...]:
        return self.layers.get(layer, ())

    def __getitem__(self, layer: Layer) -> Tuple[AttachmentRecord, ...]:
        return self.records(layer)


@dataclass(frozen=True)
class PoleComparison:
    pole_id: str
    scid: Optional[str]
    buckets: Tuple[HeightBucket, ...] = ()

    def bucket_at(self, height_ft: float) -> Optional[HeightBucket]:
        for bucket in self.buckets:
            if abs(bucket.height_ft - height_ft) < 1e-9:
                return bucket
        return None

    @property
    def worst_severity(self) -> Severity:
        order = (Severity.RED, Severity.AMBER, Severity.GREEN, Severity.GREY)
        present = {b.severity for b in self.buckets}
        return next((s for s in order if s in present), Severity.GREY)

# ---------------------------------------------------------------------------
# attachment points
# ---------------------------------------------------------------------------

class PointMatchType(str, Enum):
    EXACT = "exact"
    HEIGHT_ONLY = "height-only"
    SOURCE_A_ONLY = "source-a-only"
    SOURCE_B_ONLY = "source-b-only"


@dataclass
class AttachmentPoint:
    id: str
    source: Source
    owner: str
    description: str
    height_ft: float
    pole_id: str
    wires: List[str] = field(default_factory=list)
    synthetic: bool = False


@dataclass
class WireGroup:
    """Open cluster while Source-B wires are being grouped."""
    key: str
    owner: str
    phase: str
    height_ft: float
    wires: List[AttachmentRecord] = field(default_factory=list)


@dataclass(frozen=True)
class AttachmentPointComparison:
    match_type: PointMatchType
    source_a: Optional[AttachmentPoint] = None
    source_b: Optional[AttachmentPoint] = None
    height_difference_ft: Optional[float] = None

# ---------------------------------------------------------------------------
# cross-arms
# ---------------------------------------------------------------------------

class CrossArmMatchType(str, Enum):
    EXACT = "exact"
    CLOSE = "close"
    SOURCE_A_ONLY = "source-a-only"
    SOURCE_B_ONLY = "source-b-only"


@dataclass(frozen=True)
class CrossArmWiring:
    source: Source
    arm_id: str
    arm_height_ft: float
    wire_id: str
    wire_type: str
    wire_owner: str
    insulator_id: Optional[str] = None
    pseudo: bool = False


@dataclass
class CrossArmGroup:
    arm_id: str
    height_ft: float
    source: Source
    wires: List[CrossArmWiring] = field(default_factory=list)
    pseudo: bool = False


@dataclass(frozen=True)
class CrossArmMatch:
    match_type: CrossArmMatchType
    source_a: Optional[CrossArmGroup] = None
    source_b: Optional[CrossArmGroup] = None
    height_difference_ft: Optional[float] = None

# ---------------------------------------------------------------------------
# guys
# ---------------------------------------------------------------------------

class GuyMatchStatus(str, Enum):
    MATCHED = "matched"
    SOURCE_A_ONLY = "source-a-only"
    SOURCE_B_ONLY = "source-b-only"


@dataclass(frozen=True)
class GuyRecord:
    id: str
    owner: str
    height_in: int
    pole_id: str = ""
    raw_height_ft: Optional[float] = None

    @property
    def key(self) -> Tuple[str, int]:
        return self.owner, self.height_in


@dataclass(frozen=True)
class MatchResult:
    status: GuyMatchStatus
    owner: str
    height_in: int
    source_a_id: Optional[str] = None
    source_b_id: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status is GuyMatchStatus.MATCHED

# ---------------------------------------------------------------------------
# detail-view matching
# ---------------------------------------------------------------------------

class MatchPriority(IntEnum):
    INSULATOR_TO_WIRE = 1
    DIRECT = 2
    INSULATOR = 3


@dataclass(frozen=True)
class FuzzyMatch:
    source_a: AttachmentRecord
    source_b: Optional[AttachmentRecord] = None
    priority: Optional[MatchPriority] = None
    height_delta_ft: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.source_b is not None


class ChangeType(str, Enum):
    BRAND_NEW = "brand-new"
    HEIGHT_CHANGE = "height-change"
    SOURCE_B_ONLY = "source-b-only"


@dataclass(frozen=True)
class ProposedChange:
    change_type: ChangeType
    source_a: Optional[AttachmentRecord] = None
    source_a_baseline_ft: Optional[float] = None
    source_b: Optional[AttachmentRecord] = None
    source_b_layer: Optional[Layer] = None


@dataclass
class InsulatorGroup:
    """An insulator with the wires hanging from it, for display."""
    insulator: AttachmentRecord
    wires: List[AttachmentRecord] = field(default_factory=list)
