"""polerecon – reconcile SPIDAcalc designs with Katapult field measurements."""

from .adapters import SourceSchema, normalize, normalize_source_a, normalize_source_b
from .bucketing import bucket_and_join, bucket_key, build_pole_comparisons
from .config import DEFAULT_CONFIG, ReconcileConfig, load_config
from .diagnostics import WarningCollector
from .engine import PoleReconciliation, ReconciliationResult, compare, reconcile
from .errors import DocumentLoadError, MissingCollaboratorError, PoleReconError
from .grouping import group_by_insulator, remove_duplicate_wires, sort_with_cross_arm_hierarchy
from .models import AttachmentRecord, HeightBucket, Kind, Layer, PoleComparison, Severity

__version__ = "0.1.0"

__all__ = [
    "AttachmentRecord",
    "DEFAULT_CONFIG",
    "DocumentLoadError",
    "HeightBucket",
    "Kind",
    "Layer",
    "MissingCollaboratorError",
    "PoleComparison",
    "PoleReconError",
    "PoleReconciliation",
    "ReconcileConfig",
    "ReconciliationResult",
    "Severity",
    "SourceSchema",
    "WarningCollector",
    "bucket_and_join",
    "bucket_key",
    "build_pole_comparisons",
    "compare",
    "group_by_insulator",
    "load_config",
    "normalize",
    "normalize_source_a",
    "normalize_source_b",
    "reconcile",
    "remove_duplicate_wires",
    "sort_with_cross_arm_hierarchy",
]
