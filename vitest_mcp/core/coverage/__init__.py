"""Coverage module - reconcile raw coverage maps and check thresholds."""

from .models import (
    CoverageSummary,
    FileCoverage,
    MetricTotals,
    ProcessedCoverageResult,
    ReconciledCoverage,
    ThresholdEvaluation,
    UncoveredItems,
)
from .reconciler import CoverageReconciler, extract_uncovered, file_breakdown, matches_target
from .thresholds import (
    ChainedThresholdSource,
    ConfiguredThresholdSource,
    ThresholdEvaluator,
    ThresholdSource,
    VitestConfigThresholdSource,
)

__all__ = [
    "CoverageReconciler",
    "extract_uncovered",
    "file_breakdown",
    "matches_target",
    "CoverageSummary",
    "FileCoverage",
    "MetricTotals",
    "ProcessedCoverageResult",
    "ReconciledCoverage",
    "ThresholdEvaluation",
    "UncoveredItems",
    "ThresholdEvaluator",
    "ThresholdSource",
    "VitestConfigThresholdSource",
    "ConfiguredThresholdSource",
    "ChainedThresholdSource",
]
