"""Glyco-PAINT Analysis: square partitioning, background, Tau and selection."""

from glycopaint.analysis.background import average_smallest_nonzero, estimate_background
from glycopaint.analysis.batch import BatchAnalyzer, BatchResult
from glycopaint.analysis.calculator import (
    SquareAnalyzer,
    compute_recording_attributes,
    compute_square_attributes,
    reselect,
)
from glycopaint.analysis.cell_assignment import CellAssigner
from glycopaint.analysis.grid import PartitionResult, generate_squares, partition_tracks
from glycopaint.analysis.metrics import (
    SummaryMetricRegistry,
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
)
from glycopaint.analysis.neighbours import NeighbourRule, get_neighbour_rule
from glycopaint.analysis.tau import TauResult, TauStatus, calculate_tau, fit_exponential_decay
from glycopaint.analysis.visibility import VisibilityResult, apply_visibility_filter

__all__ = [
    "BatchAnalyzer",
    "BatchResult",
    "CellAssigner",
    "NeighbourRule",
    "PartitionResult",
    "SquareAnalyzer",
    "SummaryMetricRegistry",
    "TauResult",
    "TauStatus",
    "VisibilityResult",
    "apply_visibility_filter",
    "average_smallest_nonzero",
    "calculate_density",
    "calculate_density_ratio",
    "calculate_tau",
    "calculate_variability",
    "compute_recording_attributes",
    "compute_square_attributes",
    "estimate_background",
    "fit_exponential_decay",
    "generate_squares",
    "get_neighbour_rule",
    "partition_tracks",
    "reselect",
]
