"""Glyco-PAINT Core: models, configuration, constants and exceptions."""

from glycopaint.core.config import AnalysisConfig, ImageGeometry, NeighbourMode
from glycopaint.core.exceptions import (
    AnalysisError,
    ConfigurationError,
    InvalidInputError,
    RecordingNotFoundError,
)
from glycopaint.core.models import (
    BackgroundEstimate,
    Recording,
    RecordingAnalysis,
    RecordingAttributes,
    Square,
    SquareAttributes,
    SquareResult,
    Track,
)

__all__ = [
    "AnalysisConfig",
    "ImageGeometry",
    "NeighbourMode",
    "Track",
    "Square",
    "SquareAttributes",
    "SquareResult",
    "Recording",
    "RecordingAnalysis",
    "RecordingAttributes",
    "BackgroundEstimate",
    "AnalysisError",
    "ConfigurationError",
    "InvalidInputError",
    "RecordingNotFoundError",
]
