"""Analysis configuration and image geometry."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from glycopaint.core.constants import (
    IMAGE_HEIGHT,
    IMAGE_WIDTH,
    RECORDING_DURATION,
    SUPPORTED_GRID_SIZES,
)
from glycopaint.core.exceptions import ConfigurationError, InvalidInputError


class NeighbourMode(str, Enum):
    """Adjacency rule used by the second pass of the visibility filter."""

    FREE = "Free"
    RELAXED = "Relaxed"
    STRICT = "Strict"

    @classmethod
    def parse(cls, value: str | NeighbourMode) -> NeighbourMode:
        """Resolve a mode name case-insensitively.

        Raises:
            ConfigurationError: If the name is not a known mode.
        """
        if isinstance(value, NeighbourMode):
            return value
        for mode in cls:
            if mode.value.lower() == str(value).strip().lower():
                return mode
        raise ConfigurationError(
            f"Unknown neighbour mode {value!r}. "
            f"Supported: {[m.value for m in cls]}"
        )


@dataclass(frozen=True)
class ImageGeometry:
    """Physical size of the field of view and the duration of a recording.

    Attributes:
        image_width: Field-of-view width in µm.
        image_height: Field-of-view height in µm.
        recording_duration: Recording length in seconds.
    """

    image_width: float = IMAGE_WIDTH
    image_height: float = IMAGE_HEIGHT
    recording_duration: float = RECORDING_DURATION

    def __post_init__(self) -> None:
        for field_name in ("image_width", "image_height", "recording_duration"):
            value = getattr(self, field_name)
            if not value > 0:
                raise InvalidInputError(
                    f"{field_name} must be positive, got {value!r}"
                )

    @property
    def area(self) -> float:
        return self.image_width * self.image_height

    def square_area(self, number_of_squares: int) -> float:
        """Area of one square when the image is split in ``number_of_squares``."""
        return self.area / number_of_squares


@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters of the square analysis.

    Defaults match the ``Generate Squares`` section of the Paint
    configuration file.
    """

    number_of_squares_in_recording: int = 400
    min_tracks_to_calculate_tau: int = 20
    min_required_r_squared: float = 0.1
    min_required_density_ratio: float = 0.1
    max_allowable_variability: float = 10.0
    neighbour_mode: NeighbourMode = NeighbourMode.FREE
    variability_granularity: int = 10
    background_fraction: float = 0.1

    def __post_init__(self) -> None:
        """Validate grid size, mode and numeric ranges at construction time."""
        object.__setattr__(self, "neighbour_mode", NeighbourMode.parse(self.neighbour_mode))

        if self.number_of_squares_in_recording not in SUPPORTED_GRID_SIZES:
            raise ConfigurationError(
                f"Unsupported number of squares: {self.number_of_squares_in_recording!r}. "
                f"Must be one of {sorted(SUPPORTED_GRID_SIZES)}"
            )
        if self.min_tracks_to_calculate_tau < 2:
            raise ConfigurationError("min_tracks_to_calculate_tau must be at least 2")
        if self.variability_granularity < 1:
            raise ConfigurationError("variability_granularity must be at least 1")
        if not 0 < self.background_fraction <= 1:
            raise ConfigurationError("background_fraction must be in (0, 1]")
        for field_name in (
            "min_required_r_squared",
            "min_required_density_ratio",
            "max_allowable_variability",
        ):
            if math.isnan(getattr(self, field_name)):
                raise ConfigurationError(f"{field_name} must be a number")

    @property
    def squares_per_row(self) -> int:
        return math.isqrt(self.number_of_squares_in_recording)

    @property
    def number_of_background_reference_squares(self) -> int:
        """Sample size of the small-count background cross-check."""
        return max(1, int(self.background_fraction * self.number_of_squares_in_recording))

    def to_yaml(self, path: Path) -> None:
        """Serialize this configuration to a YAML file."""
        from glycopaint.io.serialization import config_to_yaml

        config_to_yaml(self, path)

    @classmethod
    def from_yaml(cls, path: Path) -> AnalysisConfig:
        """Deserialize an AnalysisConfig from a YAML file."""
        from glycopaint.io.serialization import config_from_yaml

        return config_from_yaml(path)
