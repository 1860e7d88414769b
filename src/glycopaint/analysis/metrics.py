"""Per-square metrics: density, variability and track summary statistics."""

from __future__ import annotations

import math
from typing import Callable, Sequence

import numpy as np

from glycopaint.core.exceptions import InvalidInputError
from glycopaint.core.models import Square, Track

# Reducer signature: (values) -> float, values is a non-empty 1D array
Reducer = Callable[[np.ndarray], float]


def calculate_density(
    number_of_tracks: int,
    area: float,
    time: float,
    concentration: float,
) -> float:
    """Tracks per µm² per second, normalised by the probe concentration.

    Raises:
        InvalidInputError: If area, time or concentration is not positive.
    """
    if not (area > 0 and time > 0 and concentration > 0):
        raise InvalidInputError(
            "Area, time, and concentration must be positive "
            f"(got area={area!r}, time={time!r}, concentration={concentration!r})"
        )
    return number_of_tracks / area / time / concentration


def calculate_density_ratio(number_of_tracks: int, background_mean: float) -> float:
    """Track count relative to the background, 0.0 when there is no background."""
    if background_mean == 0 or math.isnan(background_mean):
        return 0.0
    return number_of_tracks / background_mean


def calculate_variability(
    tracks: Sequence[Track],
    square: Square,
    granularity: int = 10,
) -> float:
    """Coefficient of variation of track counts over a sub-grid of the square.

    The square is divided in ``granularity x granularity`` cells and the
    tracks are counted per cell. Tracks on the square's upper edges land
    in the last cell of that row or column.

    Returns:
        std / mean of the cell counts (population std), 0.0 when the
        square holds no tracks.
    """
    matrix = np.zeros((granularity, granularity), dtype=np.int64)
    width = square.x1 - square.x0
    height = square.y1 - square.y0
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Square {square.square_number} has no area")

    for track in tracks:
        xi = int((track.x - square.x0) / width * granularity)
        yi = int((track.y - square.y0) / height * granularity)
        if xi == granularity and track.x <= square.x1:
            xi -= 1
        if yi == granularity and track.y <= square.y1:
            yi -= 1
        if 0 <= xi < granularity and 0 <= yi < granularity:
            matrix[yi, xi] += 1

    mean = float(matrix.mean())
    if mean == 0:
        return 0.0
    return float(matrix.std()) / mean


def _median(values: np.ndarray) -> float:
    return float(np.median(values))


def _max(values: np.ndarray) -> float:
    return float(np.max(values))


def _sum(values: np.ndarray) -> float:
    return float(np.sum(values))


# name -> (track field, reducer, decimals)
_BUILTIN_SUMMARIES: dict[str, tuple[str, Reducer, int]] = {
    "median_diffusion_coefficient": ("diffusion_coefficient", _median, 2),
    "median_diffusion_coefficient_ext": ("diffusion_coefficient_ext", _median, 2),
    "median_displacement": ("displacement", _median, 1),
    "max_displacement": ("displacement", _max, 1),
    "total_displacement": ("displacement", _sum, 1),
    "median_max_speed": ("max_speed", _median, 1),
    "max_max_speed": ("max_speed", _max, 1),
    "median_median_speed": ("median_speed", _median, 1),
    "max_median_speed": ("median_speed", _max, 1),
    "max_track_duration": ("duration", _max, 1),
    "total_track_duration": ("duration", _sum, 1),
    "median_track_duration": ("duration", _median, 1),
}


class SummaryMetricRegistry:
    """Registry of summary statistics computed over the tracks of a square.

    Comes pre-loaded with the diffusion, displacement, speed and duration
    summaries. Custom summaries can be registered via ``register()``.
    NaN track values are ignored; a field with no values yields NaN.
    """

    def __init__(self) -> None:
        self._metrics: dict[str, tuple[str, Reducer, int]] = dict(_BUILTIN_SUMMARIES)

    def register(self, name: str, field: str, reducer: Reducer, decimals: int = 2) -> None:
        """Register a custom summary.

        Args:
            name: Summary name (e.g., "mean_total_distance").
            field: Track attribute the summary reads.
            reducer: Callable reducing a 1D array to a float.
            decimals: Rounding applied to the result.

        Raises:
            ValueError: If name is empty or the field is not a Track attribute.
        """
        if not name:
            raise ValueError("Metric name must not be empty")
        if field not in Track.__dataclass_fields__:
            raise ValueError(f"Unknown track field {field!r}")
        self._metrics[name] = (field, reducer, decimals)

    def compute(self, name: str, tracks: Sequence[Track]) -> float:
        """Compute a named summary over ``tracks``.

        Raises:
            KeyError: If the summary is not registered.
        """
        if name not in self._metrics:
            raise KeyError(
                f"Unknown metric {name!r}. "
                f"Available: {sorted(self._metrics)}"
            )
        field, reducer, decimals = self._metrics[name]
        values = np.array([getattr(t, field) for t in tracks], dtype=np.float64)
        values = values[~np.isnan(values)]
        if values.size == 0:
            return float("nan")
        return round(reducer(values), decimals)

    def compute_all(self, tracks: Sequence[Track]) -> dict[str, float]:
        return {name: self.compute(name, tracks) for name in self._metrics}

    def list_metrics(self) -> list[str]:
        """Return sorted list of all registered summary names."""
        return sorted(self._metrics)

    def __contains__(self, name: str) -> bool:
        return name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)
