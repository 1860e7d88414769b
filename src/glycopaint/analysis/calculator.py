"""Square and recording attribute calculation for one recording.

The calculation runs in a fixed order:

1. validate the grid and the recording inputs
2. partition the tracks over the squares
3. estimate the background from the per-square track counts
4. compute per-square metrics and Tau
5. apply the visibility filter and number the selected squares

after which :func:`compute_recording_attributes` derives the
recording-level values from the selected squares.
"""

from __future__ import annotations

import logging
import math
from dataclasses import fields, replace
from typing import Iterable

from glycopaint.analysis.background import average_smallest_nonzero, estimate_background
from glycopaint.analysis.grid import partition_tracks, validate_grid
from glycopaint.analysis.metrics import (
    SummaryMetricRegistry,
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
)
from glycopaint.analysis.tau import TauStatus, calculate_tau
from glycopaint.analysis.visibility import apply_visibility_filter
from glycopaint.core.config import AnalysisConfig, ImageGeometry, NeighbourMode
from glycopaint.core.exceptions import InvalidInputError
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

logger = logging.getLogger(__name__)

# Attribute fields a summary statistic may fill; anything else goes to ``extra``
_SUMMARY_FIELDS = frozenset(f.name for f in fields(SquareAttributes)) - {
    "number_of_tracks", "variability", "density", "density_ratio",
    "density_ratio_ori", "tau", "r_squared", "extra",
}


def _round(value: float, decimals: int) -> float:
    return value if math.isnan(value) else round(value, decimals)


def _attempted_fit(
    square: Square, tracks: tuple[Track, ...], config: AnalysisConfig,
) -> tuple[float, float]:
    """Tau and R² of the square's fit before the minimum-R² policy.

    Both are NaN when the square has too few tracks or the fit fails.
    """
    nan = float("nan")
    if not tracks or len(tracks) < config.min_tracks_to_calculate_tau:
        return nan, nan
    result = calculate_tau(
        tracks, config.min_tracks_to_calculate_tau, config.min_required_r_squared,
    )
    if result.status in (TauStatus.SUCCESS, TauStatus.R_SQUARED_TOO_LOW):
        return result.fit.tau, result.fit.r_squared
    logger.debug("Square %d: no Tau (%s)", square.square_number, result.status.value)
    return nan, nan


def _published_tau(fit_tau: float, fit_r_squared: float, min_r_squared: float) -> tuple[float, float]:
    """Rounded Tau and R² when the fit reaches ``min_r_squared``, NaN otherwise."""
    if not fit_r_squared >= min_r_squared:
        return float("nan"), float("nan")
    return _round(fit_tau, 0), _round(fit_r_squared, 3)


def _square_attributes(
    square: Square,
    tracks: tuple[Track, ...],
    fit: tuple[float, float],
    config: AnalysisConfig,
    geometry: ImageGeometry,
    concentration: float,
    background: BackgroundEstimate,
    background_ori: float,
    summaries: SummaryMetricRegistry,
) -> SquareAttributes:
    """Attributes of one square; empty squares keep NaN everywhere."""
    if not tracks:
        return SquareAttributes(number_of_tracks=0)

    tau, r_squared = _published_tau(*fit, config.min_required_r_squared)

    n = len(tracks)
    known: dict[str, float] = {}
    extra: dict[str, float] = {}
    for name, value in summaries.compute_all(tracks).items():
        (known if name in _SUMMARY_FIELDS else extra)[name] = value

    return SquareAttributes(
        number_of_tracks=n,
        variability=_round(
            calculate_variability(tracks, square, config.variability_granularity), 2,
        ),
        density=_round(
            calculate_density(n, square.area, geometry.recording_duration, concentration), 3,
        ),
        density_ratio=_round(calculate_density_ratio(n, background.mean), 2),
        density_ratio_ori=_round(calculate_density_ratio(n, background_ori), 2),
        tau=tau,
        r_squared=r_squared,
        extra=extra,
        **known,
    )


def compute_square_attributes(
    recording: Recording,
    config: AnalysisConfig,
    geometry: ImageGeometry | None = None,
    summaries: SummaryMetricRegistry | None = None,
) -> RecordingAnalysis:
    """Compute attributes and the selection state of every square.

    Args:
        recording: Tracks, squares and concentration of one recording.
        config: Analysis parameters.
        geometry: Field of view and recording duration (defaults to the
            Nikon set-up).
        summaries: Track summary statistics (defaults to the built-ins).

    Returns:
        A new RecordingAnalysis; ``attributes`` is left None until
        :func:`compute_recording_attributes` runs.

    Raises:
        ConfigurationError: If the squares do not form the configured grid.
        InvalidInputError: If the concentration is not positive.
    """
    geometry = geometry or ImageGeometry()
    summaries = summaries or SummaryMetricRegistry()

    validate_grid(recording.squares, config.number_of_squares_in_recording, recording=recording.name)
    if not recording.concentration > 0:
        raise InvalidInputError(
            f"{recording.name}: concentration must be positive, got {recording.concentration!r}"
        )

    partition = partition_tracks(recording.tracks, recording.squares)
    counts = partition.counts

    background = estimate_background(counts)
    background_ori = average_smallest_nonzero(counts, config.number_of_background_reference_squares)
    logger.debug(
        "%s: background %.2f tracks over %d squares (small-sample reference %.2f)",
        recording.name, background.mean, background.size, background_ori,
    )

    fits = [
        _attempted_fit(sq, tracks, config)
        for sq, tracks in zip(recording.squares, partition.tracks_by_square)
    ]
    attributes = [
        _square_attributes(
            sq, tracks, fit, config, geometry, recording.concentration,
            background, background_ori, summaries,
        )
        for sq, tracks, fit in zip(recording.squares, partition.tracks_by_square, fits)
    ]

    visibility = apply_visibility_filter(
        recording.squares,
        attributes,
        config.min_required_density_ratio,
        config.max_allowable_variability,
        config.min_required_r_squared,
        config.neighbour_mode,
    )

    squares = tuple(
        SquareResult(
            square=sq,
            tracks=tracks,
            attributes=attr,
            selected=sel,
            label_number=label,
            fit_tau=fit[0],
            fit_r_squared=fit[1],
        )
        for sq, tracks, attr, fit, sel, label in zip(
            recording.squares,
            partition.tracks_by_square,
            attributes,
            fits,
            visibility.selected,
            visibility.label_numbers,
        )
    )

    warnings: tuple[str, ...] = ()
    if partition.unassigned:
        warnings = (
            f"{recording.name}: {len(partition.unassigned)} tracks outside the square grid",
        )

    return RecordingAnalysis(
        recording_name=recording.name,
        config=config,
        geometry=geometry,
        concentration=recording.concentration,
        squares=squares,
        background=background,
        background_ori=background_ori,
        unassigned_tracks=partition.unassigned,
        warnings=warnings,
    )


def compute_recording_attributes(analysis: RecordingAnalysis) -> RecordingAnalysis:
    """Derive recording-level Tau, R², density and background figures.

    Tau is fitted over the union of the tracks of the selected squares;
    the density uses the total area of the selected squares. With no
    selected squares Tau, R² and density are NaN.
    """
    config = analysis.config
    tracks = analysis.selected_tracks
    n_selected = len(analysis.selected_squares)

    result = calculate_tau(
        tracks, config.min_tracks_to_calculate_tau, config.min_required_r_squared,
    )

    density = float("nan")
    if n_selected:
        area = sum(sr.square.area for sr in analysis.selected_squares)
        density = _round(
            calculate_density(
                len(tracks), area, analysis.geometry.recording_duration, analysis.concentration,
            ),
            2,
        )

    attributes = RecordingAttributes(
        tau=_round(result.tau, 0),
        r_squared=_round(result.r_squared, 3),
        density=density,
        number_of_squares_in_background=analysis.background.size,
        number_of_tracks_in_background=analysis.background.track_count,
        average_tracks_in_background=_round(analysis.background.mean, 3),
        number_of_selected_squares=n_selected,
        number_of_tracks=analysis.number_of_tracks,
        number_of_unassigned_tracks=len(analysis.unassigned_tracks),
    )
    logger.debug(
        "%s: %d selected squares, Tau %s, R² %s",
        analysis.recording_name, n_selected, attributes.tau, attributes.r_squared,
    )
    return replace(analysis, attributes=attributes)


def reselect(
    analysis: RecordingAnalysis,
    min_required_density_ratio: float | None = None,
    max_allowable_variability: float | None = None,
    min_required_r_squared: float | None = None,
    neighbour_mode: str | NeighbourMode | None = None,
    excluded_squares: Iterable[int] | None = None,
) -> RecordingAnalysis:
    """Re-run the visibility filter and the recording pass with new thresholds.

    Square attributes and fits are reused, so this is cheap enough for
    interactive previews. Tau and R² are re-published from the stored fit
    under the new minimum R², giving the same result as a full run. The input analysis is left untouched.

    Args:
        analysis: A previous analysis of the recording.
        min_required_density_ratio: New minimum density ratio.
        max_allowable_variability: New maximum variability.
        min_required_r_squared: New minimum R².
        neighbour_mode: New neighbour mode.
        excluded_squares: Square numbers to mark as manually excluded;
            replaces the current exclusions when given.

    Returns:
        A new RecordingAnalysis with ``revision`` incremented.
    """
    overrides = {
        name: value
        for name, value in (
            ("min_required_density_ratio", min_required_density_ratio),
            ("max_allowable_variability", max_allowable_variability),
            ("min_required_r_squared", min_required_r_squared),
            ("neighbour_mode", neighbour_mode),
        )
        if value is not None
    }
    config = replace(analysis.config, **overrides)

    squares = [sr.square for sr in analysis.squares]
    if excluded_squares is not None:
        excluded = set(excluded_squares)
        squares = [
            replace(sq, manually_excluded=sq.square_number in excluded) for sq in squares
        ]

    attributes = []
    for sr in analysis.squares:
        tau, r_squared = _published_tau(
            sr.fit_tau, sr.fit_r_squared, config.min_required_r_squared,
        )
        attributes.append(replace(sr.attributes, tau=tau, r_squared=r_squared))

    visibility = apply_visibility_filter(
        squares,
        attributes,
        config.min_required_density_ratio,
        config.max_allowable_variability,
        config.min_required_r_squared,
        config.neighbour_mode,
    )
    results = tuple(
        replace(sr, square=sq, attributes=attr, selected=sel, label_number=label)
        for sr, sq, attr, sel, label in zip(
            analysis.squares, squares, attributes, visibility.selected,
            visibility.label_numbers,
        )
    )
    updated = replace(
        analysis,
        config=config,
        squares=results,
        attributes=None,
        revision=analysis.revision + 1,
    )
    return compute_recording_attributes(updated)


class SquareAnalyzer:
    """Run the full square analysis for recordings.

    Args:
        config: Analysis parameters. Defaults to ``AnalysisConfig()``.
        geometry: Field of view and recording duration.
        summaries: Optional SummaryMetricRegistry with custom summaries.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        geometry: ImageGeometry | None = None,
        summaries: SummaryMetricRegistry | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.geometry = geometry or ImageGeometry()
        self._summaries = summaries or SummaryMetricRegistry()

    def analyze(self, recording: Recording) -> RecordingAnalysis:
        """Square attributes, selection and recording attributes in one go."""
        analysis = compute_square_attributes(
            recording, self.config, self.geometry, self._summaries,
        )
        return compute_recording_attributes(analysis)

    def reselect(self, analysis: RecordingAnalysis, **thresholds) -> RecordingAnalysis:
        """Preview a different threshold set; see :func:`reselect`."""
        return reselect(analysis, **thresholds)
