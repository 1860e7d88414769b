"""Data models for the Glyco-PAINT core module."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from glycopaint.core.config import AnalysisConfig, ImageGeometry

NAN = float("nan")


@dataclass(frozen=True)
class Track:
    """One particle trajectory as reported by the tracking engine.

    Coordinates are the track centroid in µm, durations in seconds.
    """

    recording_name: str
    track_id: int
    x: float
    y: float
    duration: float
    displacement: float = NAN
    max_speed: float = NAN
    median_speed: float = NAN
    diffusion_coefficient: float = NAN
    diffusion_coefficient_ext: float = NAN
    total_distance: float = NAN
    confinement_ratio: float = NAN
    number_of_spots: int = 0
    number_of_gaps: int = 0
    longest_gap: int = 0
    track_label: str | None = None


@dataclass(frozen=True)
class Square:
    """A grid square's geometry plus the user-controlled flags."""

    recording_name: str
    square_number: int
    row: int
    col: int
    x0: float
    y0: float
    x1: float
    y1: float
    manually_excluded: bool = False
    cell_id: int = 0

    @property
    def area(self) -> float:
        return (self.x1 - self.x0) * (self.y1 - self.y0)

    @property
    def unique_key(self) -> str:
        return f"{self.recording_name}-{self.square_number}"


@dataclass(frozen=True)
class SquareAttributes:
    """Values computed for one square in one analysis run.

    Floats default to NaN: a value that was not computed is never zero.
    """

    number_of_tracks: int = 0
    variability: float = NAN
    density: float = NAN
    density_ratio: float = NAN
    density_ratio_ori: float = NAN
    tau: float = NAN
    r_squared: float = NAN
    median_diffusion_coefficient: float = NAN
    median_diffusion_coefficient_ext: float = NAN
    median_displacement: float = NAN
    max_displacement: float = NAN
    total_displacement: float = NAN
    median_max_speed: float = NAN
    max_max_speed: float = NAN
    median_median_speed: float = NAN
    max_median_speed: float = NAN
    max_track_duration: float = NAN
    total_track_duration: float = NAN
    median_track_duration: float = NAN
    extra: dict[str, float] = field(default_factory=dict)

    @property
    def has_tau(self) -> bool:
        return not math.isnan(self.tau)


@dataclass(frozen=True)
class SquareResult:
    """A square together with its tracks, attributes and selection state.

    ``fit_tau`` and ``fit_r_squared`` hold the attempted Tau fit before the
    minimum-R² policy is applied, so a re-selection with another minimum
    can publish or withdraw Tau without refitting. Both are NaN when no
    fit was possible.
    """

    square: Square
    tracks: tuple[Track, ...]
    attributes: SquareAttributes
    selected: bool = False
    label_number: int | None = None
    fit_tau: float = NAN
    fit_r_squared: float = NAN


@dataclass(frozen=True)
class Recording:
    """Everything the analysis needs to know about one imaging session."""

    name: str
    tracks: tuple[Track, ...]
    squares: tuple[Square, ...]
    concentration: float = 1.0
    exclude: bool = False
    experiment_name: str | None = None


@dataclass(frozen=True)
class BackgroundEstimate:
    """Result of the iterative background estimation.

    Attributes:
        mean: Estimated mean track count of a background square
            (NaN when there were no squares).
        indices: Positions (in the input order) of the background squares.
        track_count: Total number of tracks in the background squares.
        iterations: Number of trimming iterations performed.
    """

    mean: float
    indices: tuple[int, ...] = ()
    track_count: int = 0
    iterations: int = 0

    @property
    def size(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class RecordingAttributes:
    """Recording-level descriptors derived from the selected squares."""

    tau: float = NAN
    r_squared: float = NAN
    density: float = NAN
    number_of_squares_in_background: int = 0
    number_of_tracks_in_background: int = 0
    average_tracks_in_background: float = NAN
    number_of_selected_squares: int = 0
    number_of_tracks: int = 0
    number_of_unassigned_tracks: int = 0


@dataclass(frozen=True)
class RecordingAnalysis:
    """The outcome of one analysis run over a recording.

    A new value is produced for every run; ``revision`` counts the
    re-selections applied since the square attributes were computed.
    """

    recording_name: str
    config: AnalysisConfig
    geometry: ImageGeometry
    concentration: float
    squares: tuple[SquareResult, ...]
    background: BackgroundEstimate
    background_ori: float
    unassigned_tracks: tuple[Track, ...] = ()
    attributes: RecordingAttributes | None = None
    revision: int = 1
    warnings: tuple[str, ...] = ()

    @property
    def selected_squares(self) -> list[SquareResult]:
        return [sr for sr in self.squares if sr.selected]

    @property
    def selected_tracks(self) -> list[Track]:
        tracks: list[Track] = []
        for sr in self.squares:
            if sr.selected:
                tracks.extend(sr.tracks)
        return tracks

    @property
    def number_of_tracks(self) -> int:
        return sum(len(sr.tracks) for sr in self.squares) + len(self.unassigned_tracks)
