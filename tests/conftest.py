"""Shared test fixtures for Glyco-PAINT."""

from __future__ import annotations

import math
from typing import Callable, Sequence

import pytest

from glycopaint.analysis.grid import generate_squares
from glycopaint.core.config import AnalysisConfig, ImageGeometry
from glycopaint.core.models import Recording, Track

# Signal squares of the standard 5x5 test recording
SIGNAL_POSITIONS = ((1, 1), (1, 2), (3, 3))


def decay_durations(amplitude: float = 40.0, rate: float = 10.0, levels: int = 8) -> list[float]:
    """Durations whose frequency distribution follows amplitude * exp(-rate * x).

    With the defaults: 60 durations over 8 levels, Tau close to 100 ms.
    """
    durations: list[float] = []
    for k in range(1, levels + 1):
        x = round(0.05 * k, 2)
        durations.extend([x] * max(1, round(amplitude * math.exp(-rate * x))))
    return durations


def tracks_in_square(
    recording: str,
    row: int,
    col: int,
    durations: Sequence[float],
    side: int = 5,
    geometry: ImageGeometry | None = None,
    first_id: int = 0,
) -> list[Track]:
    """Tracks spread over the 10x10 sub-cells of square (row, col)."""
    geometry = geometry or ImageGeometry()
    w = geometry.image_width / side
    h = geometry.image_height / side
    tracks = []
    for i, duration in enumerate(durations):
        tracks.append(Track(
            recording_name=recording,
            track_id=first_id + i,
            x=col * w + w * (0.05 + 0.1 * (i % 10)),
            y=row * h + h * (0.05 + 0.1 * ((i // 10) % 10)),
            duration=duration,
            diffusion_coefficient=0.5 + 0.01 * (i % 5),
            displacement=1.0 + (i % 3),
        ))
    return tracks


def build_recording(
    name: str = "rec-1",
    signal: Sequence[tuple[int, int]] = SIGNAL_POSITIONS,
    background_tracks: int = 2,
    concentration: float = 1.0,
    exclude: bool = False,
) -> Recording:
    """A 5x5 recording: ``background_tracks`` short tracks per square, 60 decaying tracks in ``signal``."""
    tracks: list[Track] = []
    for row in range(5):
        for col in range(5):
            if (row, col) in signal:
                durations = decay_durations()
            else:
                durations = [0.05] * background_tracks
            tracks.extend(tracks_in_square(name, row, col, durations, first_id=len(tracks)))
    return Recording(
        name=name,
        tracks=tuple(tracks),
        squares=generate_squares(name, 25),
        concentration=concentration,
        exclude=exclude,
    )


@pytest.fixture
def config() -> AnalysisConfig:
    """5x5 grid, otherwise default thresholds."""
    return AnalysisConfig(number_of_squares_in_recording=25)


@pytest.fixture
def recording() -> Recording:
    return build_recording()


@pytest.fixture
def make_recording() -> Callable[..., Recording]:
    return build_recording


@pytest.fixture
def make_tracks() -> Callable[..., list[Track]]:
    return tracks_in_square


@pytest.fixture
def durations() -> list[float]:
    return decay_durations()
