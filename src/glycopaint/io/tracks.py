"""Reading tracks and experiment information from CSV tables."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import pandas as pd

from glycopaint.analysis.grid import generate_squares
from glycopaint.core.config import ImageGeometry
from glycopaint.core.exceptions import InvalidInputError, RecordingNotFoundError
from glycopaint.core.models import Recording, Track

logger = logging.getLogger(__name__)

# CSV header -> Track field
TRACK_COLUMNS: dict[str, str] = {
    "Recording Name": "recording_name",
    "Track Id": "track_id",
    "Track Label": "track_label",
    "Number of Spots": "number_of_spots",
    "Number of Gaps": "number_of_gaps",
    "Longest Gap": "longest_gap",
    "Track Duration": "duration",
    "Track X Location": "x",
    "Track Y Location": "y",
    "Track Displacement": "displacement",
    "Track Max Speed": "max_speed",
    "Track Median Speed": "median_speed",
    "Diffusion Coefficient": "diffusion_coefficient",
    "Diffusion Coefficient Ext": "diffusion_coefficient_ext",
    "Total Distance": "total_distance",
    "Confinement Ratio": "confinement_ratio",
}

REQUIRED_TRACK_COLUMNS = (
    "Recording Name",
    "Track Id",
    "Track Duration",
    "Track X Location",
    "Track Y Location",
)

_INT_FIELDS = frozenset({"track_id", "number_of_spots", "number_of_gaps", "longest_gap"})


@dataclass(frozen=True)
class RecordingInfo:
    """Per-recording settings from an experiment information table."""

    name: str
    concentration: float = 1.0
    exclude: bool = False


def _missing(df: pd.DataFrame, required: Iterable[str]) -> list[str]:
    return [c for c in required if c not in df.columns]


def tracks_from_dataframe(df: pd.DataFrame) -> list[Track]:
    """Convert a tracks table into Track values.

    Columns not in :data:`TRACK_COLUMNS` are ignored. Missing optional
    float columns become NaN, missing count columns 0.

    Raises:
        InvalidInputError: If a required column is missing or a track has
            no usable position.
    """
    missing = _missing(df, REQUIRED_TRACK_COLUMNS)
    if missing:
        raise InvalidInputError(f"Tracks table is missing columns: {', '.join(missing)}")

    present = {col: name for col, name in TRACK_COLUMNS.items() if col in df.columns}
    tracks: list[Track] = []
    for row in df[list(present)].itertuples(index=False, name=None):
        values: dict[str, object] = {}
        for (col, name), value in zip(present.items(), row):
            if name == "recording_name":
                values[name] = str(value)
            elif name == "track_label":
                values[name] = None if pd.isna(value) else str(value)
            elif name in _INT_FIELDS:
                values[name] = 0 if pd.isna(value) else int(value)
            else:
                values[name] = float(value)
        if math.isnan(values["x"]) or math.isnan(values["y"]):
            raise InvalidInputError(
                f"Track {values['track_id']} of {values['recording_name']} has no position"
            )
        tracks.append(Track(**values))
    return tracks


def read_tracks_csv(path: Path) -> list[Track]:
    """Read an ``All Tracks.csv`` style file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        InvalidInputError: If required columns are missing.
    """
    df = pd.read_csv(path)
    tracks = tracks_from_dataframe(df)
    logger.info("Read %d tracks from %s", len(tracks), path)
    return tracks


def read_experiment_info(path: Path) -> dict[str, RecordingInfo]:
    """Read concentrations and exclusion flags per recording.

    Uses the ``Recording Name`` and ``Concentration`` columns, plus
    ``Exclude`` and ``Process Flag`` when present. A recording whose
    process flag is false is treated as excluded.

    Raises:
        InvalidInputError: If required columns are missing.
    """
    df = pd.read_csv(path)
    missing = _missing(df, ("Recording Name", "Concentration"))
    if missing:
        raise InvalidInputError(f"Experiment info is missing columns: {', '.join(missing)}")

    info: dict[str, RecordingInfo] = {}
    for _, row in df.iterrows():
        exclude = _as_bool(row.get("Exclude", False))
        if "Process Flag" in df.columns and not _as_bool(row["Process Flag"], default=True):
            exclude = True
        name = str(row["Recording Name"])
        info[name] = RecordingInfo(
            name=name,
            concentration=float(row["Concentration"]),
            exclude=exclude,
        )
    return info


def _as_bool(value: object, default: bool = False) -> bool:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value)


def group_tracks_by_recording(
    tracks: Sequence[Track],
    number_of_squares: int,
    geometry: ImageGeometry | None = None,
    info: Mapping[str, RecordingInfo] | None = None,
    concentration: float = 1.0,
    names: Sequence[str] | None = None,
) -> list[Recording]:
    """Build one Recording per recording name, each with a fresh square grid.

    Args:
        tracks: Tracks of any number of recordings.
        number_of_squares: Grid size for every recording.
        geometry: Field of view; defaults to the standard image.
        info: Optional per-recording concentration and exclusion.
        concentration: Concentration for recordings absent from ``info``.
        names: Restrict to these recordings, in this order.

    Returns:
        Recordings in first-seen order (or the order of ``names``).

    Raises:
        RecordingNotFoundError: If a name in ``names`` has no tracks.
    """
    geometry = geometry or ImageGeometry()
    info = info or {}

    by_name: dict[str, list[Track]] = {}
    for track in tracks:
        by_name.setdefault(track.recording_name, []).append(track)

    if names is None:
        names = list(by_name)
    for name in names:
        if name not in by_name:
            raise RecordingNotFoundError(name)

    recordings = []
    for name in names:
        settings = info.get(name, RecordingInfo(name=name, concentration=concentration))
        recordings.append(
            Recording(
                name=name,
                tracks=tuple(by_name[name]),
                squares=generate_squares(name, number_of_squares, geometry),
                concentration=settings.concentration,
                exclude=settings.exclude,
            )
        )
    logger.debug("Grouped %d tracks into %d recordings", len(tracks), len(recordings))
    return recordings
