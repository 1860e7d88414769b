"""Glyco-PAINT IO: track tables in, square and recording tables out."""

from glycopaint.io.export import (
    RECORDING_COLUMNS,
    SQUARE_COLUMNS,
    recordings_to_dataframe,
    squares_to_dataframe,
    write_csv,
)
from glycopaint.io.serialization import config_from_yaml, config_to_yaml
from glycopaint.io.tracks import (
    TRACK_COLUMNS,
    RecordingInfo,
    group_tracks_by_recording,
    read_experiment_info,
    read_tracks_csv,
    tracks_from_dataframe,
)

__all__ = [
    "RECORDING_COLUMNS",
    "SQUARE_COLUMNS",
    "TRACK_COLUMNS",
    "RecordingInfo",
    "config_from_yaml",
    "config_to_yaml",
    "group_tracks_by_recording",
    "read_experiment_info",
    "read_tracks_csv",
    "recordings_to_dataframe",
    "squares_to_dataframe",
    "tracks_from_dataframe",
    "write_csv",
]
