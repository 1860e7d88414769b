"""Tabular export of analysis results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from glycopaint.core.models import RecordingAnalysis

logger = logging.getLogger(__name__)

# Export header -> SquareAttributes field
_SQUARE_ATTRIBUTE_COLUMNS: dict[str, str] = {
    "Number of Tracks": "number_of_tracks",
    "Variability": "variability",
    "Density": "density",
    "Density Ratio": "density_ratio",
    "Density Ratio Ori": "density_ratio_ori",
    "Tau": "tau",
    "R Squared": "r_squared",
    "Median Diffusion Coefficient": "median_diffusion_coefficient",
    "Median Diffusion Coefficient Ext": "median_diffusion_coefficient_ext",
    "Median Displacement": "median_displacement",
    "Max Displacement": "max_displacement",
    "Total Displacement": "total_displacement",
    "Median Max Speed": "median_max_speed",
    "Max Max Speed": "max_max_speed",
    "Median Mean Speed": "median_median_speed",
    "Max Mean Speed": "max_median_speed",
    "Max Track Duration": "max_track_duration",
    "Total Track Duration": "total_track_duration",
    "Median Track Duration": "median_track_duration",
}

SQUARE_COLUMNS: list[str] = [
    "Unique Key",
    "Recording Name",
    "Square Number",
    "Row Number",
    "Column Number",
    "Label Number",
    "Cell ID",
    "Selected",
    "Square Manually Excluded",
    "X0",
    "Y0",
    "X1",
    "Y1",
    *_SQUARE_ATTRIBUTE_COLUMNS,
]

RECORDING_COLUMNS: list[str] = [
    "Recording Name",
    "Concentration",
    "Number of Tracks",
    "Number of Unassigned Tracks",
    "Number of Squares in Background",
    "Number of Tracks in Background",
    "Average Tracks in Background",
    "Number of Selected Squares",
    "Tau",
    "R Squared",
    "Density",
    "Neighbour Mode",
    "Min Required Density Ratio",
    "Max Allowable Variability",
    "Min Required R Squared",
    "Revision",
]


def squares_to_dataframe(analysis: RecordingAnalysis) -> pd.DataFrame:
    """One row per square with geometry, selection state and attributes.

    Custom summaries registered on the analyzer follow the standard columns.
    """
    rows = []
    for sr in analysis.squares:
        sq = sr.square
        row: dict[str, object] = {
            "Unique Key": sq.unique_key,
            "Recording Name": sq.recording_name,
            "Square Number": sq.square_number,
            "Row Number": sq.row,
            "Column Number": sq.col,
            "Label Number": sr.label_number,
            "Cell ID": sq.cell_id,
            "Selected": sr.selected,
            "Square Manually Excluded": sq.manually_excluded,
            "X0": sq.x0,
            "Y0": sq.y0,
            "X1": sq.x1,
            "Y1": sq.y1,
        }
        for col, name in _SQUARE_ATTRIBUTE_COLUMNS.items():
            row[col] = getattr(sr.attributes, name)
        row.update(sr.attributes.extra)
        rows.append(row)

    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=SQUARE_COLUMNS)
    # Nullable integer so unselected squares export an empty label
    df["Label Number"] = df["Label Number"].astype("Int64")
    return df


def recordings_to_dataframe(analyses: Iterable[RecordingAnalysis]) -> pd.DataFrame:
    """One row per analysed recording with its recording-level attributes.

    Raises:
        ValueError: If an analysis has no recording attributes yet.
    """
    rows = []
    for analysis in analyses:
        attrs = analysis.attributes
        if attrs is None:
            raise ValueError(
                f"{analysis.recording_name}: recording attributes have not been computed"
            )
        config = analysis.config
        rows.append({
            "Recording Name": analysis.recording_name,
            "Concentration": analysis.concentration,
            "Number of Tracks": attrs.number_of_tracks,
            "Number of Unassigned Tracks": attrs.number_of_unassigned_tracks,
            "Number of Squares in Background": attrs.number_of_squares_in_background,
            "Number of Tracks in Background": attrs.number_of_tracks_in_background,
            "Average Tracks in Background": attrs.average_tracks_in_background,
            "Number of Selected Squares": attrs.number_of_selected_squares,
            "Tau": attrs.tau,
            "R Squared": attrs.r_squared,
            "Density": attrs.density,
            "Neighbour Mode": config.neighbour_mode.value,
            "Min Required Density Ratio": config.min_required_density_ratio,
            "Max Allowable Variability": config.max_allowable_variability,
            "Min Required R Squared": config.min_required_r_squared,
            "Revision": analysis.revision,
        })
    return pd.DataFrame(rows, columns=RECORDING_COLUMNS)


def write_csv(df: pd.DataFrame, path: Path, overwrite: bool = False) -> Path:
    """Write ``df`` to ``path`` without the index.

    Raises:
        FileExistsError: If the file exists and ``overwrite`` is False.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Output file already exists: {path}")
    df.to_csv(path, index=False)
    logger.info("Wrote %d rows to %s", len(df), path)
    return path
