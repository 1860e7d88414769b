"""Shared fixtures for CLI module tests."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
from click.testing import CliRunner

from glycopaint.core.models import Track


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def tracks_csv(tmp_path: Path, make_recording) -> Path:
    """All Tracks.csv with two 5x5 recordings."""
    rows = []
    for name in ("rec-1", "rec-2"):
        for t in make_recording(name).tracks:
            rows.append(_row(t))
    path = tmp_path / "All Tracks.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def _row(t: Track) -> dict[str, object]:
    return {
        "Unique Key": f"{t.recording_name}-{t.track_id}",
        "Recording Name": t.recording_name,
        "Track Id": t.track_id,
        "Track Duration": t.duration,
        "Track X Location": t.x,
        "Track Y Location": t.y,
        "Diffusion Coefficient": t.diffusion_coefficient,
        "Track Displacement": t.displacement,
    }
