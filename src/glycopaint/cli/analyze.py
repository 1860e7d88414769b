"""glycopaint analyze: square analysis of a tracks table."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click
from rich.table import Table

from glycopaint.cli.utils import console, error_handler, format_value, make_progress
from glycopaint.core.constants import SUPPORTED_GRID_SIZES

SQUARES_FILE = "All Squares.csv"
RECORDINGS_FILE = "All Recordings.csv"


@click.command()
@click.argument("tracks_csv", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o", "--output", "output_dir", required=True, type=click.Path(file_okay=False),
    help="Directory for All Squares.csv and All Recordings.csv.",
)
@click.option(
    "--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
    help="YAML analysis configuration. Options below override it.",
)
@click.option(
    "--squares", type=click.Choice([str(n) for n in sorted(SUPPORTED_GRID_SIZES)]),
    default=None, help="Number of squares per recording.",
)
@click.option(
    "--neighbour-mode", type=click.Choice(["Free", "Relaxed", "Strict"], case_sensitive=False),
    default=None, help="Neighbour requirement for selected squares.",
)
@click.option("--min-r-squared", type=float, default=None, help="Minimum R² of the Tau fit.")
@click.option("--min-density-ratio", type=float, default=None, help="Minimum density ratio.")
@click.option("--max-variability", type=float, default=None, help="Maximum variability.")
@click.option(
    "--concentration", type=float, default=1.0, show_default=True,
    help="Probe concentration for recordings without experiment info.",
)
@click.option(
    "--experiment-info", default=None, type=click.Path(exists=True, dir_okay=False),
    help="CSV with Recording Name, Concentration and optional Exclude / Process Flag.",
)
@click.option(
    "--overwrite", is_flag=True,
    help="Overwrite output files if they exist.",
)
@error_handler
def analyze(
    tracks_csv: str,
    output_dir: str,
    config_path: str | None,
    squares: str | None,
    neighbour_mode: str | None,
    min_r_squared: float | None,
    min_density_ratio: float | None,
    max_variability: float | None,
    concentration: float,
    experiment_info: str | None,
    overwrite: bool,
) -> None:
    """Partition tracks into squares, select signal squares and compute Tau."""
    import pandas as pd

    from glycopaint.analysis import BatchAnalyzer
    from glycopaint.core.config import AnalysisConfig
    from glycopaint.io import (
        SQUARE_COLUMNS,
        group_tracks_by_recording,
        read_experiment_info,
        read_tracks_csv,
        recordings_to_dataframe,
        squares_to_dataframe,
        write_csv,
    )

    out_dir = Path(output_dir).expanduser()
    squares_path = out_dir / SQUARES_FILE
    recordings_path = out_dir / RECORDINGS_FILE
    for path in (squares_path, recordings_path):
        if path.exists() and not overwrite:
            console.print(
                f"[red]Error:[/red] Output file already exists: {path}\n"
                "Use --overwrite to replace it."
            )
            raise SystemExit(1)

    config = AnalysisConfig.from_yaml(Path(config_path)) if config_path else AnalysisConfig()
    overrides = {
        name: value
        for name, value in (
            ("number_of_squares_in_recording", int(squares) if squares else None),
            ("neighbour_mode", neighbour_mode),
            ("min_required_r_squared", min_r_squared),
            ("min_required_density_ratio", min_density_ratio),
            ("max_allowable_variability", max_variability),
        )
        if value is not None
    }
    config = replace(config, **overrides)

    with console.status("[bold blue]Reading tracks..."):
        tracks = read_tracks_csv(Path(tracks_csv))
        info = read_experiment_info(Path(experiment_info)) if experiment_info else None
        recordings = group_tracks_by_recording(
            tracks,
            config.number_of_squares_in_recording,
            info=info,
            concentration=concentration,
        )

    if not recordings:
        console.print("[yellow]No tracks found, nothing to analyse.[/yellow]")
        return

    batch = BatchAnalyzer(config)
    with make_progress() as progress:
        task = progress.add_task("Analysing...", total=len(recordings))

        def on_progress(current: int, total: int, recording_name: str) -> None:
            progress.update(
                task, total=total, completed=current,
                description=f"Analysing {recording_name}",
            )

        result = batch.analyze_experiment(recordings, progress_callback=on_progress)

    out_dir.mkdir(parents=True, exist_ok=True)
    frames = [squares_to_dataframe(a) for a in result.analyses]
    squares_df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=SQUARE_COLUMNS)
    write_csv(squares_df, squares_path, overwrite=overwrite)
    write_csv(recordings_to_dataframe(result.analyses), recordings_path, overwrite=overwrite)

    _print_summary(result)
    console.print(f"[green]Wrote {squares_path} and {recordings_path}[/green]")


def _print_summary(result) -> None:
    table = Table(show_header=True, title="Recordings")
    table.add_column("Recording", style="bold")
    table.add_column("Tracks", justify="right")
    table.add_column("Selected", justify="right")
    table.add_column("Tau (ms)", justify="right")
    table.add_column("R²", justify="right")
    table.add_column("Density", justify="right")
    for analysis in result.analyses:
        attrs = analysis.attributes
        table.add_row(
            analysis.recording_name,
            str(attrs.number_of_tracks),
            str(attrs.number_of_selected_squares),
            format_value(attrs.tau, 0),
            format_value(attrs.r_squared, 3),
            format_value(attrs.density, 2),
        )
    console.print(table)

    console.print()
    console.print("[green]Analysis complete[/green]")
    console.print(f"  Recordings processed: {result.recordings_processed}")
    if result.recordings_skipped:
        console.print(f"  Recordings skipped: {result.recordings_skipped}")
    if result.recordings_failed:
        console.print(f"  Recordings failed: {result.recordings_failed}")
    console.print(f"  Elapsed: {result.elapsed_seconds:.1f}s")

    if result.warnings:
        console.print()
        console.print(f"[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for w in result.warnings:
            console.print(f"  [dim]- {w}[/dim]")
