"""glycopaint config: write an analysis configuration file."""

from __future__ import annotations

from pathlib import Path

import click

from glycopaint.cli.utils import console, error_handler


@click.command("config")
@click.argument("output", type=click.Path())
@click.option(
    "--overwrite", is_flag=True,
    help="Overwrite output file if it exists.",
)
@error_handler
def config(output: str, overwrite: bool) -> None:
    """Write the default analysis configuration as YAML."""
    from glycopaint.core.config import AnalysisConfig

    out_path = Path(output).expanduser()
    if out_path.exists() and not overwrite:
        console.print(
            f"[red]Error:[/red] Output file already exists: {out_path}\n"
            "Use --overwrite to replace it."
        )
        raise SystemExit(1)

    AnalysisConfig().to_yaml(out_path)
    console.print(f"[green]Wrote default configuration to {out_path}[/green]")
