"""Glyco-PAINT CLI: top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="glycopaint")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging and full tracebacks.")
def cli(verbose: bool) -> None:
    """Glyco-PAINT: square-based analysis of single-particle tracking data."""
    from glycopaint.cli import utils

    utils.verbose = verbose
    utils.configure_logging(verbose)


def _register_commands() -> None:
    """Register all subcommands; imports deferred to keep startup light."""
    from glycopaint.cli.analyze import analyze
    from glycopaint.cli.config_cmd import config

    cli.add_command(analyze)
    cli.add_command(config)


_register_commands()
