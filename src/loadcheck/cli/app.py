"""Main Typer application — entry point for the ``loadcheck`` CLI."""

from __future__ import annotations

import typer

from loadcheck import __version__
from loadcheck.cli.profiles import profiles_cmd
from loadcheck.cli.run import run_cmd

app = typer.Typer(
    name="loadcheck",
    help="Drive repeated, checked HTTP GET load against an endpoint family.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a load test and report check results.")(run_cmd)
app.command("profiles", help="List the built-in run profiles.")(profiles_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"loadcheck {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Checked HTTP load runs."""
