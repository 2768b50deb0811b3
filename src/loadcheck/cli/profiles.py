"""``loadcheck profiles`` — list the built-in run presets."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from loadcheck._internal.config import PROFILES

console = Console(stderr=True)


def profiles_cmd() -> None:
    """Print every named profile with its settings."""
    table = Table(title="Profiles", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Name", style="bold")
    table.add_column("VUs", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Base URL")
    table.add_column("Envs")

    for name, config in sorted(PROFILES.items()):
        table.add_row(
            name,
            str(config.concurrency),
            f"{config.duration_seconds:g}s",
            config.base_url,
            ", ".join(config.path_suffixes),
        )

    console.print(table)
