"""``loadcheck run`` — execute a load run and print the check summary."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from loadcheck._internal.config import load_config, parse_duration, validate_run_config
from loadcheck._internal.errors import ConfigError, LoadCheckError
from loadcheck.engine.worker import run_load_test

if TYPE_CHECKING:
    from loadcheck._internal.config import RunConfig
    from loadcheck.metrics.models import RunSummary

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Config construction
# ---------------------------------------------------------------------------


def _build_config(
    profile: str,
    vus: int | None,
    duration: str | None,
    base_url: str | None,
    token: str | None,
    envs: list[str] | None,
    timeout: float | None,
    pause: float | None,
) -> RunConfig:
    """Layer CLI flags over the profile and environment configuration.

    Raises:
        ConfigError: If any source holds an invalid value.
    """
    config = load_config(profile)
    return validate_run_config(
        config.replace(
            concurrency=vus,
            duration_seconds=parse_duration(duration) if duration is not None else None,
            base_url=base_url,
            auth_token=token,
            path_suffixes=envs or None,
            request_timeout=timeout,
            pause_seconds=pause,
        )
    )


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


def _print_config(config: RunConfig) -> None:
    console.print(
        Panel(
            f"[bold]Target:[/bold]   {config.base_url}/{{{','.join(config.path_suffixes)}}}\n"
            f"[bold]VUs:[/bold]      {config.concurrency}\n"
            f"[bold]Duration:[/bold] {config.duration_seconds:g}s\n"
            f"[bold]Pause:[/bold]    {config.pause_seconds:g}s\n"
            f"[bold]Timeout:[/bold]  {config.request_timeout:g}s",
            title="loadcheck",
            border_style="cyan",
        )
    )


def _print_summary(summary: RunSummary) -> None:
    """Print check, distribution and latency tables after the run.

    Args:
        summary: Completed run summary.
    """
    checks_table = Table(
        title="Checks",
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    checks_table.add_column("Check", style="bold")
    checks_table.add_column("Passed", justify="right")
    checks_table.add_column("Failed", justify="right")
    checks_table.add_column("Pass %", justify="right")

    for stats in summary.checks.values():
        mark = "[green]✓[/green]" if stats.fails == 0 and stats.passes else "[red]✗[/red]"
        checks_table.add_row(
            f"{mark} {stats.name}",
            str(stats.passes),
            str(stats.fails),
            f"{stats.pass_rate * 100:.2f}%",
        )
    console.print(checks_table)

    if summary.suffix_counts:
        dist_table = Table(
            title="Suffix Distribution",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        dist_table.add_column("Suffix")
        dist_table.add_column("Iterations", justify="right")
        dist_table.add_column("Share", justify="right")
        for suffix, count in sorted(summary.suffix_counts.items()):
            share = count / summary.total_iterations if summary.total_iterations else 0.0
            dist_table.add_row(suffix, str(count), f"{share * 100:.1f}%")
        console.print(dist_table)

    table = Table(
        title="Run Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Duration", f"{summary.duration_seconds:.1f}s")
    table.add_row("VUs", str(summary.concurrency))
    table.add_row("Iterations", str(summary.total_iterations))
    table.add_row("Iterations/sec", f"{summary.iterations_per_second:.1f}")
    table.add_row("Failed Iterations", str(summary.failed_iterations))
    table.add_row("Failure Rate", f"{summary.failure_rate * 100:.2f}%")
    table.add_row("Transport Errors", str(summary.transport_errors))
    table.add_row("p50 Latency", f"{summary.latency_p50:.1f}ms")
    table.add_row("p95 Latency", f"{summary.latency_p95:.1f}ms")
    table.add_row("p99 Latency", f"{summary.latency_p99:.1f}ms")
    for status, count in sorted(summary.errors_by_status.items()):
        table.add_row(f"HTTP {status}", str(count))
    for error_type, count in sorted(summary.errors_by_type.items()):
        table.add_row(error_type, str(count))

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-P",
        help="Preset to start from: default or smoke.",
    ),
    vus: int | None = typer.Option(
        None,
        "--vus",
        "-u",
        help="Concurrent virtual users.",
    ),
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run duration literal, e.g. 30s, 1m30s, 500ms.",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Endpoint prefix; the chosen env is appended after '/'.",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        help="Full Authorization header value, e.g. 'Bearer abc'.",
    ),
    envs: list[str] | None = typer.Option(
        None,
        "--env",
        "-e",
        help="Path suffix to choose from. Repeat for several.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds.",
    ),
    pause: float | None = typer.Option(
        None,
        "--pause",
        help="Pause between a VU's iterations in seconds.",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Seed for env selection, for reproducible runs.",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the iteration failure rate exceeds this (e.g., 0.05).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON logs.",
    ),
) -> None:
    """Run a checked load test and print the summary."""
    try:
        config = _build_config(profile, vus, duration, base_url, token, envs, timeout, pause)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_config(config)

    log_level = logging.DEBUG if verbose else logging.INFO
    try:
        with console.status("Running...", spinner="dots"):
            summary = run_load_test(
                config,
                seed=seed,
                log_level=log_level,
                json_logs=json_logs,
            )
    except LoadCheckError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(summary)

    if fail_on_error_rate is not None and summary.failure_rate > fail_on_error_rate:
        console.print(
            f"[red]FAIL:[/red] Failure rate {summary.failure_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Load test completed.[/green]")
