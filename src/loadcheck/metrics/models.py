"""Result dataclasses for loadcheck runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loadcheck._internal.types import CheckResults


@dataclass(frozen=True)
class IterationResult:
    """Outcome of one request/validate cycle.

    Attributes:
        suffix: Path suffix chosen for this iteration.
        url: Full request URL.
        status_code: HTTP status (0 if no response was received).
        body_length: Number of body bytes received.
        latency_ms: Response time in milliseconds (time to failure on errors).
        checks: Pass/fail per named check.
        error: Transport error message, None when a response arrived.
    """

    suffix: str
    url: str
    status_code: int
    body_length: int
    latency_ms: float
    checks: CheckResults = field(default_factory=dict)
    error: str | None = None

    @property
    def passed(self) -> bool:
        """Return True if every check passed."""
        return all(self.checks.values())


@dataclass
class CheckStats:
    """Pass/fail counters for a single named check.

    Attributes:
        name: Check name (e.g., "status 200").
        passes: Iterations where the check held.
        fails: Iterations where it did not.
    """

    name: str
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        """Return the number of evaluations."""
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Return the fraction of passes (0.0 when never evaluated)."""
        return self.passes / self.total if self.total else 0.0


@dataclass
class RunSummary:
    """Aggregate result of a complete run.

    Attributes:
        base_url: Target base URL.
        concurrency: Number of virtual users.
        duration_seconds: Wall-clock duration of the run.
        total_iterations: Iterations completed by all virtual users.
        failed_iterations: Iterations where at least one check failed.
        transport_errors: Iterations that got no response at all.
        iterations_per_second: Throughput over the whole run.
        latency_min: Minimum latency in milliseconds.
        latency_max: Maximum latency in milliseconds.
        latency_avg: Mean latency in milliseconds.
        latency_p50: 50th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        checks: Per-check counters keyed by check name.
        suffix_counts: Iterations per chosen suffix.
        errors_by_status: Non-200 responses by status code.
        errors_by_type: Transport errors by exception type name.
    """

    base_url: str
    concurrency: int
    duration_seconds: float
    total_iterations: int = 0
    failed_iterations: int = 0
    transport_errors: int = 0
    iterations_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    checks: dict[str, CheckStats] = field(default_factory=dict)
    suffix_counts: dict[str, int] = field(default_factory=dict)
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)

    @property
    def failure_rate(self) -> float:
        """Return the fraction of iterations with a failed check."""
        if not self.total_iterations:
            return 0.0
        return self.failed_iterations / self.total_iterations

    @property
    def passed(self) -> bool:
        """Return True if at least one iteration ran and none failed."""
        return self.total_iterations > 0 and self.failed_iterations == 0
