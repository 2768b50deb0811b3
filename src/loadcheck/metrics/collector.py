"""In-memory aggregation of iteration results for a run."""

from __future__ import annotations

import random
import threading
from collections import Counter
from typing import TYPE_CHECKING

import numpy as np

from loadcheck._internal.logging import get_logger
from loadcheck.metrics.models import CheckStats, RunSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from loadcheck.metrics.models import IterationResult

logger = get_logger("metrics.collector")

# Latencies kept for percentile estimation; beyond this a uniform sample is kept
DEFAULT_MAX_LATENCY_SAMPLES = 100_000


def _compute_percentiles(
    latencies: list[float],
) -> tuple[float, float, float, float, float, float, float]:
    """Compute latency statistics from a list of latency values.

    Args:
        latencies: List of latency values in milliseconds.

    Returns:
        Tuple of (min, max, avg, p50, p90, p95, p99).
    """
    if not latencies:
        return (0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    arr = np.array(latencies, dtype=np.float64)
    percentiles = np.percentile(arr, [50.0, 90.0, 95.0, 99.0])

    return (
        float(np.min(arr)),
        float(np.max(arr)),
        float(np.mean(arr)),
        float(percentiles[0]),
        float(percentiles[1]),
        float(percentiles[2]),
        float(percentiles[3]),
    )


class ResultCollector:
    """Counts iteration outcomes from concurrently running virtual users.

    ``record`` takes a lock around every update so no increment is lost,
    whether virtual users run as tasks on one loop or on several threads.

    Latency min, max and average are exact. Percentiles come from at most
    ``max_samples`` latencies, chosen by reservoir sampling once the run
    has recorded more than that, so memory stays bounded on long runs.

    Attributes:
        check_names: Checks that always appear in the summary, even when
            no iteration has run.
        max_samples: Upper bound on latencies held for percentiles.
    """

    def __init__(
        self,
        check_names: Iterable[str] = (),
        *,
        max_samples: int = DEFAULT_MAX_LATENCY_SAMPLES,
        seed: int | None = 0,
    ) -> None:
        """Initialize the collector.

        Args:
            check_names: Names of the checks evaluated by the run, in
                report order.
            max_samples: Upper bound on latencies held for percentiles.
            seed: Seed for the reservoir sampler.
        """
        if max_samples < 1:
            msg = f"max_samples must be >= 1, got {max_samples}"
            raise ValueError(msg)
        self.check_names = tuple(check_names)
        self.max_samples = max_samples
        self._lock = threading.Lock()
        self._rng = random.Random(seed)  # noqa: S311
        self._latencies: list[float] = []
        self._latency_min = float("inf")
        self._latency_max = 0.0
        self._latency_sum = 0.0
        self._checks: dict[str, CheckStats] = {n: CheckStats(name=n) for n in self.check_names}
        self._suffix_counts: Counter[str] = Counter()
        self._errors_by_status: Counter[int] = Counter()
        self._errors_by_type: Counter[str] = Counter()
        self._total = 0
        self._failed = 0
        self._transport_errors = 0

    @property
    def total_iterations(self) -> int:
        """Return the number of recorded iterations."""
        with self._lock:
            return self._total

    @property
    def latency_sample_size(self) -> int:
        """Return how many latencies are held for percentile estimation."""
        with self._lock:
            return len(self._latencies)

    def record(self, result: IterationResult) -> None:
        """Fold one iteration into the running totals.

        Args:
            result: The iteration to record.
        """
        with self._lock:
            self._total += 1
            self._record_latency(result.latency_ms)
            self._suffix_counts[result.suffix] += 1

            if not result.passed:
                self._failed += 1

            if result.error is not None:
                self._transport_errors += 1
                # "ClientConnectorError: ..." -> "ClientConnectorError"
                self._errors_by_type[result.error.split(":")[0].strip()] += 1
            elif result.status_code != 200:
                self._errors_by_status[result.status_code] += 1

            for name, ok in result.checks.items():
                stats = self._checks.get(name)
                if stats is None:
                    stats = self._checks[name] = CheckStats(name=name)
                if ok:
                    stats.passes += 1
                else:
                    stats.fails += 1

    def _record_latency(self, latency_ms: float) -> None:
        """Update exact extremes and the sample. Caller holds the lock."""
        self._latency_min = min(self._latency_min, latency_ms)
        self._latency_max = max(self._latency_max, latency_ms)
        self._latency_sum += latency_ms
        if len(self._latencies) < self.max_samples:
            self._latencies.append(latency_ms)
            return
        # Algorithm R: the n-th latency replaces a sample with probability k/n
        slot = self._rng.randrange(self._total)
        if slot < self.max_samples:
            self._latencies[slot] = latency_ms

    def summarize(
        self,
        duration_seconds: float,
        *,
        base_url: str = "",
        concurrency: int = 0,
    ) -> RunSummary:
        """Build a RunSummary from everything recorded so far.

        Args:
            duration_seconds: Wall-clock duration of the run.
            base_url: Target base URL, copied into the summary.
            concurrency: Virtual user count, copied into the summary.

        Returns:
            The aggregated summary. Counters are copied, so later
            ``record`` calls do not change it.
        """
        with self._lock:
            latencies = list(self._latencies)
            exact = (self._latency_min, self._latency_max, self._latency_sum)
            checks = {
                name: CheckStats(name=name, passes=s.passes, fails=s.fails)
                for name, s in self._checks.items()
            }
            total = self._total
            failed = self._failed
            transport_errors = self._transport_errors
            suffix_counts = dict(self._suffix_counts)
            errors_by_status = dict(self._errors_by_status)
            errors_by_type = dict(self._errors_by_type)

        lat_min, lat_max, lat_avg, p50, p90, p95, p99 = _compute_percentiles(latencies)
        if total:
            lat_min, lat_max, lat_avg = exact[0], exact[1], exact[2] / total

        return RunSummary(
            base_url=base_url,
            concurrency=concurrency,
            duration_seconds=duration_seconds,
            total_iterations=total,
            failed_iterations=failed,
            transport_errors=transport_errors,
            iterations_per_second=total / max(duration_seconds, 0.001),
            latency_min=lat_min,
            latency_max=lat_max,
            latency_avg=lat_avg,
            latency_p50=p50,
            latency_p90=p90,
            latency_p95=p95,
            latency_p99=p99,
            checks=checks,
            suffix_counts=suffix_counts,
            errors_by_status=errors_by_status,
            errors_by_type=errors_by_type,
        )

    def reset(self) -> None:
        """Clear all recorded state. Primarily for testing."""
        with self._lock:
            self._latencies.clear()
            self._latency_min = float("inf")
            self._latency_max = 0.0
            self._latency_sum = 0.0
            self._checks = {n: CheckStats(name=n) for n in self.check_names}
            self._suffix_counts.clear()
            self._errors_by_status.clear()
            self._errors_by_type.clear()
            self._total = 0
            self._failed = 0
            self._transport_errors = 0
        logger.debug("Collector reset")
