"""Tests for the ResultCollector."""

from __future__ import annotations

import threading

import pytest

from loadcheck.checks import BODY_NOT_EMPTY, STATUS_OK
from loadcheck.metrics.collector import ResultCollector
from loadcheck.metrics.models import IterationResult

_CHECKS = (STATUS_OK, BODY_NOT_EMPTY)


def _make_result(
    suffix: str = "dev",
    status_code: int = 200,
    body_length: int = 10,
    latency_ms: float = 10.0,
    error: str | None = None,
) -> IterationResult:
    """Create an IterationResult whose checks follow the default rules."""
    if error is not None:
        checks = {STATUS_OK: False, BODY_NOT_EMPTY: False}
    else:
        checks = {STATUS_OK: status_code == 200, BODY_NOT_EMPTY: body_length > 0}
    return IterationResult(
        suffix=suffix,
        url=f"http://localhost/pakaiwa/{suffix}",
        status_code=status_code,
        body_length=body_length,
        latency_ms=latency_ms,
        checks=checks,
        error=error,
    )


class TestIterationResult:
    def test_passed_when_all_checks_pass(self):
        assert _make_result().passed is True

    def test_not_passed_when_any_check_fails(self):
        assert _make_result(body_length=0).passed is False


class TestResultCollectorRecord:
    def test_starts_empty(self):
        collector = ResultCollector(_CHECKS)
        summary = collector.summarize(1.0)
        assert collector.total_iterations == 0
        assert summary.total_iterations == 0
        assert summary.failure_rate == 0.0
        assert summary.passed is False
        assert list(summary.checks) == list(_CHECKS)
        assert all(s.total == 0 for s in summary.checks.values())

    def test_counts_passes(self):
        collector = ResultCollector(_CHECKS)
        for _ in range(5):
            collector.record(_make_result())
        summary = collector.summarize(1.0)
        assert summary.total_iterations == 5
        assert summary.failed_iterations == 0
        assert summary.checks[STATUS_OK].passes == 5
        assert summary.checks[BODY_NOT_EMPTY].passes == 5
        assert summary.passed is True

    def test_status_failure_counted_independently(self):
        collector = ResultCollector(_CHECKS)
        collector.record(_make_result(status_code=500, body_length=20))
        summary = collector.summarize(1.0)
        assert summary.checks[STATUS_OK].fails == 1
        assert summary.checks[BODY_NOT_EMPTY].passes == 1
        assert summary.failed_iterations == 1
        assert summary.errors_by_status == {500: 1}

    def test_transport_error_fails_both_checks(self):
        collector = ResultCollector(_CHECKS)
        collector.record(
            _make_result(status_code=0, body_length=0, error="ClientConnectorError: refused")
        )
        summary = collector.summarize(1.0)
        assert summary.transport_errors == 1
        assert summary.checks[STATUS_OK].fails == 1
        assert summary.checks[BODY_NOT_EMPTY].fails == 1
        assert summary.errors_by_type == {"ClientConnectorError": 1}
        assert summary.errors_by_status == {}

    def test_suffix_counts(self):
        collector = ResultCollector(_CHECKS)
        for suffix in ["dev", "prd", "dev", "aws", "dev"]:
            collector.record(_make_result(suffix=suffix))
        summary = collector.summarize(1.0)
        assert summary.suffix_counts == {"dev": 3, "prd": 1, "aws": 1}

    def test_unknown_check_names_are_added(self):
        collector = ResultCollector()
        collector.record(
            IterationResult(
                suffix="dev",
                url="http://x/dev",
                status_code=200,
                body_length=1,
                latency_ms=1.0,
                checks={"custom": True},
            )
        )
        assert collector.summarize(1.0).checks["custom"].passes == 1

    def test_concurrent_records_are_not_lost(self):
        collector = ResultCollector(_CHECKS)
        per_thread = 2_000

        def _worker() -> None:
            for _ in range(per_thread):
                collector.record(_make_result())

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        summary = collector.summarize(1.0)
        assert summary.total_iterations == 8 * per_thread
        assert summary.checks[STATUS_OK].passes == 8 * per_thread


class TestResultCollectorSummarize:
    def test_latency_statistics(self):
        collector = ResultCollector(_CHECKS)
        for latency in [10.0, 20.0, 30.0, 40.0, 50.0]:
            collector.record(_make_result(latency_ms=latency))
        summary = collector.summarize(2.0)
        assert summary.latency_min == 10.0
        assert summary.latency_max == 50.0
        assert summary.latency_avg == pytest.approx(30.0)
        assert summary.latency_p50 == pytest.approx(30.0)
        assert summary.latency_p99 <= 50.0

    def test_iterations_per_second(self):
        collector = ResultCollector(_CHECKS)
        for _ in range(20):
            collector.record(_make_result())
        assert collector.summarize(4.0).iterations_per_second == pytest.approx(5.0)

    def test_summary_fields_copied(self):
        collector = ResultCollector(_CHECKS)
        summary = collector.summarize(3.0, base_url="http://x/pakaiwa", concurrency=4)
        assert summary.base_url == "http://x/pakaiwa"
        assert summary.concurrency == 4
        assert summary.duration_seconds == 3.0

    def test_summary_is_a_snapshot(self):
        collector = ResultCollector(_CHECKS)
        collector.record(_make_result())
        summary = collector.summarize(1.0)
        collector.record(_make_result(status_code=500))
        assert summary.total_iterations == 1
        assert summary.checks[STATUS_OK].fails == 0

    def test_failure_rate(self):
        collector = ResultCollector(_CHECKS)
        collector.record(_make_result())
        collector.record(_make_result(status_code=503))
        assert collector.summarize(1.0).failure_rate == pytest.approx(0.5)

    def test_reset(self):
        collector = ResultCollector(_CHECKS)
        collector.record(_make_result())
        collector.reset()
        summary = collector.summarize(1.0)
        assert summary.total_iterations == 0
        assert summary.checks[STATUS_OK].total == 0
        assert collector.latency_sample_size == 0


class TestLatencyReservoir:
    def test_sample_is_bounded(self):
        collector = ResultCollector(_CHECKS, max_samples=100)
        for i in range(1, 1001):
            collector.record(_make_result(latency_ms=float(i)))
        assert collector.latency_sample_size == 100
        assert collector.total_iterations == 1000

    def test_extremes_and_average_are_exact(self):
        collector = ResultCollector(_CHECKS, max_samples=100)
        for i in range(1, 1001):
            collector.record(_make_result(latency_ms=float(i)))
        summary = collector.summarize(1.0)
        assert summary.latency_min == 1.0
        assert summary.latency_max == 1000.0
        assert summary.latency_avg == pytest.approx(500.5)

    def test_percentiles_estimated_from_sample(self):
        collector = ResultCollector(_CHECKS, max_samples=2000, seed=7)
        for i in range(1, 10_001):
            collector.record(_make_result(latency_ms=float(i)))
        summary = collector.summarize(1.0)
        assert summary.latency_p50 == pytest.approx(5000.0, rel=0.1)
        assert summary.latency_p90 == pytest.approx(9000.0, rel=0.05)
        assert 1.0 <= summary.latency_p99 <= 10_000.0

    def test_under_limit_keeps_everything(self):
        collector = ResultCollector(_CHECKS, max_samples=100)
        for latency in [10.0, 20.0, 30.0]:
            collector.record(_make_result(latency_ms=latency))
        assert collector.latency_sample_size == 3

    def test_invalid_max_samples(self):
        with pytest.raises(ValueError, match="max_samples"):
            ResultCollector(_CHECKS, max_samples=0)
