"""Run driver: virtual user pool, iteration loop and shutdown handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from loadcheck._internal.config import validate_run_config
from loadcheck._internal.errors import EngineError, TransportError
from loadcheck._internal.logging import get_logger
from loadcheck.checks import DEFAULT_CHECKS, evaluate_checks, failed_checks
from loadcheck.client.http_client import HttpClient
from loadcheck.engine.selector import SuffixSelector
from loadcheck.metrics.collector import ResultCollector
from loadcheck.metrics.models import IterationResult

if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from loadcheck._internal.config import RunConfig
    from loadcheck.checks import Check
    from loadcheck.metrics.models import RunSummary

logger = get_logger("engine.driver")

# Extra time granted to in-flight iterations beyond the request timeout
_SHUTDOWN_GRACE = 5.0


class SessionState(Enum):
    """State machine for a run."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class RunHandle:
    """A validated configuration bound to its selector and checks.

    Attributes:
        config: The immutable run configuration.
        selector: Suffix selector drawing from ``config.path_suffixes``.
        checks: Checks evaluated on every response, in report order.
    """

    config: RunConfig
    selector: SuffixSelector
    checks: tuple[Check, ...]

    @property
    def headers(self) -> dict[str, str]:
        """Return the headers sent with every request."""
        return {
            "Authorization": self.config.auth_token,
            "Content-Type": "application/json",
        }


class RunDriver:
    """Runs a fixed pool of virtual users against one endpoint family.

    Each virtual user loops until the run stops: pick a suffix, GET
    ``base_url/suffix``, evaluate the checks, record the result, pause.
    The run stops when the duration elapses, when ``stop()`` is called,
    or on SIGINT/SIGTERM. In-flight requests are allowed to finish.

    State machine: CREATED -> RUNNING -> STOPPING -> COMPLETED
                                      -> FAILED (on engine error)

    Example::

        driver = RunDriver()
        handle = driver.configure(RunConfig(concurrency=10, duration_seconds=10))
        summary = await driver.run(handle)
    """

    def __init__(self, *, handle_signals: bool = True) -> None:
        """Initialize the driver.

        Args:
            handle_signals: Install SIGINT/SIGTERM handlers that stop the
                run gracefully. Skipped automatically off the main thread.
        """
        self._handle_signals = handle_signals
        self._state = SessionState.CREATED
        self._stop_event: asyncio.Event | None = None

    @property
    def state(self) -> SessionState:
        """Return the current run state."""
        return self._state

    @staticmethod
    def configure(
        config: RunConfig,
        *,
        rng: random.Random | None = None,
        checks: Sequence[Check] | None = None,
    ) -> RunHandle:
        """Validate *config* and prepare it for a run.

        Args:
            config: The run configuration.
            rng: Random generator for suffix selection. Pass a seeded
                instance for reproducible runs.
            checks: Checks to evaluate. Defaults to "status 200" and
                "body not empty".

        Returns:
            A RunHandle ready for ``run``.

        Raises:
            ConfigError: If the configuration violates an invariant.
        """
        validate_run_config(config)
        return RunHandle(
            config=config,
            selector=SuffixSelector(config.path_suffixes, rng),
            checks=tuple(checks if checks is not None else DEFAULT_CHECKS),
        )

    async def run(self, handle: RunHandle) -> RunSummary:
        """Execute the run to completion.

        Args:
            handle: Handle returned by ``configure``.

        Returns:
            RunSummary with per-check pass/fail counts.

        Raises:
            EngineError: If the driver is already running or a virtual
                user fails for a reason other than a transport error.
        """
        if self._state in (SessionState.RUNNING, SessionState.STOPPING):
            msg = "RunDriver is already running"
            raise EngineError(msg)

        config = handle.config
        collector = ResultCollector(check.name for check in handle.checks)
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._state = SessionState.RUNNING

        logger.info(
            "Starting run: url=%s, suffixes=%s, vus=%d, duration=%.1fs",
            config.base_url,
            ",".join(config.path_suffixes),
            config.concurrency,
            config.duration_seconds,
        )

        signals_installed = False
        start_time = time.monotonic()
        try:
            if self._handle_signals:
                signals_installed = self._install_signal_handlers()

            async with HttpClient(headers=handle.headers, timeout=config.request_timeout) as client:
                user_tasks = [
                    asyncio.create_task(
                        self._run_virtual_user(uid, handle, client, collector, stop_event),
                        name=f"vu-{uid}",
                    )
                    for uid in range(config.concurrency)
                ]
                stop_waiter = asyncio.create_task(stop_event.wait(), name="stop-waiter")
                try:
                    # A virtual user only returns early when it has failed
                    await asyncio.wait(
                        [stop_waiter, *user_tasks],
                        timeout=config.duration_seconds,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    stop_waiter.cancel()
                    self._state = SessionState.STOPPING
                    await _shutdown_all_users(
                        user_tasks,
                        stop_event,
                        grace=config.request_timeout + _SHUTDOWN_GRACE,
                    )
        except EngineError:
            self._state = SessionState.FAILED
            logger.exception("Run failed")
            raise
        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Run failed")
            msg = f"Run failed: {exc!r}"
            raise EngineError(msg) from exc
        finally:
            if signals_installed:
                self._remove_signal_handlers()

        duration = time.monotonic() - start_time
        summary = collector.summarize(
            duration,
            base_url=config.base_url,
            concurrency=config.concurrency,
        )
        self._state = SessionState.COMPLETED

        logger.info(
            "Run completed: duration=%.1fs, iterations=%d, failed=%d, "
            "transport_errors=%d, p95=%.1fms",
            duration,
            summary.total_iterations,
            summary.failed_iterations,
            summary.transport_errors,
            summary.latency_p95,
        )
        return summary

    async def stop(self) -> None:
        """Request graceful shutdown; no new iterations start afterwards."""
        if self._state == SessionState.RUNNING and self._stop_event is not None:
            logger.info("Graceful shutdown requested")
            self._stop_event.set()

    async def _run_virtual_user(
        self,
        user_id: int,
        handle: RunHandle,
        client: HttpClient,
        collector: ResultCollector,
        stop_event: asyncio.Event,
    ) -> None:
        """Loop request/check/pause iterations until the run stops.

        Args:
            user_id: Identifier used in log messages.
            handle: The run handle.
            client: Shared HTTP client.
            collector: Shared result collector.
            stop_event: Set when no further iteration may start.
        """
        config = handle.config
        while not stop_event.is_set():
            suffix = handle.selector.choose()
            url = config.target_url(suffix)
            start = time.monotonic()
            try:
                resp = await client.get(url)
            except TransportError as exc:
                logger.debug(
                    "Request failed: %s",
                    exc,
                    extra={"vu": user_id, "suffix": suffix, "url": url},
                )
                result = IterationResult(
                    suffix=suffix,
                    url=url,
                    status_code=0,
                    body_length=0,
                    latency_ms=(time.monotonic() - start) * 1000,
                    checks=failed_checks(handle.checks),
                    error=str(exc),
                )
            else:
                result = IterationResult(
                    suffix=suffix,
                    url=url,
                    status_code=resp.status,
                    body_length=resp.body_length,
                    latency_ms=resp.latency_ms,
                    checks=evaluate_checks(handle.checks, resp.status, resp.body_length),
                )
                if not result.passed:
                    logger.debug(
                        "Checks failed: %s",
                        ", ".join(name for name, ok in result.checks.items() if not ok),
                        extra={"vu": user_id, "suffix": suffix, "url": url, "status": resp.status},
                    )
            collector.record(result)

            # Pause, but wake up as soon as the run stops
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=config.pause_seconds)

    def _install_signal_handlers(self) -> bool:
        """Install SIGINT and SIGTERM handlers for graceful shutdown.

        Signal handlers can only be set from the main thread; elsewhere
        the run goes ahead without them.

        Returns:
            True if the handlers were installed.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return False

        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            if self._stop_event is not None:
                self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
            signal.signal(signal.SIGTERM, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
        return True

    def _remove_signal_handlers(self) -> None:
        """Remove custom signal handlers, restoring defaults."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)


async def _shutdown_all_users(
    user_tasks: list[asyncio.Task[None]],
    stop_event: asyncio.Event,
    *,
    grace: float,
) -> None:
    """Stop all virtual users, letting in-flight iterations finish.

    Sets the stop event, waits up to *grace* seconds, then cancels
    whatever is still running.

    Args:
        user_tasks: Virtual user tasks to shut down.
        stop_event: Event that ends each user's loop.
        grace: Seconds to wait before cancelling.

    Raises:
        EngineError: If a virtual user died with an unexpected exception.
    """
    stop_event.set()
    if not user_tasks:
        return

    _done, pending = await asyncio.wait(user_tasks, timeout=grace)
    for task in pending:
        task.cancel()
    if pending:
        logger.warning("Cancelled %d virtual users still running after %.1fs", len(pending), grace)
        await asyncio.wait(pending, timeout=2.0)

    failures = [
        task.exception()
        for task in user_tasks
        if task.done() and not task.cancelled() and task.exception() is not None
    ]
    user_tasks.clear()
    if failures:
        msg = f"{len(failures)} virtual user(s) failed: {failures[0]!r}"
        raise EngineError(msg) from failures[0]
    logger.debug("All virtual users shut down")
