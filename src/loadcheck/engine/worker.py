"""Blocking entry point that runs a driver on a uvloop event loop."""

from __future__ import annotations

import asyncio
import logging
import random
import sys
from typing import TYPE_CHECKING

from loadcheck._internal.logging import get_logger, setup_logging
from loadcheck.engine.driver import RunDriver

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    from loadcheck._internal.config import RunConfig
    from loadcheck.metrics.models import RunSummary

logger = get_logger("engine.worker")


def _event_loop_runner() -> Callable[[Coroutine[Any, Any, RunSummary]], RunSummary]:
    """Return ``uvloop.run`` if available, else ``asyncio.run``.

    uvloop is not available on Windows; there the default asyncio event
    loop is used.
    """
    if sys.platform == "win32":
        return asyncio.run

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return asyncio.run

    logger.debug("Running on uvloop")
    return uvloop.run


def run_load_test(
    config: RunConfig,
    *,
    seed: int | None = None,
    log_level: int = logging.INFO,
    json_logs: bool = False,
    handle_signals: bool = True,
) -> RunSummary:
    """Configure and execute a run in the current process.

    Args:
        config: The run configuration.
        seed: Optional seed for suffix selection.
        log_level: Logging level.
        json_logs: Emit structured JSON logs instead of plain text.
        handle_signals: Stop gracefully on SIGINT/SIGTERM.

    Returns:
        The run summary.

    Raises:
        ConfigError: If the configuration is invalid (before any request).
        EngineError: If the run fails unexpectedly.
    """
    setup_logging(level=log_level, json_format=json_logs)

    driver = RunDriver(handle_signals=handle_signals)
    handle = driver.configure(config, rng=random.Random(seed))  # noqa: S311
    return _event_loop_runner()(driver.run(handle))
