"""Checked HTTP load runs against an endpoint family."""

from __future__ import annotations

from loadcheck._internal.config import PROFILES, RunConfig, load_config, parse_duration
from loadcheck._internal.errors import ConfigError, EngineError, LoadCheckError, TransportError
from loadcheck.checks import BODY_NOT_EMPTY, DEFAULT_CHECKS, STATUS_OK, Check
from loadcheck.engine.driver import RunDriver, RunHandle
from loadcheck.engine.worker import run_load_test
from loadcheck.metrics.models import CheckStats, IterationResult, RunSummary

__version__ = "0.1.0"

__all__ = [
    "BODY_NOT_EMPTY",
    "DEFAULT_CHECKS",
    "PROFILES",
    "STATUS_OK",
    "Check",
    "CheckStats",
    "ConfigError",
    "EngineError",
    "IterationResult",
    "LoadCheckError",
    "RunConfig",
    "RunDriver",
    "RunHandle",
    "RunSummary",
    "TransportError",
    "load_config",
    "parse_duration",
    "run_load_test",
]
