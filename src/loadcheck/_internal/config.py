"""Run configuration, duration literals and named profiles for loadcheck."""

from __future__ import annotations

import dataclasses
import math
import os
import re
from dataclasses import dataclass

from loadcheck._internal.errors import ConfigError

DEFAULT_BASE_URL = "http://localhost:8080/pakaiwa"
DEFAULT_AUTH_TOKEN = "Bearer iniRahasiaWebhook"
DEFAULT_SUFFIXES: tuple[str, ...] = ("dev", "prd", "aws")
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_PAUSE_SECONDS = 1.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class RunConfig:
    """Immutable description of one load run.

    Attributes:
        concurrency: Number of virtual users running in parallel.
        duration_seconds: How long new iterations are admitted.
        base_url: Endpoint prefix; the chosen suffix is appended after ``/``.
        auth_token: Full ``Authorization`` header value.
        path_suffixes: Candidate suffixes, chosen uniformly per iteration.
        request_timeout: Total per-request transport timeout in seconds.
        pause_seconds: Pause between a virtual user's iterations.
    """

    concurrency: int = 100
    duration_seconds: float = 30.0
    base_url: str = DEFAULT_BASE_URL
    auth_token: str = DEFAULT_AUTH_TOKEN
    path_suffixes: tuple[str, ...] = DEFAULT_SUFFIXES
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    pause_seconds: float = DEFAULT_PAUSE_SECONDS

    def replace(self, **changes: object) -> RunConfig:
        """Return a copy with the given fields replaced.

        ``None`` values are ignored so CLI options that were not passed
        leave the underlying value untouched.
        """
        overrides = {k: v for k, v in changes.items() if v is not None}
        if "path_suffixes" in overrides:
            overrides["path_suffixes"] = tuple(overrides["path_suffixes"])  # type: ignore[arg-type]
        return dataclasses.replace(self, **overrides)  # type: ignore[arg-type]

    def target_url(self, suffix: str) -> str:
        """Build the request URL for *suffix*."""
        return f"{self.base_url.rstrip('/')}/{suffix}"


# Presets matching the two script variants the driver replaces.
PROFILES: dict[str, RunConfig] = {
    "default": RunConfig(),
    "smoke": RunConfig(concurrency=10, duration_seconds=10.0, path_suffixes=("dev",)),
}


def validate_run_config(config: RunConfig) -> RunConfig:
    """Check the invariants of a RunConfig.

    Args:
        config: The configuration to validate.

    Returns:
        The same configuration, for chaining.

    Raises:
        ConfigError: If concurrency < 1, path_suffixes is empty or holds a
            blank entry, duration or timeout is not positive, the pause is
            negative, or the base URL is empty.
    """
    if config.concurrency < 1:
        msg = f"concurrency must be >= 1, got {config.concurrency}"
        raise ConfigError(msg)
    if not config.path_suffixes:
        msg = "path_suffixes must not be empty"
        raise ConfigError(msg)
    if any(not s.strip() for s in config.path_suffixes):
        msg = f"path_suffixes must not contain blank entries, got {list(config.path_suffixes)!r}"
        raise ConfigError(msg)
    if config.duration_seconds <= 0:
        msg = f"duration must be positive, got {config.duration_seconds}"
        raise ConfigError(msg)
    if config.request_timeout <= 0:
        msg = f"request_timeout must be positive, got {config.request_timeout}"
        raise ConfigError(msg)
    if config.pause_seconds < 0:
        msg = f"pause_seconds must be non-negative, got {config.pause_seconds}"
        raise ConfigError(msg)
    if not config.base_url:
        msg = "base_url must not be empty"
        raise ConfigError(msg)
    return config


def parse_duration(value: str) -> float:
    """Parse a duration literal into seconds.

    Accepts bare numbers (seconds) and unit literals such as ``"30s"``,
    ``"500ms"``, ``"2m"`` or ``"1h2m3s"``.

    Args:
        value: The literal to parse.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the literal is malformed or not positive.
    """
    text = value.strip().lower()
    if not text:
        msg = "duration must not be empty"
        raise ConfigError(msg)

    try:
        seconds = float(text)
    except ValueError:
        seconds = 0.0
        pos = 0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            msg = f"invalid duration literal: {value!r}"
            raise ConfigError(msg) from None

    if not math.isfinite(seconds) or seconds <= 0:
        msg = f"duration must be a positive finite value, got {value!r}"
        raise ConfigError(msg)
    return seconds


def parse_suffixes(value: str) -> tuple[str, ...]:
    """Split a comma-separated suffix list, dropping blanks."""
    return tuple(part.strip() for part in value.split(",") if part.strip())


def get_profile(name: str) -> RunConfig:
    """Return the named preset.

    Raises:
        ConfigError: If no profile has that name.
    """
    try:
        return PROFILES[name]
    except KeyError:
        msg = f"unknown profile {name!r}, choose from: {', '.join(sorted(PROFILES))}"
        raise ConfigError(msg) from None


def load_config(profile: str = "default") -> RunConfig:
    """Load a RunConfig from a profile overlaid with environment variables.

    Environment variables:
        LOADCHECK_VUS: Number of virtual users.
        LOADCHECK_DURATION: Duration literal (e.g. ``30s``).
        LOADCHECK_BASE_URL: Target base URL.
        LOADCHECK_AUTH_TOKEN: Full Authorization header value.
        LOADCHECK_ENVS: Comma-separated path suffixes.
        LOADCHECK_TIMEOUT: Request timeout in seconds.
        LOADCHECK_PAUSE: Pause between iterations in seconds.

    Args:
        profile: Name of the preset to start from.

    Returns:
        A validated RunConfig.

    Raises:
        ConfigError: If the profile is unknown or a variable is invalid.
    """
    config = get_profile(profile)
    changes: dict[str, object] = {}

    vus_str = os.environ.get("LOADCHECK_VUS")
    if vus_str is not None:
        try:
            changes["concurrency"] = int(vus_str)
        except ValueError:
            msg = f"LOADCHECK_VUS must be an integer, got: {vus_str!r}"
            raise ConfigError(msg) from None

    duration_str = os.environ.get("LOADCHECK_DURATION")
    if duration_str is not None:
        changes["duration_seconds"] = parse_duration(duration_str)

    envs_str = os.environ.get("LOADCHECK_ENVS")
    if envs_str is not None:
        changes["path_suffixes"] = parse_suffixes(envs_str)

    for var, field_name in (
        ("LOADCHECK_TIMEOUT", "request_timeout"),
        ("LOADCHECK_PAUSE", "pause_seconds"),
    ):
        raw = os.environ.get(var)
        if raw is None:
            continue
        try:
            changes[field_name] = float(raw)
        except ValueError:
            msg = f"{var} must be a number, got: {raw!r}"
            raise ConfigError(msg) from None

    changes["base_url"] = os.environ.get("LOADCHECK_BASE_URL")
    changes["auth_token"] = os.environ.get("LOADCHECK_AUTH_TOKEN")

    return validate_run_config(config.replace(**changes))
