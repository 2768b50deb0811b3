"""Uniform random selection of target path suffixes."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loadcheck._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Sequence


class SuffixSelector:
    """Pick a path suffix uniformly at random for each iteration.

    Repeats are allowed; no entry is weighted or excluded. Pass a seeded
    ``random.Random`` for a reproducible sequence.

    Args:
        suffixes: Candidate suffixes. Must not be empty.
        rng: Random generator to draw from. Defaults to a fresh unseeded one.

    Raises:
        ConfigError: If *suffixes* is empty.
    """

    def __init__(self, suffixes: Sequence[str], rng: random.Random | None = None) -> None:
        if not suffixes:
            msg = "suffixes must not be empty"
            raise ConfigError(msg)
        self._suffixes = tuple(suffixes)
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def suffixes(self) -> tuple[str, ...]:
        """Return the candidate suffixes."""
        return self._suffixes

    def choose(self) -> str:
        """Return one suffix."""
        return self._rng.choice(self._suffixes)
