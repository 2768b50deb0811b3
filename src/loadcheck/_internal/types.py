"""Shared type aliases for loadcheck."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# Named check results for one iteration.
CheckResults = dict[str, bool]
