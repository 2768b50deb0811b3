"""Smoke run with an extra check on top of the two defaults.

Adds a body size check to show how checks compose.
Run it with:

    python examples/custom_checks.py
"""

from __future__ import annotations

import asyncio

from loadcheck import DEFAULT_CHECKS, PROFILES, Check, RunDriver

SMALL_BODY = Check("body under 64KiB", lambda _status, length: length < 64 * 1024)


async def main() -> None:
    driver = RunDriver()
    handle = driver.configure(PROFILES["smoke"], checks=(*DEFAULT_CHECKS, SMALL_BODY))
    summary = await driver.run(handle)
    print(f"passed={summary.passed} failure_rate={summary.failure_rate:.2%}")


if __name__ == "__main__":
    asyncio.run(main())
