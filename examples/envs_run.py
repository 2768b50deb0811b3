"""Random-env load run: 100 VUs for 30s over dev, prd and aws.

The same run as ``loadcheck run``, driven from Python with a fixed seed
so the env sequence is reproducible. Run it with:

    python examples/envs_run.py
"""

from __future__ import annotations

import asyncio
import random

from loadcheck import RunConfig, RunDriver


async def main() -> None:
    driver = RunDriver()
    handle = driver.configure(
        RunConfig(
            concurrency=100,
            duration_seconds=30.0,
            path_suffixes=("dev", "prd", "aws"),
        ),
        rng=random.Random(7),
    )
    summary = await driver.run(handle)

    for stats in summary.checks.values():
        print(f"{stats.name}: {stats.passes} passed, {stats.fails} failed")
    for suffix, count in sorted(summary.suffix_counts.items()):
        print(f"{suffix}: {count}")


if __name__ == "__main__":
    asyncio.run(main())
