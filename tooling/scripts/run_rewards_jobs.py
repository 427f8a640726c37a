"""Run the rewards jobs once.

Intended usage: schedule via cron when the in-process Mukando worker is
disabled, or invoke manually after deploying new badge definitions.

Example:
    python tooling/scripts/run_rewards_jobs.py --job mukando-payouts
    python tooling/scripts/run_rewards_jobs.py --job badge-backfill
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Dict

from loguru import logger

from smart_rewards_api.db.session import async_session
from smart_rewards_api.jobs.rewards import run_badge_backfill, run_mukando_reward_distribution

JOBS = ("mukando-payouts", "badge-backfill")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Execute a rewards job once")
    parser.add_argument(
        "--job",
        choices=JOBS,
        default="mukando-payouts",
        help="Which job to run.",
    )
    return parser.parse_args()


async def _run(job: str) -> Dict[str, Any]:
    if job == "badge-backfill":
        return await run_badge_backfill(session_factory=async_session)
    return await run_mukando_reward_distribution(session_factory=async_session)


def main() -> int:
    args = parse_args()
    summary = asyncio.run(_run(args.job))
    logger.success("Rewards job run completed", job=args.job, **summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
