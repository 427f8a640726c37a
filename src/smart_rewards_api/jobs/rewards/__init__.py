"""Rewards job exports."""

from .badge_backfill import run_badge_backfill  # noqa: F401
from .mukando_payouts import run_mukando_reward_distribution  # noqa: F401

__all__ = [
    "run_badge_backfill",
    "run_mukando_reward_distribution",
]
