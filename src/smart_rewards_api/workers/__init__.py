"""Background workers supporting async processing."""

from .mukando_rewards import MukandoRewardWorker

__all__ = [
    "MukandoRewardWorker",
]
