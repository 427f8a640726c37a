"""Worker wiring for periodic Mukando payout sweeps."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.core.settings import settings
from smart_rewards_api.jobs.rewards import run_mukando_reward_distribution

SessionFactory = Callable[[], Awaitable[AsyncSession]] | Callable[[], AsyncSession]


class MukandoRewardWorker:
    """Periodically distributes pooled Mukando points to the member whose turn it is."""

    # meta: worker: mukando-rewards

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        interval_seconds: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.mukando_reward_interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False
        self.last_summary: Dict[str, Any] | None = None

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        logger.info("Mukando reward worker started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        logger.info("Mukando reward worker stopped")

    async def run_once(self) -> Dict[str, Any]:
        summary = await run_mukando_reward_distribution(session_factory=self._session_factory)
        self.last_summary = summary
        return summary

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:  # pragma: no cover
                logger.exception("Mukando reward iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
