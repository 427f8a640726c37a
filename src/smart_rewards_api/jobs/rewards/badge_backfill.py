"""Job that seeds the badge catalogue and awards badges retroactively."""

# meta: job: badge-backfill

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.services.badges import BadgeEngine

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]


async def run_badge_backfill(*, session_factory: SessionFactory) -> Dict[str, Any]:
    maybe_session = session_factory()
    session: AsyncSession
    if isinstance(maybe_session, AsyncSession):
        session = maybe_session
    else:
        session = await maybe_session

    async with session as managed_session:
        engine = BadgeEngine(managed_session)
        initialized = await engine.initialize_badges()
        await managed_session.commit()
        result = await engine.award_retroactive_badges()

    summary = {
        "badges_initialized": initialized,
        "customers_processed": result.customers_processed,
        "badges_awarded": result.badges_awarded,
        "failures": result.failures,
    }
    logger.bind(summary=summary).info("Badge backfill job completed")
    return summary
