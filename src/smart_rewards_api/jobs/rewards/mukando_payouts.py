"""Job that pays out pooled Mukando loyalty points."""

# meta: job: mukando-payouts

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.services.mukando import MukandoService

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]


async def run_mukando_reward_distribution(
    *,
    session_factory: SessionFactory,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """Distribute rewards for every eligible approved group and commit the result."""

    maybe_session = session_factory()
    session: AsyncSession
    if isinstance(maybe_session, AsyncSession):
        session = maybe_session
    else:
        session = await maybe_session

    async with session as managed_session:
        result = await MukandoService(managed_session).distribute_rewards(now=now)
        await managed_session.commit()

    summary = result.as_dict()
    logger.bind(summary=summary).info("Mukando payout job completed")
    return summary
