from uuid import uuid4

import pytest
from sqlalchemy import select

from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.badges import BadgeEngine
from smart_rewards_api.services.errors import NotFoundError
from smart_rewards_api.services.points.awards import POINTS_REWARDS, PointsActivity, award_points


def test_activity_reward_table() -> None:
    assert POINTS_REWARDS[PointsActivity.SIGNUP].points == 2
    assert POINTS_REWARDS[PointsActivity.FOLLOW_BUSINESS].points == 1
    assert POINTS_REWARDS[PointsActivity.JOIN_MUKANDO].points == 1
    assert POINTS_REWARDS[PointsActivity.FIRST_PURCHASE].points == 5
    assert POINTS_REWARDS[PointsActivity.REFERRAL].points == 3


@pytest.mark.asyncio
async def test_business_activity_writes_ledger_row(session_factory, seed) -> None:
    customer_id = await seed.customer()
    business_id = await seed.business()

    async with session_factory() as session:
        award = await award_points(session, customer_id, PointsActivity.FOLLOW_BUSINESS, business_id=business_id)
        await session.commit()

        rows = (await session.execute(select(Transaction).where(Transaction.customer_id == customer_id))).scalars().all()

    assert award.points_awarded == 1
    assert award.new_total == 1
    assert award.badges_awarded == []
    assert len(rows) == 1
    assert rows[0].transaction_type == TransactionType.FOLLOW_BONUS
    assert rows[0].business_id == business_id


@pytest.mark.asyncio
async def test_platform_activity_skips_ledger_and_reports_badge_total(session_factory, seed) -> None:
    customer_id = await seed.customer()

    async with session_factory() as session:
        await BadgeEngine(session).initialize_badges()
        award = await award_points(session, customer_id, PointsActivity.SIGNUP)
        await session.commit()

        earn_rows = (
            await session.execute(
                select(Transaction).where(
                    Transaction.customer_id == customer_id,
                    Transaction.transaction_type != TransactionType.BADGE_EARNED,
                )
            )
        ).scalars().all()

    assert earn_rows == []
    assert award.points_awarded == 2
    assert award.badges_awarded == ["Welcome Aboard"]
    assert award.new_total == 52

    snapshot = get_rewards_store().snapshot()
    assert snapshot.points["awards"] == 1
    assert snapshot.points["activity:signup"] == 1


@pytest.mark.asyncio
async def test_override_points_and_description(session_factory, seed) -> None:
    customer_id = await seed.customer()

    async with session_factory() as session:
        award = await award_points(session, customer_id, PointsActivity.REFERRAL, points=7, description="Bonus")

    assert award.points_awarded == 7
    assert award.description == "Bonus"


@pytest.mark.asyncio
async def test_unknown_customer_raises(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(NotFoundError):
            await award_points(session, uuid4(), PointsActivity.SIGNUP)
