import pytest
from sqlalchemy import func, select

from smart_rewards_api.models.badge import Badge, BadgeCategory, CustomerBadge
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.badges import BADGE_DEFINITIONS, BadgeEngine


@pytest.mark.asyncio
async def test_initialize_badges_is_idempotent(session_factory) -> None:
    async with session_factory() as session:
        engine = BadgeEngine(session)
        assert await engine.initialize_badges() == len(BADGE_DEFINITIONS)
        await session.commit()
        await engine.initialize_badges()
        await session.commit()

        count = (await session.execute(select(func.count(Badge.id)))).scalar_one()
        assert count == len(BADGE_DEFINITIONS)


@pytest.mark.asyncio
async def test_fresh_customer_earns_welcome_badge_once(session_factory, seed) -> None:
    customer_id = await seed.customer()

    async with session_factory() as session:
        engine = BadgeEngine(session)
        await engine.initialize_badges()

        awarded = await engine.check_and_award_badges(customer_id)
        assert awarded == ["Welcome Aboard"]
        assert await engine.check_and_award_badges(customer_id) == []
        await session.commit()

        ledger = (
            await session.execute(
                select(Transaction).where(
                    Transaction.customer_id == customer_id,
                    Transaction.transaction_type == TransactionType.BADGE_EARNED,
                )
            )
        ).scalars().all()
        assert len(ledger) == 1
        assert ledger[0].points_earned == 50

    assert await seed.balance(customer_id) == 50
    assert get_rewards_store().snapshot().badges["awarded"] == 1


@pytest.mark.asyncio
async def test_award_badge_refuses_duplicates(session_factory, seed) -> None:
    customer_id = await seed.customer()

    async with session_factory() as session:
        badge = Badge(name="Tester", description="", icon="award", category=BadgeCategory.SPECIAL, criteria_json={}, points_reward=0)
        session.add(badge)
        await session.flush()
        engine = BadgeEngine(session)

        assert await engine.award_badge(customer_id, badge) is True
        assert await engine.award_badge(customer_id, badge) is False

        held = (
            await session.execute(select(func.count(CustomerBadge.id)).where(CustomerBadge.customer_id == customer_id))
        ).scalar_one()
        assert held == 1


@pytest.mark.asyncio
async def test_customer_stats_count_activity(session_factory, seed) -> None:
    customer_id = await seed.customer(points=120)
    business_id = await seed.business()

    async with session_factory() as session:
        session.add_all(
            [
                Transaction(customer_id=customer_id, business_id=business_id, points_earned=30, transaction_amount=30),
                Transaction(customer_id=customer_id, business_id=business_id, points_earned=20, transaction_amount=20),
            ]
        )
        await session.flush()
        stats = await BadgeEngine(session).get_customer_stats(customer_id)

    assert stats.total_transactions == 2
    assert stats.total_points_earned == 50
    assert stats.current_loyalty_points == 120
    assert stats.businesses_followed == 0
    assert stats.account_age == 0


@pytest.mark.asyncio
async def test_customer_badges_lists_available_after_earned(session_factory, seed) -> None:
    customer_id = await seed.customer()

    async with session_factory() as session:
        engine = BadgeEngine(session)
        await engine.initialize_badges()
        await engine.check_and_award_badges(customer_id)

        earned_only = await engine.customer_badges(customer_id)
        everything = await engine.customer_badges(customer_id, include_available=True)

    assert [status.badge.name for status in earned_only] == ["Welcome Aboard"]
    assert everything[0].earned is True
    assert len(everything) == len(BADGE_DEFINITIONS)
    assert all(status.earned is False for status in everything[1:])


@pytest.mark.asyncio
async def test_retroactive_sweep_covers_every_customer(session_factory, seed) -> None:
    await seed.customer("a@example.com")
    await seed.customer("b@example.com")

    async with session_factory() as session:
        engine = BadgeEngine(session)
        await engine.initialize_badges()
        await session.commit()
        summary = await engine.award_retroactive_badges()

    assert summary.customers_processed == 2
    assert summary.badges_awarded == 2
    assert summary.failures == 0
