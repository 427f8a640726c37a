from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.services.activity import CHECK_IN_POINTS, ActivityService, points_for_amount
from smart_rewards_api.services.errors import NotFoundError, ValidationFailedError


def test_points_for_amount_floors_to_rule_steps() -> None:
    rule = {"amount": 10, "points": 3}

    assert points_for_amount(rule, Decimal("25")) == 6
    assert points_for_amount(rule, Decimal("9.99")) == 0
    assert points_for_amount(None, Decimal("100")) == 0
    assert points_for_amount({"amount": 0, "points": 5}, Decimal("100")) == 0
    assert points_for_amount({"points": 5}, Decimal("100")) == 0


@pytest.mark.asyncio
async def test_first_scan_applies_rule_and_first_purchase_bonus(session_factory, seed) -> None:
    customer_id = await seed.customer()
    business_id = await seed.business()
    await seed.points_rule(business_id, amount="1", points=2)

    async with session_factory() as session:
        service = ActivityService(session)
        first = await service.record_scan(customer_id, business_id, Decimal("12.50"))
        second = await service.record_scan(customer_id, business_id, Decimal("5"))
        await session.commit()

        earn_rows = (
            await session.execute(select(Transaction).where(Transaction.transaction_type == TransactionType.EARN))
        ).scalars().all()

    assert first.points_earned == 24
    assert first.first_purchase_award is not None
    assert first.first_purchase_award.points_awarded == 5
    assert second.first_purchase_award is None
    assert second.points_earned == 10
    assert await seed.balance(customer_id) == 24 + 5 + 10
    assert len(earn_rows) == 3


@pytest.mark.asyncio
async def test_first_purchase_bonus_is_per_business(session_factory, seed) -> None:
    customer_id = await seed.customer()
    coffee_id = await seed.business()
    bakery_id = await seed.business("bakery@example.com", name="Mbare Bakery")

    async with session_factory() as session:
        service = ActivityService(session)
        at_coffee = await service.record_scan(customer_id, coffee_id, Decimal("3"))
        at_bakery = await service.record_scan(customer_id, bakery_id, Decimal("3"))
        again_at_bakery = await service.record_scan(customer_id, bakery_id, Decimal("3"))
        await session.commit()

    assert at_coffee.first_purchase_award is not None
    assert at_bakery.first_purchase_award is not None
    assert at_bakery.first_purchase_award.points_awarded == 5
    assert again_at_bakery.first_purchase_award is None
    assert await seed.balance(customer_id) == 10


@pytest.mark.asyncio
async def test_scan_without_rule_earns_nothing(session_factory, seed) -> None:
    customer_id = await seed.customer()
    business_id = await seed.business()

    async with session_factory() as session:
        result = await ActivityService(session).record_scan(customer_id, business_id, Decimal("0"))

    assert result.points_earned == 0
    assert result.first_purchase_award is None


@pytest.mark.asyncio
async def test_scan_validation(session_factory, seed) -> None:
    customer_id = await seed.customer()
    business_id = await seed.business()

    async with session_factory() as session:
        service = ActivityService(session)
        with pytest.raises(ValidationFailedError):
            await service.record_scan(customer_id, business_id, Decimal("-1"))
        with pytest.raises(NotFoundError, match="Business"):
            await service.record_scan(customer_id, uuid4(), Decimal("1"))


@pytest.mark.asyncio
async def test_check_in_awards_fixed_points(session_factory, seed) -> None:
    customer_id = await seed.customer(points=5)
    business_id = await seed.business()

    async with session_factory() as session:
        assert await ActivityService(session).record_check_in(customer_id, business_id) == CHECK_IN_POINTS
        await session.commit()

    assert await seed.balance(customer_id) == 5 + CHECK_IN_POINTS
