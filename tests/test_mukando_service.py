from datetime import timedelta

import pytest
from sqlalchemy import select

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.models.mukando import MukandoGroupStatus
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.errors import (
    InsufficientPointsError,
    PermissionDeniedError,
    ValidationFailedError,
)
from smart_rewards_api.services.mukando import GroupRequest, MukandoService


def _request(business_id, **overrides) -> GroupRequest:
    fields = {
        "business_id": business_id,
        "goal_name": "December groceries",
        "goal_points_required": 1000,
        "contribution_interval": "monthly",
        "term_length": 6,
    }
    fields.update(overrides)
    return GroupRequest(**fields)


async def _approved_group(session_factory, seed, *, max_members: int = 5):
    creator = await seed.customer("creator@example.com", points=1000, name="Creator")
    business = await seed.business()
    async with session_factory() as session:
        service = MukandoService(session)
        group = await service.create_request(creator, _request(business))
        group = await service.approve(business, group.id, max_members=max_members, discount_rate=10)
        await session.commit()
    return creator, business, group.id


@pytest.mark.asyncio
async def test_request_starts_pending_and_approval_enrols_creator(session_factory, seed) -> None:
    creator = await seed.customer(points=100)
    business = await seed.business()

    async with session_factory() as session:
        service = MukandoService(session)
        group = await service.create_request(creator, _request(business))
        assert group.status == MukandoGroupStatus.PENDING_APPROVAL
        assert group.members == []

        approved = await service.approve(business, group.id, max_members=4, discount_rate=12.5)
        assert approved.status == MukandoGroupStatus.APPROVED
        assert approved.max_members == 4
        assert approved.discount_rate == 12.5
        assert approved.approved_at is not None
        assert [(m.customer_id, m.payout_order) for m in approved.members] == [(creator, 1)]

        with pytest.raises(ValidationFailedError, match="not pending"):
            await service.approve(business, group.id, max_members=4, discount_rate=5)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"goal_name": "  "}, "Goal name"),
        ({"goal_points_required": 0}, "Goal points"),
        ({"contribution_interval": "daily"}, "weekly or monthly"),
        ({"term_length": 0}, "Term length"),
    ],
)
async def test_request_validation(session_factory, seed, overrides, message) -> None:
    creator = await seed.customer()
    business = await seed.business()

    async with session_factory() as session:
        with pytest.raises(ValidationFailedError, match=message):
            await MukandoService(session).create_request(creator, _request(business, **overrides))


@pytest.mark.asyncio
async def test_only_hosting_business_may_approve(session_factory, seed) -> None:
    creator = await seed.customer()
    business = await seed.business()
    stranger = await seed.business("stranger@example.com", name="Stranger")

    async with session_factory() as session:
        service = MukandoService(session)
        group = await service.create_request(creator, _request(business))
        with pytest.raises(PermissionDeniedError):
            await service.approve(stranger, group.id, max_members=3, discount_rate=5)
        with pytest.raises(ValidationFailedError):
            await service.approve(business, group.id, max_members=1, discount_rate=5)
        with pytest.raises(ValidationFailedError):
            await service.approve(business, group.id, max_members=3, discount_rate=120)


@pytest.mark.asyncio
async def test_join_assigns_payout_order_and_awards_points(session_factory, seed) -> None:
    _, business, group_id = await _approved_group(session_factory, seed, max_members=2)
    member = await seed.customer("member@example.com")
    latecomer = await seed.customer("late@example.com")

    async with session_factory() as session:
        service = MukandoService(session)
        result = await service.join(member, group_id)
        await session.commit()

        assert result.membership.payout_order == 2
        assert result.award.points_awarded == 1
        assert len(result.group.members) == 2

        with pytest.raises(ValidationFailedError, match="already a member"):
            await service.join(member, group_id)
        with pytest.raises(ValidationFailedError, match="full"):
            await service.join(latecomer, group_id)

    assert await seed.balance(member) == 1
    assert get_rewards_store().snapshot().mukando["joined"] == 1


@pytest.mark.asyncio
async def test_contribution_moves_points_into_pool(session_factory, seed) -> None:
    creator, business, group_id = await _approved_group(session_factory, seed)

    async with session_factory() as session:
        result = await MukandoService(session).contribute(creator, group_id, 210)
        await session.commit()

        assert result.loyalty_points_earned == 21
        assert result.remaining_points == 790
        assert result.progress_percentage == 21
        assert result.group.total_mukando_points == 210
        assert result.group.total_loyalty_points_earned == 21
        assert result.group.members[0].points_contributed == 210

        tx = (
            await session.execute(
                select(Transaction).where(Transaction.transaction_type == TransactionType.MUKANDO_CONTRIBUTION)
            )
        ).scalars().one()
        assert tx.points_deducted == 210
        assert tx.mukando_group_id == group_id


@pytest.mark.asyncio
async def test_contribution_rules(session_factory, seed) -> None:
    creator, _, group_id = await _approved_group(session_factory, seed)
    outsider = await seed.customer("outsider@example.com", points=500)

    async with session_factory() as session:
        service = MukandoService(session)
        with pytest.raises(ValidationFailedError):
            await service.contribute(creator, group_id, 0)
        with pytest.raises(InsufficientPointsError) as excinfo:
            await service.contribute(creator, group_id, 5000)
        assert excinfo.value.detail["message"] == "Insufficient loyalty points"
        with pytest.raises(PermissionDeniedError):
            await service.contribute(outsider, group_id, 10)


@pytest.mark.asyncio
async def test_distribution_rotates_through_members(session_factory, seed) -> None:
    creator, _, group_id = await _approved_group(session_factory, seed)
    member = await seed.customer("member@example.com", points=300)

    async with session_factory() as session:
        service = MukandoService(session)
        await service.join(member, group_id)
        await service.contribute(creator, group_id, 500)
        await session.commit()

    later = utcnow() + timedelta(days=31)
    async with session_factory() as session:
        first = await MukandoService(session).distribute_rewards(now=later)
        await session.commit()

    assert first.processed == 1
    payout = first.distributions[0]
    assert payout.recipient_id == creator
    assert payout.points_distributed == 50
    assert payout.payout_turn == 1
    assert payout.is_completed is False
    assert await seed.balance(creator) == 550

    async with session_factory() as session:
        service = MukandoService(session)
        await service.contribute(member, group_id, 100)
        second = await service.distribute_rewards(now=later)
        await session.commit()
        group = await service.get_group(group_id)

    assert second.distributions[0].recipient_id == member
    assert second.distributions[0].points_distributed == 10
    assert second.distributions[0].is_completed is True
    assert group.status == MukandoGroupStatus.COMPLETED
    assert group.completed_at is not None


@pytest.mark.asyncio
async def test_failed_group_payout_is_rolled_back_and_sweep_continues(session_factory, seed, monkeypatch) -> None:
    creator, business, broken_id = await _approved_group(session_factory, seed)

    async with session_factory() as session:
        service = MukandoService(session)
        healthy = await service.create_request(creator, _request(business, goal_name="School fees"))
        healthy = await service.approve(business, healthy.id, max_members=5, discount_rate=10)
        healthy_id = healthy.id
        await service.contribute(creator, broken_id, 100)
        await service.contribute(creator, healthy_id, 200)
        await session.commit()
    balance_before = await seed.balance(creator)

    pay_out = MukandoService._pay_out

    def pay_out_with_orphan_row(self, group):
        record = pay_out(self, group)
        if group.id == broken_id:
            self._db.add(Transaction(customer_id=None, transaction_type=TransactionType.MUKANDO_PAYOUT))
        return record

    monkeypatch.setattr(MukandoService, "_pay_out", pay_out_with_orphan_row)

    later = utcnow() + timedelta(days=31)
    async with session_factory() as session:
        summary = await MukandoService(session).distribute_rewards(now=later)
        await session.commit()

    assert [record.group_id for record in summary.errors] == [broken_id]
    assert [record.group_id for record in summary.distributions] == [healthy_id]
    assert summary.distributions[0].points_distributed == 20
    assert await seed.balance(creator) == balance_before + 20

    async with session_factory() as session:
        broken = await MukandoService(session).get_group(broken_id)
    assert (broken.current_payout_turn or 0) == 0
    assert broken.total_loyalty_points_earned == 10


@pytest.mark.asyncio
async def test_young_groups_are_not_paid(session_factory, seed) -> None:
    creator, _, group_id = await _approved_group(session_factory, seed)

    async with session_factory() as session:
        await MukandoService(session).contribute(creator, group_id, 100)
        summary = await MukandoService(session).distribute_rewards()

    assert summary.processed == 0
    assert summary.as_dict() == {"processed": 0, "distributions": 0, "errors": 0}


@pytest.mark.asyncio
async def test_customer_views_and_available_groups(session_factory, seed) -> None:
    creator, business, group_id = await _approved_group(session_factory, seed)
    browser = await seed.customer("browser@example.com")

    async with session_factory() as session:
        service = MukandoService(session)
        views = await service.customer_groups(creator)
        available = await service.available_groups(browser, business_id=business)
        hosted = await service.business_groups(business, status=MukandoGroupStatus.APPROVED)
        pending = await service.business_groups(business, status=MukandoGroupStatus.PENDING_APPROVAL)

    assert len(views) == 1
    assert views[0].is_creator is True
    assert views[0].is_member is True
    assert views[0].payout_order == 1
    assert [group.id for group in available] == [group_id]
    assert [group.id for group in hosted] == [group_id]
    assert pending == []

    async with session_factory() as session:
        assert await MukandoService(session).available_groups(creator) == []
