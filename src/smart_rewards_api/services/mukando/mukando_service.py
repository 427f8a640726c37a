"""Mukando rotating-savings group lifecycle."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.core.settings import settings
from smart_rewards_api.models.business import Business
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.mukando import (
    ContributionInterval,
    MukandoContribution,
    MukandoGroup,
    MukandoGroupStatus,
    MukandoMember,
)
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.errors import (
    InsufficientPointsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from smart_rewards_api.services.points.awards import PointsActivity, PointsAward, award_points
from smart_rewards_api.services.points.ledger import credit_points, debit_points

LOYALTY_POINTS_RATE = 0.1


@dataclass
class GroupRequest:
    business_id: UUID
    goal_name: str
    goal_points_required: int
    contribution_interval: str
    term_length: int
    description: str | None = None


@dataclass
class JoinResult:
    membership: MukandoMember
    group: MukandoGroup
    award: PointsAward


@dataclass
class ContributionResult:
    contribution: MukandoContribution
    group: MukandoGroup
    loyalty_points_earned: int
    remaining_points: int
    progress_percentage: int


@dataclass
class PayoutRecord:
    group_id: UUID
    group_name: str
    recipient_id: UUID | None = None
    recipient_name: str | None = None
    points_distributed: int = 0
    payout_turn: int = 0
    is_completed: bool = False
    error: str | None = None


@dataclass
class DistributionSummary:
    processed: int = 0
    distributions: list[PayoutRecord] = field(default_factory=list)
    errors: list[PayoutRecord] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "distributions": len(self.distributions),
            "errors": len(self.errors),
        }


@dataclass
class CustomerGroupView:
    group: MukandoGroup
    is_creator: bool
    is_member: bool
    customer_contribution: int
    payout_order: int | None


def progress_percentage(group: MukandoGroup) -> int:
    if not group.goal_points_required:
        return 0
    return round((group.total_mukando_points or 0) / group.goal_points_required * 100)


def spots_remaining(group: MukandoGroup) -> int | None:
    if not group.max_members:
        return None
    return max(group.max_members - len(group.members), 0)


class MukandoService:
    """Request, approve, join, contribute to, and pay out Mukando groups."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_group(self, group_id: UUID) -> MukandoGroup | None:
        stmt = (
            select(MukandoGroup)
            .options(
                selectinload(MukandoGroup.members).selectinload(MukandoMember.customer),
                selectinload(MukandoGroup.business),
                selectinload(MukandoGroup.creator),
            )
            .where(MukandoGroup.id == group_id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_request(self, creator_id: UUID, request: GroupRequest) -> MukandoGroup:
        goal_name = (request.goal_name or "").strip()
        if not goal_name:
            raise ValidationFailedError("Goal name is required")
        if request.goal_points_required is None or request.goal_points_required <= 0:
            raise ValidationFailedError("Goal points must be greater than zero")
        try:
            interval = ContributionInterval(request.contribution_interval)
        except ValueError as error:
            raise ValidationFailedError("Contribution interval must be weekly or monthly") from error
        if request.term_length is None or request.term_length < 1:
            raise ValidationFailedError("Term length must be at least 1")

        if await self._db.get(Business, request.business_id) is None:
            raise NotFoundError("Business not found")
        if await self._db.get(Customer, creator_id) is None:
            raise NotFoundError("Customer not found")

        group = MukandoGroup(
            creator_id=creator_id,
            business_id=request.business_id,
            goal_name=goal_name,
            description=request.description,
            goal_points_required=request.goal_points_required,
            contribution_interval=interval,
            term_length=request.term_length,
            status=MukandoGroupStatus.PENDING_APPROVAL,
        )
        self._db.add(group)
        await self._db.flush()
        get_rewards_store().record_mukando_event("requested")
        logger.info(
            "Mukando group requested",
            group_id=str(group.id),
            creator_id=str(creator_id),
            business_id=str(request.business_id),
        )
        return await self.get_group(group.id)

    async def approve(
        self,
        business_id: UUID,
        group_id: UUID,
        *,
        max_members: int,
        discount_rate: float,
    ) -> MukandoGroup:
        if max_members is None or max_members < 2:
            raise ValidationFailedError("A group needs room for at least 2 members")
        if discount_rate is None or not 0 <= discount_rate <= 100:
            raise ValidationFailedError("Discount rate must be between 0 and 100")

        group = await self.get_group(group_id)
        if group is None:
            raise NotFoundError("Mukando group not found")
        if group.business_id != business_id:
            raise PermissionDeniedError("This group does not belong to your business")
        if group.status != MukandoGroupStatus.PENDING_APPROVAL:
            raise ValidationFailedError("Group is not pending approval")

        group.status = MukandoGroupStatus.APPROVED
        group.max_members = max_members
        group.discount_rate = discount_rate
        group.approved_at = utcnow()
        if not any(member.customer_id == group.creator_id for member in group.members):
            self._db.add(MukandoMember(group_id=group.id, customer_id=group.creator_id, payout_order=1))
        await self._db.flush()
        get_rewards_store().record_mukando_event("approved")
        logger.info("Mukando group approved", group_id=str(group.id), business_id=str(business_id))
        return await self.get_group(group.id)

    async def join(self, customer_id: UUID, group_id: UUID) -> JoinResult:
        if await self._db.get(Customer, customer_id) is None:
            raise PermissionDeniedError("Access denied. Customer account required.")
        group = await self.get_group(group_id)
        if group is None:
            raise NotFoundError("Mukando group not found")
        if group.status != MukandoGroupStatus.APPROVED:
            raise ValidationFailedError("Group is not approved yet")
        if any(member.customer_id == customer_id for member in group.members):
            raise ValidationFailedError("You are already a member of this group")
        if group.max_members and len(group.members) >= group.max_members:
            raise ValidationFailedError("Group is full")

        membership = MukandoMember(
            group_id=group.id,
            customer_id=customer_id,
            payout_order=len(group.members) + 1,
        )
        self._db.add(membership)
        await self._db.flush()
        get_rewards_store().record_mukando_event("joined")
        logger.info(
            "Customer joined Mukando group",
            group_id=str(group.id),
            customer_id=str(customer_id),
            payout_order=membership.payout_order,
        )
        award = await award_points(
            self._db,
            customer_id,
            PointsActivity.JOIN_MUKANDO,
            business_id=group.business_id,
        )
        return JoinResult(membership=membership, group=await self.get_group(group.id), award=award)

    async def contribute(self, customer_id: UUID, group_id: UUID, points_amount: int) -> ContributionResult:
        if points_amount is None or points_amount <= 0:
            raise ValidationFailedError("Contribution must be a positive number of points")

        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        if (customer.loyalty_points or 0) < points_amount:
            raise InsufficientPointsError(
                current_points=customer.loyalty_points or 0,
                required_points=points_amount,
                message="Insufficient loyalty points",
            )

        group = await self.get_group(group_id)
        if group is None:
            raise NotFoundError("Mukando group not found")
        if group.status != MukandoGroupStatus.APPROVED:
            raise ValidationFailedError("Group is not approved")
        membership = next((member for member in group.members if member.customer_id == customer_id), None)
        if membership is None:
            raise PermissionDeniedError("You are not a member of this group")

        loyalty_earned = math.floor(points_amount * LOYALTY_POINTS_RATE)
        remaining = debit_points(customer, points_amount)
        group.total_mukando_points = (group.total_mukando_points or 0) + points_amount
        group.total_loyalty_points_earned = (group.total_loyalty_points_earned or 0) + loyalty_earned
        membership.points_contributed = (membership.points_contributed or 0) + points_amount

        contribution = MukandoContribution(
            group_id=group.id,
            customer_id=customer_id,
            points_amount=points_amount,
            loyalty_points_awarded=loyalty_earned,
        )
        self._db.add_all(
            [
                contribution,
                Transaction(
                    customer_id=customer_id,
                    business_id=group.business_id,
                    transaction_type=TransactionType.MUKANDO_CONTRIBUTION,
                    points_deducted=points_amount,
                    transaction_amount=0,
                    mukando_group_id=group.id,
                    loyalty_points_awarded=loyalty_earned,
                    description=f"Mukando contribution to {group.goal_name}",
                ),
            ]
        )
        await self._db.flush()
        get_rewards_store().record_mukando_event("contributions")
        get_rewards_store().record_mukando_event("points_contributed", points_amount)
        logger.info(
            "Mukando contribution recorded",
            group_id=str(group.id),
            customer_id=str(customer_id),
            points=points_amount,
            loyalty_points_earned=loyalty_earned,
        )
        return ContributionResult(
            contribution=contribution,
            group=group,
            loyalty_points_earned=loyalty_earned,
            remaining_points=remaining,
            progress_percentage=progress_percentage(group),
        )

    async def distribute_rewards(self, *, now: datetime | None = None) -> DistributionSummary:
        """Pay each eligible group's pooled loyalty points to the member whose turn it is.

        Eligible groups are approved, at least ``mukando_payout_min_age_days`` old
        and have members. The recipient is ``members[turn % len(members)]`` in
        payout order; the group completes once every member has been paid.
        """

        cutoff = (now or utcnow()) - timedelta(days=settings.mukando_payout_min_age_days)
        stmt = (
            select(MukandoGroup)
            .options(selectinload(MukandoGroup.members).selectinload(MukandoMember.customer))
            .where(
                MukandoGroup.status == MukandoGroupStatus.APPROVED,
                MukandoGroup.created_at <= cutoff,
            )
            .order_by(MukandoGroup.created_at)
        )
        groups = list((await self._db.execute(stmt)).scalars().all())

        summary = DistributionSummary()
        for group in groups:
            if not group.members:
                continue
            group_id, group_name = group.id, group.goal_name
            customers = [member.customer for member in group.members if member.customer is not None]
            try:
                async with self._db.begin_nested():
                    record = self._pay_out(group)
                    await self._db.flush()
            except Exception as exc:
                logger.exception("Mukando payout failed", group_id=str(group_id), error=str(exc))
                summary.errors.append(PayoutRecord(group_id=group_id, group_name=group_name, error=str(exc)))
                # The savepoint rollback expires credited members shared with later groups.
                for customer in customers:
                    await self._db.refresh(customer)
                continue
            summary.distributions.append(record)
        summary.processed = len(summary.distributions) + len(summary.errors)

        store = get_rewards_store()
        store.record_mukando_event("payouts", len(summary.distributions))
        store.record_mukando_event("payout_errors", len(summary.errors))
        logger.bind(summary=summary.as_dict()).info("Mukando reward distribution completed")
        return summary

    def _pay_out(self, group: MukandoGroup) -> PayoutRecord:
        members = sorted(group.members, key=lambda member: member.payout_order)
        turn = group.current_payout_turn or 0
        recipient = members[turn % len(members)]
        points = group.total_loyalty_points_earned or 0

        credit_points(recipient.customer, points)
        self._db.add(
            Transaction(
                customer_id=recipient.customer_id,
                business_id=group.business_id,
                transaction_type=TransactionType.MUKANDO_PAYOUT,
                points_earned=points,
                transaction_amount=0,
                mukando_group_id=group.id,
                description=f"Mukando payout from {group.goal_name}",
            )
        )

        completed = turn + 1 >= len(members)
        group.current_payout_turn = turn + 1
        group.total_loyalty_points_earned = 0
        if completed:
            group.status = MukandoGroupStatus.COMPLETED
            group.completed_at = utcnow()

        logger.info(
            "Mukando payout issued",
            group_id=str(group.id),
            recipient_id=str(recipient.customer_id),
            points=points,
            payout_turn=turn + 1,
            completed=completed,
        )
        return PayoutRecord(
            group_id=group.id,
            group_name=group.goal_name,
            recipient_id=recipient.customer_id,
            recipient_name=recipient.customer.full_name,
            points_distributed=points,
            payout_turn=turn + 1,
            is_completed=completed,
        )

    async def pending_distributions(self) -> list[MukandoGroup]:
        stmt = (
            select(MukandoGroup)
            .options(
                selectinload(MukandoGroup.members).selectinload(MukandoMember.customer),
                selectinload(MukandoGroup.business),
            )
            .where(
                MukandoGroup.status == MukandoGroupStatus.APPROVED,
                MukandoGroup.total_loyalty_points_earned > 0,
            )
            .order_by(MukandoGroup.created_at)
        )
        return list((await self._db.execute(stmt)).scalars().all())

    async def business_groups(self, business_id: UUID, *, status: MukandoGroupStatus | None = None) -> list[MukandoGroup]:
        stmt = (
            select(MukandoGroup)
            .options(
                selectinload(MukandoGroup.members).selectinload(MukandoMember.customer),
                selectinload(MukandoGroup.business),
                selectinload(MukandoGroup.creator),
            )
            .where(MukandoGroup.business_id == business_id)
            .order_by(MukandoGroup.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(MukandoGroup.status == status)
        return list((await self._db.execute(stmt)).scalars().all())

    async def customer_groups(
        self, customer_id: UUID, *, status: MukandoGroupStatus | None = None
    ) -> list[CustomerGroupView]:
        member_group_ids = select(MukandoMember.group_id).where(MukandoMember.customer_id == customer_id)
        stmt = (
            select(MukandoGroup)
            .options(
                selectinload(MukandoGroup.members).selectinload(MukandoMember.customer),
                selectinload(MukandoGroup.business),
                selectinload(MukandoGroup.creator),
            )
            .where(
                (MukandoGroup.creator_id == customer_id) | MukandoGroup.id.in_(member_group_ids)
            )
            .order_by(MukandoGroup.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(MukandoGroup.status == status)
        views: list[CustomerGroupView] = []
        for group in (await self._db.execute(stmt)).scalars().all():
            membership = next((member for member in group.members if member.customer_id == customer_id), None)
            views.append(
                CustomerGroupView(
                    group=group,
                    is_creator=group.creator_id == customer_id,
                    is_member=membership is not None,
                    customer_contribution=membership.points_contributed if membership else 0,
                    payout_order=membership.payout_order if membership else None,
                )
            )
        return views

    async def available_groups(self, customer_id: UUID, *, business_id: UUID | None = None) -> list[MukandoGroup]:
        """Approved groups the customer has not joined and that still have room."""

        member_group_ids = select(MukandoMember.group_id).where(MukandoMember.customer_id == customer_id)
        stmt = (
            select(MukandoGroup)
            .options(
                selectinload(MukandoGroup.members).selectinload(MukandoMember.customer),
                selectinload(MukandoGroup.business),
                selectinload(MukandoGroup.creator),
            )
            .where(
                MukandoGroup.status == MukandoGroupStatus.APPROVED,
                MukandoGroup.id.not_in(member_group_ids),
            )
            .order_by(MukandoGroup.created_at.desc())
        )
        if business_id is not None:
            stmt = stmt.where(MukandoGroup.business_id == business_id)
        groups = (await self._db.execute(stmt)).scalars().all()
        return [group for group in groups if not group.max_members or len(group.members) < group.max_members]
