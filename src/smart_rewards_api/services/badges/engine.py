"""Badge awarding engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import ensure_utc, utcnow
from smart_rewards_api.models.badge import Badge, CustomerBadge
from smart_rewards_api.models.customer import Customer, CustomerBusinessRelation
from smart_rewards_api.models.mukando import MukandoContribution, MukandoGroup, MukandoMember
from smart_rewards_api.models.redemption import RedeemedOffer
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.models.user import User
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.errors import NotFoundError
from smart_rewards_api.services.points.ledger import credit_points

from .criteria import CustomerStats, evaluate_criteria
from .definitions import BADGE_DEFINITIONS


@dataclass
class BadgeStatus:
    badge: Badge
    earned: bool
    earned_at: datetime | None


@dataclass
class RetroactiveSummary:
    customers_processed: int
    badges_awarded: int
    failures: int


class BadgeEngine:
    """Evaluates badge criteria and awards badges (with their point rewards)."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_customer_stats(self, customer_id: UUID, *, now: datetime | None = None) -> CustomerStats:
        stmt = (
            select(Customer, User.created_at)
            .join(User, User.id == Customer.user_id)
            .where(Customer.user_id == customer_id)
        )
        row = (await self._db.execute(stmt)).one_or_none()
        if row is None:
            raise NotFoundError(f"Customer not found: {customer_id}")
        customer, registered_at = row

        reference = now or utcnow()
        account_age = max((reference - ensure_utc(registered_at)).days, 0)

        tx_count, points_earned = (
            await self._db.execute(
                select(func.count(Transaction.id), func.coalesce(func.sum(Transaction.points_earned), 0)).where(
                    Transaction.customer_id == customer_id
                )
            )
        ).one()
        contribution_count, contributed_points = (
            await self._db.execute(
                select(
                    func.count(MukandoContribution.id),
                    func.coalesce(func.sum(MukandoContribution.points_amount), 0),
                ).where(MukandoContribution.customer_id == customer_id)
            )
        ).one()

        return CustomerStats(
            customer_id=str(customer_id),
            total_transactions=int(tx_count),
            total_points_earned=int(points_earned),
            current_loyalty_points=customer.loyalty_points or 0,
            businesses_followed=await self._count(
                CustomerBusinessRelation.customer_id, CustomerBusinessRelation.customer_id == customer_id
            ),
            mukando_groups_joined=await self._count(MukandoMember.id, MukandoMember.customer_id == customer_id),
            mukando_groups_created=await self._count(MukandoGroup.id, MukandoGroup.creator_id == customer_id),
            offers_redeemed=await self._count(RedeemedOffer.id, RedeemedOffer.customer_id == customer_id),
            loyalty_tier=customer.loyalty_tier,
            account_age=account_age,
            mukando_contributions=int(contribution_count),
            total_mukando_points_contributed=int(contributed_points),
        )

    async def _count(self, column: Any, condition: Any) -> int:
        result = await self._db.execute(select(func.count(column)).where(condition))
        return int(result.scalar_one())

    async def list_customer_badges(self, customer_id: UUID) -> list[CustomerBadge]:
        stmt = (
            select(CustomerBadge)
            .options(selectinload(CustomerBadge.badge))
            .where(CustomerBadge.customer_id == customer_id)
            .order_by(CustomerBadge.earned_at.desc())
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def list_active_badges(self) -> list[Badge]:
        stmt = select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.category, Badge.points_reward)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def customer_badges(self, customer_id: UUID, *, include_available: bool = False) -> list[BadgeStatus]:
        """Earned badges first (newest first), then unearned active badges when requested."""

        earned = await self.list_customer_badges(customer_id)
        statuses = [BadgeStatus(badge=item.badge, earned=True, earned_at=item.earned_at) for item in earned]
        if include_available:
            earned_ids = {item.badge_id for item in earned}
            statuses.extend(
                BadgeStatus(badge=badge, earned=False, earned_at=None)
                for badge in await self.list_active_badges()
                if badge.id not in earned_ids
            )
        return statuses

    async def award_badge(self, customer_id: UUID, badge: Badge) -> bool:
        """Grant ``badge`` once; returns False when the customer already holds it."""

        existing = await self._db.execute(
            select(CustomerBadge.id).where(
                CustomerBadge.customer_id == customer_id,
                CustomerBadge.badge_id == badge.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return False

        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}")

        self._db.add(CustomerBadge(customer_id=customer_id, badge_id=badge.id))
        if badge.points_reward:
            credit_points(customer, badge.points_reward)
            self._db.add(
                Transaction(
                    customer_id=customer_id,
                    transaction_type=TransactionType.BADGE_EARNED,
                    points_earned=badge.points_reward,
                    transaction_amount=0,
                    description=f"Badge earned: {badge.name}",
                )
            )
        await self._db.flush()
        get_rewards_store().record_badge_awarded(badge.name)
        logger.info(
            "Awarded badge",
            customer_id=str(customer_id),
            badge=badge.name,
            points_reward=badge.points_reward,
        )
        return True

    async def check_and_award_badges(self, customer_id: UUID) -> list[str]:
        """Award every active badge whose criteria the customer now meets."""

        stats = await self.get_customer_stats(customer_id)
        held = {item.badge.name for item in await self.list_customer_badges(customer_id)}

        awarded: list[str] = []
        for badge in await self.list_active_badges():
            if badge.name in held:
                continue
            if evaluate_criteria(badge.criteria_json, stats) and await self.award_badge(customer_id, badge):
                awarded.append(badge.name)
        return awarded

    async def initialize_badges(self) -> int:
        """Upsert the built-in catalogue by badge name."""

        result = await self._db.execute(select(Badge))
        existing = {badge.name: badge for badge in result.scalars().all()}
        for definition in BADGE_DEFINITIONS:
            badge = existing.get(definition.name)
            if badge is None:
                badge = Badge(name=definition.name)
                self._db.add(badge)
            badge.description = definition.description
            badge.icon = definition.icon
            badge.category = definition.category
            badge.criteria_json = dict(definition.criteria)
            badge.points_reward = definition.points_reward
            badge.is_active = True
        await self._db.flush()
        logger.info("Initialized badge catalogue", badges=len(BADGE_DEFINITIONS))
        return len(BADGE_DEFINITIONS)

    async def award_retroactive_badges(self) -> RetroactiveSummary:
        """Run the badge check for every customer, committing per customer.

        A failing customer is rolled back and counted; the sweep continues.
        """

        result = await self._db.execute(select(Customer.user_id))
        customer_ids = list(result.scalars().all())

        awarded = 0
        failures = 0
        for customer_id in customer_ids:
            try:
                names = await self.check_and_award_badges(customer_id)
                await self._db.commit()
            except Exception as exc:
                await self._db.rollback()
                failures += 1
                logger.exception("Retroactive badge check failed", customer_id=str(customer_id), error=str(exc))
                continue
            awarded += len(names)
            if names:
                logger.info("Retroactive badges awarded", customer_id=str(customer_id), badges=names)

        summary = RetroactiveSummary(
            customers_processed=len(customer_ids),
            badges_awarded=awarded,
            failures=failures,
        )
        logger.bind(summary=summary.__dict__).info("Retroactive badge sweep completed")
        return summary
