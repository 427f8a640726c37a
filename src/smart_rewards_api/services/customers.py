"""Customer wallet, preferences, history, notifications and follows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.models.business import Business, Offer
from smart_rewards_api.models.customer import Customer, CustomerBusinessRelation
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.models.user import User
from smart_rewards_api.services.errors import NotFoundError, ValidationFailedError
from smart_rewards_api.services.points import format_points_as_currency, next_tier
from smart_rewards_api.services.points.awards import PointsActivity, PointsAward, award_points

TRANSACTION_HISTORY_LIMIT = 50


@dataclass
class HistoryEntry:
    id: UUID
    type: str
    description: str
    amount: str
    points: int
    date: str
    business_name: str | None


@dataclass
class Notification:
    id: str
    icon: str
    title: str
    description: str
    type: str
    created_at: datetime


def format_transaction(tx: Transaction) -> HistoryEntry:
    """Describe a ledger row the way the wallet screen shows it."""

    business_name = tx.business.business_name if tx.business else None
    earned = tx.points_earned or 0
    deducted = tx.points_deducted or 0
    where = business_name or "Unknown Business"

    if tx.transaction_type == TransactionType.REDEMPTION:
        kind, description, amount = "redeem", f"Offer redeemed at {where}", f"-{deducted} pts"
    elif tx.transaction_type == TransactionType.MUKANDO_CONTRIBUTION:
        kind, description, amount = "redeem", f"Mukando contribution at {where}", f"-{deducted} pts"
    elif tx.transaction_type == TransactionType.MUKANDO_PAYOUT:
        kind = "earn"
        description = f"Mukando payout from {where}"
        amount = f"+{earned} pts ({format_points_as_currency(earned)})"
    elif tx.transaction_type == TransactionType.BADGE_EARNED:
        kind = "earn"
        description = tx.description or "Badge reward"
        amount = f"+{earned} pts ({format_points_as_currency(earned)})"
    elif deducted and not earned:
        kind, description, amount = "redeem", tx.description or f"Points deducted at {where}", f"-{deducted} pts"
    else:
        kind = "earn"
        description = f"Points earned at {business_name}" if business_name else "Welcome bonus points"
        amount = f"+{earned} pts ({format_points_as_currency(earned)})"

    return HistoryEntry(
        id=tx.id,
        type=kind,
        description=description,
        amount=amount,
        points=earned if earned else -deducted,
        date=tx.created_at.date().isoformat(),
        business_name=business_name,
    )


class CustomerService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_or_create_profile(self, user: User) -> Customer:
        """Return the customer row, creating an empty wallet for customer accounts that lack one."""

        customer = await self._db.get(Customer, user.id)
        if customer is not None:
            return customer
        if not user.is_customer:
            raise ValidationFailedError("User is not a customer")
        customer = Customer(user_id=user.id, full_name="", interests=[])
        self._db.add(customer)
        await self._db.flush()
        logger.info("Created missing customer profile", user_id=str(user.id))
        return customer

    async def update_preferences(self, user: User, interests: list[str]) -> Customer:
        if not isinstance(interests, list) or not all(isinstance(item, str) for item in interests):
            raise ValidationFailedError("Interests must be a list of strings")
        customer = await self.get_or_create_profile(user)
        customer.interests = [item.strip() for item in interests if item.strip()]
        await self._db.flush()
        return customer

    async def transaction_history(self, customer_id: UUID, *, limit: int = TRANSACTION_HISTORY_LIMIT) -> list[HistoryEntry]:
        stmt = (
            select(Transaction)
            .options(selectinload(Transaction.business))
            .where(Transaction.customer_id == customer_id)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
        )
        result = await self._db.execute(stmt)
        return [format_transaction(tx) for tx in result.scalars().all()]

    async def notifications(self, customer_id: UUID, *, now: datetime | None = None) -> list[Notification]:
        """Notifications derived from wallet state and the latest offers."""

        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        moment = now or utcnow()
        items: list[Notification] = []

        upcoming = next_tier(customer.loyalty_points or 0)
        if upcoming is not None and upcoming[1] <= 100:
            tier_name, needed = upcoming
            items.append(
                Notification(
                    id=f"tier_progress_{tier_name.lower()}",
                    icon="Award",
                    title=f"Almost {tier_name}!",
                    description=f"Earn {needed} more points to reach {tier_name} tier.",
                    type="tier_upgrade",
                    created_at=moment - timedelta(hours=2),
                )
            )

        offers = await self._db.execute(
            select(Offer).options(selectinload(Offer.business)).order_by(Offer.created_at.desc()).limit(3)
        )
        for index, offer in enumerate(offers.scalars().all()):
            text = offer.description or ""
            items.append(
                Notification(
                    id=f"offer_{offer.id}",
                    icon="Gift",
                    title=f"New Offer from {offer.business.business_name if offer.business else 'Business'}",
                    description=text[:100] + ("..." if len(text) > 100 else ""),
                    type="offer",
                    created_at=moment - timedelta(days=index + 1),
                )
            )

        if (customer.loyalty_points or 0) > 0:
            items.append(
                Notification(
                    id="points_reminder",
                    icon="Clock",
                    title="Points Activity Reminder",
                    description=(
                        f"You have {customer.loyalty_points} points. Keep earning to maintain your tier status!"
                    ),
                    type="reminder",
                    created_at=moment - timedelta(days=3),
                )
            )

        if not items:
            items.append(
                Notification(
                    id="welcome",
                    icon="Award",
                    title="Welcome to Smart Rewards!",
                    description="Start earning points by shopping at partner businesses and scanning receipts.",
                    type="welcome",
                    created_at=moment - timedelta(days=7),
                )
            )
        return items

    async def follow(self, customer_id: UUID, business_id: UUID) -> PointsAward:
        if await self._db.get(Business, business_id) is None:
            raise NotFoundError("Business not found")
        if await self._db.get(CustomerBusinessRelation, (customer_id, business_id)) is not None:
            raise ValidationFailedError("Already following this business")
        self._db.add(CustomerBusinessRelation(customer_id=customer_id, business_id=business_id))
        await self._db.flush()
        logger.info("Customer followed business", customer_id=str(customer_id), business_id=str(business_id))
        return await award_points(self._db, customer_id, PointsActivity.FOLLOW_BUSINESS, business_id=business_id)

    async def unfollow(self, customer_id: UUID, business_id: UUID) -> None:
        relation = await self._db.get(CustomerBusinessRelation, (customer_id, business_id))
        if relation is None:
            raise NotFoundError("Not following this business")
        await self._db.delete(relation)
        await self._db.flush()
        logger.info("Customer unfollowed business", customer_id=str(customer_id), business_id=str(business_id))

    async def followed_business_ids(self, customer_id: UUID) -> set[UUID]:
        result = await self._db.execute(
            select(CustomerBusinessRelation.business_id).where(CustomerBusinessRelation.customer_id == customer_id)
        )
        return set(result.scalars().all())
