"""Activity point awards followed by badge evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.badges import BadgeEngine
from smart_rewards_api.services.errors import NotFoundError

from .ledger import credit_points


class PointsActivity(str, Enum):
    SIGNUP = "signup"
    FOLLOW_BUSINESS = "follow_business"
    JOIN_MUKANDO = "join_mukando"
    FIRST_PURCHASE = "first_purchase"
    REFERRAL = "referral"


@dataclass(frozen=True)
class PointsReward:
    points: int
    description: str


POINTS_REWARDS: dict[PointsActivity, PointsReward] = {
    PointsActivity.SIGNUP: PointsReward(2, "Welcome bonus for joining the platform"),
    PointsActivity.FOLLOW_BUSINESS: PointsReward(1, "Following a new business"),
    PointsActivity.JOIN_MUKANDO: PointsReward(1, "Joining a Mukando group"),
    PointsActivity.FIRST_PURCHASE: PointsReward(5, "Making your first purchase at a business"),
    PointsActivity.REFERRAL: PointsReward(3, "Referring a friend to the platform"),
}

_TRANSACTION_TYPES = {
    PointsActivity.FOLLOW_BUSINESS: TransactionType.FOLLOW_BONUS,
}


@dataclass
class PointsAward:
    points_awarded: int
    new_total: int
    activity: str
    description: str
    badges_awarded: list[str]


async def award_points(
    session: AsyncSession,
    customer_id: UUID,
    activity: PointsActivity,
    *,
    business_id: UUID | None = None,
    points: int | None = None,
    description: str | None = None,
) -> PointsAward:
    """Credit an activity reward and run the badge check.

    A ledger transaction is written only for business-related activity. Badge
    failures are logged and never fail the award.
    """

    reward = POINTS_REWARDS[activity]
    amount = reward.points if points is None else points
    note = description or reward.description

    customer = await session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer not found: {customer_id}")

    new_total = credit_points(customer, amount)
    if business_id is not None:
        session.add(
            Transaction(
                customer_id=customer_id,
                business_id=business_id,
                transaction_type=_TRANSACTION_TYPES.get(activity, TransactionType.EARN),
                points_earned=amount,
                transaction_amount=0,
                description=note,
            )
        )
    await session.flush()
    get_rewards_store().record_points_awarded(activity.value, amount)
    logger.info(
        "Awarded activity points",
        customer_id=str(customer_id),
        activity=activity.value,
        points=amount,
        new_total=new_total,
    )

    badges: list[str] = []
    try:
        badges = await BadgeEngine(session).check_and_award_badges(customer_id)
    except Exception as exc:
        get_rewards_store().record_badge_check_failure()
        logger.exception("Badge check failed after points award", customer_id=str(customer_id), error=str(exc))
    else:
        if badges:
            logger.info("New badges earned", customer_id=str(customer_id), badges=badges)

    return PointsAward(
        points_awarded=amount,
        new_total=customer.loyalty_points,
        activity=activity.value,
        description=note,
        badges_awarded=badges,
    )
