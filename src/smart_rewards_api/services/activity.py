"""In-store earning: receipt scans and location check-ins."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.models.business import Business, LoyaltyRule, LoyaltyRuleType
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.services.errors import NotFoundError, ValidationFailedError
from smart_rewards_api.services.points.awards import PointsActivity, PointsAward, award_points
from smart_rewards_api.services.points.ledger import credit_points

CHECK_IN_POINTS = 10


@dataclass
class ScanResult:
    points_earned: int
    new_total: int
    first_purchase_award: PointsAward | None = None


def points_for_amount(rule_json: dict | None, amount: Decimal) -> int:
    """``floor(amount / rule.amount) * rule.points``; malformed rules earn nothing."""

    if not rule_json:
        return 0
    try:
        step = Decimal(str(rule_json["amount"]))
        per_step = int(rule_json["points"])
    except (KeyError, TypeError, ValueError, ArithmeticError):
        return 0
    if step <= 0 or per_step <= 0:
        return 0
    return math.floor(amount / step) * per_step


class ActivityService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def _load(self, customer_id: UUID, business_id: UUID) -> Customer:
        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        if await self._db.get(Business, business_id) is None:
            raise NotFoundError("Business not found")
        return customer

    async def record_scan(self, customer_id: UUID, business_id: UUID, transaction_amount: Decimal) -> ScanResult:
        amount = Decimal(str(transaction_amount))
        if amount < 0:
            raise ValidationFailedError("Transaction amount must be non-negative")
        customer = await self._load(customer_id, business_id)

        rule = (
            await self._db.execute(
                select(LoyaltyRule)
                .where(LoyaltyRule.business_id == business_id, LoyaltyRule.rule_type == LoyaltyRuleType.POINTS)
                .order_by(LoyaltyRule.created_at)
                .limit(1)
            )
        ).scalar_one_or_none()
        points = points_for_amount(rule.rule_json if rule else None, amount)

        prior_purchases = (
            await self._db.execute(
                select(func.count(Transaction.id)).where(
                    Transaction.customer_id == customer_id,
                    Transaction.business_id == business_id,
                    Transaction.transaction_type == TransactionType.EARN,
                    Transaction.transaction_amount > 0,
                )
            )
        ).scalar_one()

        credit_points(customer, points)
        self._db.add(
            Transaction(
                customer_id=customer_id,
                business_id=business_id,
                transaction_type=TransactionType.EARN,
                transaction_amount=amount,
                points_earned=points,
                description="Receipt scan",
            )
        )
        await self._db.flush()
        logger.info(
            "Recorded receipt scan",
            customer_id=str(customer_id),
            business_id=str(business_id),
            amount=str(amount),
            points=points,
        )

        bonus = None
        if prior_purchases == 0 and amount > 0:
            bonus = await award_points(self._db, customer_id, PointsActivity.FIRST_PURCHASE, business_id=business_id)
        return ScanResult(points_earned=points, new_total=customer.loyalty_points, first_purchase_award=bonus)

    async def record_check_in(self, customer_id: UUID, business_id: UUID) -> int:
        customer = await self._load(customer_id, business_id)
        credit_points(customer, CHECK_IN_POINTS)
        self._db.add(
            Transaction(
                customer_id=customer_id,
                business_id=business_id,
                transaction_type=TransactionType.CHECK_IN,
                transaction_amount=0,
                points_earned=CHECK_IN_POINTS,
                description="Check-in",
            )
        )
        await self._db.flush()
        logger.info("Recorded check-in", customer_id=str(customer_id), business_id=str(business_id))
        return CHECK_IN_POINTS
