from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import ensure_utc, utcnow
from smart_rewards_api.models.business import Offer
from smart_rewards_api.models.customer import Customer, CustomerBusinessRelation
from smart_rewards_api.models.mukando import MukandoGroup, MukandoGroupStatus
from smart_rewards_api.models.redemption import RedeemedOffer
from smart_rewards_api.models.transaction import Transaction


def _percentage(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class BusinessMetricsCalculator:
    """Aggregate loyalty programme performance for one business.

    A business's customers are its followers plus anyone who has transacted
    with it. Rates are percentages rounded to two decimals.
    """

    def __init__(self, session: AsyncSession, business_id: UUID, *, now: datetime | None = None) -> None:
        self._session = session
        self._business_id = business_id
        self._now = now or utcnow()
        self._customers: List[Customer] | None = None
        self._transactions: List[Transaction] | None = None

    async def customers(self) -> List[Customer]:
        if self._customers is None:
            followers = select(CustomerBusinessRelation.customer_id).where(
                CustomerBusinessRelation.business_id == self._business_id
            )
            transacting = select(Transaction.customer_id).where(Transaction.business_id == self._business_id)
            result = await self._session.execute(
                select(Customer)
                .options(selectinload(Customer.user))
                .where(or_(Customer.user_id.in_(followers), Customer.user_id.in_(transacting)))
            )
            self._customers = list(result.scalars().all())
        return self._customers

    async def transactions(self) -> List[Transaction]:
        if self._transactions is None:
            result = await self._session.execute(
                select(Transaction)
                .where(Transaction.business_id == self._business_id)
                .order_by(Transaction.created_at.desc())
            )
            self._transactions = list(result.scalars().all())
        return self._transactions

    async def calculate(self) -> Dict[str, Any]:
        customers = await self.customers()
        transactions = await self.transactions()
        now = self._now
        month_start = _month_start(now)
        last_month_start = _month_start(month_start - timedelta(days=1))

        joined = {c.user_id: ensure_utc(c.user.created_at if c.user else c.created_at) for c in customers}
        new_this_month = sum(1 for moment in joined.values() if moment >= month_start)
        new_last_month = sum(1 for moment in joined.values() if last_month_start <= moment < month_start)
        if new_last_month:
            growth_rate = round((new_this_month - new_last_month) / new_last_month * 100, 2)
        else:
            growth_rate = 100.0 if new_this_month else 0.0

        def active_since(start: datetime, end: datetime | None = None) -> set[UUID]:
            return {
                tx.customer_id
                for tx in transactions
                if ensure_utc(tx.created_at) >= start and (end is None or ensure_utc(tx.created_at) < end)
            }

        total_value = sum(float(tx.transaction_amount or 0) for tx in transactions)
        points_earned = sum(tx.points_earned or 0 for tx in transactions)
        points_redeemed = sum(tx.points_deducted or 0 for tx in transactions)

        recent = active_since(now - timedelta(days=30))
        earlier = active_since(now - timedelta(days=90), now - timedelta(days=30))
        retained = earlier & recent
        retention_rate = _percentage(len(retained), len(earlier))
        churn_rate = round(100 - retention_rate, 2) if earlier else 0.0

        redemptions = await self._offer_redemptions()
        total_redemptions = sum(item["redemptions"] for item in redemptions)
        mukando = await self._mukando_metrics(len(customers))

        return {
            "totalCustomers": len(customers),
            "newCustomersThisMonth": new_this_month,
            "activeCustomersThisMonth": len(active_since(month_start)),
            "customerGrowthRate": growth_rate,
            "transactionsThisMonth": sum(1 for tx in transactions if ensure_utc(tx.created_at) >= month_start),
            "totalTransactions": len(transactions),
            "totalPointsEarned": points_earned,
            "totalPointsRedeemed": points_redeemed,
            "averageTransactionValue": round(total_value / len(transactions), 2) if transactions else 0.0,
            "dailyActiveUsers": len(active_since(now - timedelta(days=1))),
            "weeklyActiveUsers": len(active_since(now - timedelta(days=7))),
            "monthlyActiveUsers": len(recent),
            "tierDistribution": dict(Counter(c.loyalty_tier or "Bronze" for c in customers)),
            "redemptionRate": _percentage(total_redemptions, len(customers)),
            "mostPopularOffers": redemptions[:5],
            "retentionRate": retention_rate,
            "churnRate": churn_rate,
            **mukando,
        }

    async def _offer_redemptions(self) -> List[Dict[str, Any]]:
        stmt = (
            select(Offer.id, Offer.offer_name, Offer.points_required, func.count(RedeemedOffer.id))
            .outerjoin(RedeemedOffer, RedeemedOffer.offer_id == Offer.id)
            .where(Offer.business_id == self._business_id)
            .group_by(Offer.id, Offer.offer_name, Offer.points_required)
            .order_by(func.count(RedeemedOffer.id).desc(), Offer.offer_name)
        )
        rows = (await self._session.execute(stmt)).all()
        return [
            {
                "offerId": str(offer_id),
                "offerName": name,
                "pointsRequired": points or 0,
                "redemptions": count,
            }
            for offer_id, name, points, count in rows
        ]

    async def _mukando_metrics(self, customer_count: int) -> Dict[str, Any]:
        result = await self._session.execute(
            select(MukandoGroup)
            .options(selectinload(MukandoGroup.members))
            .where(MukandoGroup.business_id == self._business_id)
        )
        groups = list(result.scalars().all())
        participants = {member.customer_id for group in groups for member in group.members}
        return {
            "mukandoGroups": len(groups),
            "activeMukandoGroups": sum(1 for g in groups if g.status == MukandoGroupStatus.APPROVED),
            "mukandoMembers": sum(len(g.members) for g in groups),
            "mukandoTotalPoints": sum(g.total_mukando_points or 0 for g in groups),
            "mukandoEngagementRate": _percentage(len(participants), customer_count),
        }
