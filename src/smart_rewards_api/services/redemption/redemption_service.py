"""Offer redemption and in-store code verification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import ensure_utc, utcnow
from smart_rewards_api.core.settings import settings
from smart_rewards_api.models.business import Offer
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.redemption import RedeemedOffer, RedemptionCode
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from smart_rewards_api.services.points.ledger import debit_points

from .codes import build_qr_payload, generate_redemption_code


@dataclass
class RedemptionReceipt:
    code: str
    qr_payload: str
    expires_at: datetime
    points_deducted: int
    new_balance: int
    offer: Offer


@dataclass
class VerifiedRedemption:
    code: str
    verified_at: datetime
    offer: Offer
    customer: Customer
    customer_email: str | None


class RedemptionService:
    """Spend customer points on offers and let businesses honour the resulting codes."""

    def __init__(self, db_session: AsyncSession, *, code_ttl: timedelta | None = None) -> None:
        self._db = db_session
        self._code_ttl = code_ttl or timedelta(hours=settings.redemption_code_ttl_hours)

    async def redeem_offer(self, customer_id: UUID, offer_id: UUID, *, now: datetime | None = None) -> RedemptionReceipt:
        moment = now or utcnow()
        result = await self._db.execute(
            select(Offer).options(selectinload(Offer.business)).where(Offer.id == offer_id)
        )
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFoundError("Offer not found")
        if not offer.is_redeemable:
            raise ValidationFailedError("This offer is currently not available for redemption")
        if offer.active_from and moment < ensure_utc(offer.active_from):
            raise ValidationFailedError("This offer is not yet active")
        if offer.active_to and moment > ensure_utc(offer.active_to):
            raise ValidationFailedError("This offer has expired")

        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        points_required = offer.points_required or 0
        new_balance = debit_points(customer, points_required)

        code = await self._unique_code(moment)
        expires_at = moment + self._code_ttl
        self._db.add_all(
            [
                RedeemedOffer(customer_id=customer_id, offer_id=offer.id, points_used=points_required),
                Transaction(
                    customer_id=customer_id,
                    business_id=offer.business_id,
                    transaction_type=TransactionType.REDEMPTION,
                    points_deducted=points_required,
                    transaction_amount=0,
                    offer_id=offer.id,
                    description=f"Redeemed {offer.offer_name}",
                ),
                RedemptionCode(
                    code=code,
                    offer_id=offer.id,
                    customer_id=customer_id,
                    business_id=offer.business_id,
                    expires_at=expires_at,
                ),
            ]
        )
        await self._db.flush()
        get_rewards_store().record_redemption("redeemed")
        logger.info(
            "Redeemed offer",
            customer_id=str(customer_id),
            offer_id=str(offer.id),
            points=points_required,
            code=code,
        )
        return RedemptionReceipt(
            code=code,
            qr_payload=build_qr_payload(code, offer.id, offer.business_id, now=moment),
            expires_at=expires_at,
            points_deducted=points_required,
            new_balance=new_balance,
            offer=offer,
        )

    async def verify_code(self, business_id: UUID, code: str, *, now: datetime | None = None) -> VerifiedRedemption:
        moment = now or utcnow()
        result = await self._db.execute(
            select(RedemptionCode)
            .options(
                selectinload(RedemptionCode.offer).selectinload(Offer.business),
                selectinload(RedemptionCode.customer).selectinload(Customer.user),
            )
            .where(RedemptionCode.code == code)
        )
        record = result.scalar_one_or_none()
        if record is None:
            get_rewards_store().record_redemption("verify_not_found")
            raise NotFoundError("Invalid redemption code")
        if record.business_id != business_id:
            get_rewards_store().record_redemption("verify_wrong_business")
            raise PermissionDeniedError("This redemption code is not valid for your business")
        if record.is_used:
            get_rewards_store().record_redemption("verify_already_used")
            raise ValidationFailedError("This redemption code has already been used")
        if moment > ensure_utc(record.expires_at):
            get_rewards_store().record_redemption("verify_expired")
            raise ValidationFailedError("This redemption code has expired")

        record.is_used = True
        record.used_at = moment
        await self._db.flush()
        get_rewards_store().record_redemption("verified")
        logger.info("Verified redemption code", business_id=str(business_id), code=code)
        customer = record.customer
        return VerifiedRedemption(
            code=code,
            verified_at=moment,
            offer=record.offer,
            customer=customer,
            customer_email=customer.user.email if customer.user else None,
        )

    async def _unique_code(self, moment: datetime) -> str:
        while True:
            candidate = generate_redemption_code(moment)
            exists = await self._db.execute(select(RedemptionCode.id).where(RedemptionCode.code == candidate))
            if exists.scalar_one_or_none() is None:
                return candidate
