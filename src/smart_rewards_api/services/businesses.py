"""Business profile, catalogue and customer-management workflows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.models.audit import AuditLog
from smart_rewards_api.models.business import Business, LoyaltyRule, LoyaltyRuleType, Offer
from smart_rewards_api.models.customer import Customer, CustomerBusinessRelation
from smart_rewards_api.models.transaction import Transaction
from smart_rewards_api.services.errors import NotFoundError, ValidationFailedError
from smart_rewards_api.services.points.ledger import sync_tier

REQUIRED_PROFILE_FIELDS = ("business_name", "business_category", "contact_phone", "address")


@dataclass
class ProfileUpdate:
    business_name: str | None
    business_category: str | None
    contact_phone: str | None
    address: str | None
    description: str | None = None
    logo_url: str | None = None
    location: dict[str, Any] | None = None


@dataclass
class OfferDraft:
    offer_name: str
    description: str
    points_required: int
    is_redeemable: bool = True
    active_from: datetime | None = None
    active_to: datetime | None = None


@dataclass
class CustomerDetail:
    customer: Customer
    transactions: list[Transaction]


def parse_geojson_point(location: dict[str, Any] | None) -> tuple[float, float] | None:
    """Return ``(latitude, longitude)`` from a GeoJSON Point ``[lng, lat]``."""

    if location is None:
        return None
    coordinates = location.get("coordinates") if isinstance(location, dict) else None
    invalid = ValidationFailedError(
        "Invalid location format. Expected GeoJSON Point with coordinates [longitude, latitude]"
    )
    if (
        not isinstance(location, dict)
        or location.get("type") != "Point"
        or not isinstance(coordinates, (list, tuple))
        or len(coordinates) != 2
    ):
        raise invalid
    try:
        longitude, latitude = (float(value) for value in coordinates)
    except (TypeError, ValueError) as error:
        raise invalid from error
    validate_coordinates(latitude, longitude)
    return latitude, longitude


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationFailedError("Coordinates out of range")


def geojson_location(business: Business) -> dict[str, Any] | None:
    if business.latitude is None or business.longitude is None:
        return None
    return {"type": "Point", "coordinates": [business.longitude, business.latitude]}


class BusinessService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_business(self, business_id: UUID) -> Business:
        business = await self._db.get(Business, business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business

    async def list_businesses(self, *, category: str | None = None) -> list[Business]:
        stmt = select(Business).options(selectinload(Business.offers)).order_by(Business.business_name)
        if category:
            stmt = stmt.where(Business.business_category == category)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def update_profile(self, business_id: UUID, update: ProfileUpdate) -> Business:
        missing = [name for name in REQUIRED_PROFILE_FIELDS if not getattr(update, name)]
        if missing:
            raise ValidationFailedError(f"Missing required fields: {', '.join(missing)}")
        coordinates = parse_geojson_point(update.location)

        business = await self._db.get(Business, business_id)
        if business is None:
            business = Business(user_id=business_id, business_name=update.business_name)
            self._db.add(business)
        business.business_name = update.business_name
        business.business_category = update.business_category
        business.contact_phone = update.contact_phone
        business.address = update.address
        business.description = update.description or None
        business.logo_url = update.logo_url or None
        if coordinates is not None:
            business.latitude, business.longitude = coordinates
        await self._db.flush()
        logger.info("Updated business profile", business_id=str(business_id))
        return business

    async def update_location(self, business_id: UUID, latitude: float, longitude: float) -> Business:
        validate_coordinates(latitude, longitude)
        business = await self.get_business(business_id)
        business.latitude = latitude
        business.longitude = longitude
        await self._db.flush()
        logger.info("Updated business location", business_id=str(business_id), latitude=latitude, longitude=longitude)
        return business

    async def list_offers(self, business_id: UUID) -> list[Offer]:
        result = await self._db.execute(
            select(Offer).where(Offer.business_id == business_id).order_by(Offer.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_offer(self, business_id: UUID, draft: OfferDraft) -> Offer:
        if not (draft.offer_name or "").strip() or not (draft.description or "").strip():
            raise ValidationFailedError("Missing required fields")
        if draft.points_required is None or draft.points_required < 0:
            raise ValidationFailedError("Points required must be zero or more")
        if draft.active_from and draft.active_to and draft.active_to < draft.active_from:
            raise ValidationFailedError("Offer must end after it starts")
        await self.get_business(business_id)

        offer = Offer(
            business_id=business_id,
            offer_name=draft.offer_name.strip(),
            description=draft.description.strip(),
            points_required=draft.points_required,
            is_redeemable=draft.is_redeemable,
            active_from=draft.active_from,
            active_to=draft.active_to,
        )
        self._db.add(offer)
        await self._db.flush()
        logger.info("Created offer", business_id=str(business_id), offer_id=str(offer.id))
        return offer

    async def public_offers(self, *, business_id: UUID | None = None, now: datetime | None = None) -> list[Offer]:
        """Offers whose ``active_to`` is unset or still in the future."""

        moment = now or utcnow()
        stmt = (
            select(Offer)
            .options(selectinload(Offer.business))
            .where(or_(Offer.active_to.is_(None), Offer.active_to >= moment))
            .order_by(Offer.active_from.desc(), Offer.created_at.desc())
        )
        if business_id is not None:
            stmt = stmt.where(Offer.business_id == business_id)
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def list_rules(self, business_id: UUID) -> list[LoyaltyRule]:
        result = await self._db.execute(
            select(LoyaltyRule).where(LoyaltyRule.business_id == business_id).order_by(LoyaltyRule.created_at)
        )
        return list(result.scalars().all())

    async def create_rule(self, business_id: UUID, rule_type: str, rule_json: dict[str, Any]) -> LoyaltyRule:
        try:
            kind = LoyaltyRuleType(rule_type)
        except ValueError as error:
            raise ValidationFailedError(f"Unknown rule type: {rule_type}") from error
        if not rule_json:
            raise ValidationFailedError("Missing required fields")
        if kind is LoyaltyRuleType.POINTS and not {"amount", "points"} <= set(rule_json):
            raise ValidationFailedError("Points rules need 'amount' and 'points'")
        await self.get_business(business_id)

        rule = LoyaltyRule(business_id=business_id, rule_type=kind, rule_json=rule_json)
        self._db.add(rule)
        await self._db.flush()
        logger.info("Created loyalty rule", business_id=str(business_id), rule_type=kind.value)
        return rule

    async def followers(self, business_id: UUID) -> list[Customer]:
        stmt = (
            select(Customer)
            .join(CustomerBusinessRelation, CustomerBusinessRelation.customer_id == Customer.user_id)
            .options(selectinload(Customer.user))
            .where(CustomerBusinessRelation.business_id == business_id)
            .order_by(CustomerBusinessRelation.followed_at.desc())
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def customer_detail(self, business_id: UUID, customer_id: UUID) -> CustomerDetail:
        result = await self._db.execute(
            select(Customer)
            .options(selectinload(Customer.user))
            .where(Customer.user_id == customer_id)
            .execution_options(populate_existing=True)
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            raise NotFoundError("Customer not found")
        transactions = await self._db.execute(
            select(Transaction)
            .options(selectinload(Transaction.business))
            .where(Transaction.customer_id == customer_id, Transaction.business_id == business_id)
            .order_by(Transaction.created_at.desc())
        )
        return CustomerDetail(customer=customer, transactions=list(transactions.scalars().all()))

    async def adjust_points(
        self,
        business_id: UUID,
        customer_id: UUID,
        *,
        loyalty_points: int | None = None,
        eco_points: int | None = None,
    ) -> Customer:
        """Apply a manual balance correction and record it in the audit log."""

        if loyalty_points is None and eco_points is None:
            raise ValidationFailedError("Missing points fields")
        customer = await self._db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        if loyalty_points is not None:
            customer.loyalty_points = max((customer.loyalty_points or 0) + loyalty_points, 0)
            sync_tier(customer)
        if eco_points is not None:
            customer.eco_points = max((customer.eco_points or 0) + eco_points, 0)

        self._db.add(
            AuditLog(
                user_id=business_id,
                action="manual_points_adjustment",
                details={
                    "customerId": str(customer_id),
                    "loyalty_points": loyalty_points,
                    "eco_points": eco_points,
                },
            )
        )
        await self._db.flush()
        logger.info(
            "Adjusted customer points",
            business_id=str(business_id),
            customer_id=str(customer_id),
            loyalty_points=loyalty_points,
            eco_points=eco_points,
        )
        return customer
