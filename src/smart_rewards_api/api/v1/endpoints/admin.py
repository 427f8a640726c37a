"""Business dashboard endpoints: catalogue, rules, customers, profile and insights."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_business
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.audit import AiInsight
from smart_rewards_api.models.business import LoyaltyRule
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.user import User
from smart_rewards_api.services.businesses import BusinessService, OfferDraft, ProfileUpdate
from smart_rewards_api.services.customers import format_transaction
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.insights import InsightService
from smart_rewards_api.services.mukando import MukandoService

from .businesses import BusinessResponse, OfferResponse, serialize_business, serialize_offer
from .customers import TransactionEntryResponse
from .mukando import GroupResponse, parse_group_status, serialize_group

router = APIRouter(prefix="/admin", tags=["Admin"])


class OfferCreateRequest(BaseModel):
    offer_name: Optional[str] = None
    description: Optional[str] = None
    points_required: Optional[int] = None
    is_redeemable: bool = True
    active_from: Optional[datetime] = None
    active_to: Optional[datetime] = None


class RuleCreateRequest(BaseModel):
    rule_type: Optional[str] = None
    rule_json: Optional[Dict[str, Any]] = None


class RuleResponse(BaseModel):
    id: UUID
    businessId: UUID
    ruleType: str
    ruleJson: Dict[str, Any]
    createdAt: datetime


class CustomerSummaryResponse(BaseModel):
    userId: UUID
    email: Optional[str]
    fullName: Optional[str]
    phoneNumber: Optional[str]
    loyaltyPoints: int
    ecoPoints: int
    loyaltyTier: str


class CustomerDetailResponse(CustomerSummaryResponse):
    interests: List[str]
    transactions: List[TransactionEntryResponse]


class PointsAdjustmentRequest(BaseModel):
    loyalty_points: Optional[int] = None
    eco_points: Optional[int] = None


class ProfileUpdateRequest(BaseModel):
    business_name: Optional[str] = None
    business_category: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


class LocationUpdateRequest(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class InsightResponse(BaseModel):
    id: UUID
    insightType: str
    insight: Dict[str, Any]
    createdAt: datetime


def serialize_rule(rule: LoyaltyRule) -> RuleResponse:
    return RuleResponse(
        id=rule.id,
        businessId=rule.business_id,
        ruleType=rule.rule_type.value,
        ruleJson=rule.rule_json or {},
        createdAt=rule.created_at,
    )


def serialize_customer(customer: Customer) -> CustomerSummaryResponse:
    return CustomerSummaryResponse(
        userId=customer.user_id,
        email=customer.user.email if customer.user else None,
        fullName=customer.full_name,
        phoneNumber=customer.phone_number,
        loyaltyPoints=customer.loyalty_points or 0,
        ecoPoints=customer.eco_points or 0,
        loyaltyTier=customer.loyalty_tier,
    )


def serialize_insight(insight: AiInsight) -> InsightResponse:
    return InsightResponse(
        id=insight.id,
        insightType=insight.insight_type,
        insight=insight.insight_json or {},
        createdAt=insight.created_at,
    )


@router.get("/offers", response_model=List[OfferResponse])
async def list_offers(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> List[OfferResponse]:
    offers = await BusinessService(db).list_offers(current_user.id)
    return [serialize_offer(offer) for offer in offers]


@router.post("/offers", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(
    payload: OfferCreateRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> OfferResponse:
    try:
        offer = await BusinessService(db).create_offer(
            current_user.id,
            OfferDraft(
                offer_name=payload.offer_name or "",
                description=payload.description or "",
                points_required=payload.points_required,
                is_redeemable=payload.is_redeemable,
                active_from=payload.active_from,
                active_to=payload.active_to,
            ),
        )
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_offer(offer)


@router.get("/rules", response_model=List[RuleResponse])
async def list_rules(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> List[RuleResponse]:
    rules = await BusinessService(db).list_rules(current_user.id)
    return [serialize_rule(rule) for rule in rules]


@router.post("/rules", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
async def create_rule(
    payload: RuleCreateRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> RuleResponse:
    if not payload.rule_type or payload.rule_json is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    try:
        rule = await BusinessService(db).create_rule(current_user.id, payload.rule_type, payload.rule_json)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_rule(rule)


@router.get("/customers", response_model=List[CustomerSummaryResponse])
async def list_customers(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> List[CustomerSummaryResponse]:
    customers = await BusinessService(db).followers(current_user.id)
    return [serialize_customer(customer) for customer in customers]


@router.get("/customers/{customer_id}", response_model=CustomerDetailResponse)
async def read_customer(
    customer_id: UUID,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> CustomerDetailResponse:
    try:
        detail = await BusinessService(db).customer_detail(current_user.id, customer_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    summary = serialize_customer(detail.customer)
    return CustomerDetailResponse(
        **summary.model_dump(),
        interests=list(detail.customer.interests or []),
        transactions=[
            TransactionEntryResponse(
                id=entry.id,
                type=entry.type,
                description=entry.description,
                amount=entry.amount,
                points=entry.points,
                date=entry.date,
                businessName=entry.business_name,
            )
            for entry in (format_transaction(tx) for tx in detail.transactions)
        ],
    )


@router.post("/customers/{customer_id}/points", response_model=CustomerSummaryResponse)
async def adjust_customer_points(
    customer_id: UUID,
    payload: PointsAdjustmentRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> CustomerSummaryResponse:
    """Apply a signed manual correction to a customer's balances."""

    service = BusinessService(db)
    try:
        await service.adjust_points(
            current_user.id,
            customer_id,
            loyalty_points=payload.loyalty_points,
            eco_points=payload.eco_points,
        )
        detail = await service.customer_detail(current_user.id, customer_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_customer(detail.customer)


@router.get("/mukando", response_model=List[GroupResponse])
async def list_business_groups(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> List[GroupResponse]:
    groups = await MukandoService(db).business_groups(current_user.id, status=parse_group_status(status_filter))
    return [serialize_group(group) for group in groups]


@router.get("/business/profile", response_model=BusinessResponse)
async def read_business_profile(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    try:
        business = await BusinessService(db).get_business(current_user.id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    return serialize_business(business)


@router.put("/business/profile", response_model=BusinessResponse)
async def update_business_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    try:
        business = await BusinessService(db).update_profile(
            current_user.id,
            ProfileUpdate(
                business_name=payload.business_name,
                business_category=payload.business_category,
                contact_phone=payload.contact_phone,
                address=payload.address,
                description=payload.description,
                logo_url=payload.logo_url,
                location=payload.location,
            ),
        )
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_business(business)


@router.put("/business/location", response_model=BusinessResponse)
async def update_business_location(
    payload: LocationUpdateRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> BusinessResponse:
    if payload.latitude is None or payload.longitude is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Latitude and longitude are required")
    try:
        business = await BusinessService(db).update_location(current_user.id, payload.latitude, payload.longitude)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_business(business)


@router.get("/ai-insights", response_model=InsightResponse)
async def read_latest_insight(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> InsightResponse:
    """Return the newest stored insight, generating one on first use."""

    service = InsightService(db)
    insight = await service.latest(current_user.id)
    if insight is None:
        try:
            insight = await service.generate(current_user.id)
        except RewardsError as error:
            raise as_http_exception(error) from error
        await db.commit()
    return serialize_insight(insight)


@router.post("/ai-insights", response_model=InsightResponse, status_code=status.HTTP_201_CREATED)
async def generate_insight(
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> InsightResponse:
    try:
        insight = await InsightService(db).generate(current_user.id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_insight(insight)
