"""Customer wallet endpoints for the signed-in customer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_customer
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.user import User
from smart_rewards_api.services.badges import BadgeEngine
from smart_rewards_api.services.customers import CustomerService
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.points import format_points_as_currency, points_display_text, tier_progress

from .badges import BadgeResponse, serialize_badge

router = APIRouter(prefix="/customers/me", tags=["Customers"])


class TierProgressResponse(BaseModel):
    currentTier: str
    nextTier: Optional[str]
    pointsToNextTier: int
    progressPercentage: int


class CustomerProfileResponse(BaseModel):
    userId: UUID
    email: str
    fullName: Optional[str]
    phoneNumber: Optional[str]
    interests: List[str]
    loyaltyPoints: int
    ecoPoints: int
    loyaltyTier: str
    referralCode: Optional[str]
    pointsValue: str
    pointsDisplay: str
    tierProgress: TierProgressResponse
    createdAt: datetime


class PreferencesRequest(BaseModel):
    interests: Optional[List[str]] = None


class TransactionEntryResponse(BaseModel):
    id: UUID
    type: str
    description: str
    amount: str
    points: int
    date: str
    businessName: Optional[str]


class NotificationResponse(BaseModel):
    id: str
    icon: str
    title: str
    description: str
    type: str
    createdAt: datetime


class BadgeCheckResponse(BaseModel):
    newBadges: List[str]
    count: int


def serialize_profile(user: User, customer: Customer) -> CustomerProfileResponse:
    points = customer.loyalty_points or 0
    progress = tier_progress(points)
    return CustomerProfileResponse(
        userId=customer.user_id,
        email=user.email,
        fullName=customer.full_name,
        phoneNumber=customer.phone_number,
        interests=list(customer.interests or []),
        loyaltyPoints=points,
        ecoPoints=customer.eco_points or 0,
        loyaltyTier=customer.loyalty_tier,
        referralCode=customer.referral_code,
        pointsValue=format_points_as_currency(points),
        pointsDisplay=points_display_text(points),
        tierProgress=TierProgressResponse(
            currentTier=progress.current_tier,
            nextTier=progress.next_tier,
            pointsToNextTier=progress.points_to_next_tier,
            progressPercentage=progress.progress_percentage,
        ),
        createdAt=customer.created_at,
    )


@router.get("", response_model=CustomerProfileResponse)
async def read_profile(
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> CustomerProfileResponse:
    """Return the wallet, creating an empty one for accounts registered without it."""

    service = CustomerService(db)
    try:
        customer = await service.get_or_create_profile(current_user)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_profile(current_user, customer)


@router.put("/preferences", response_model=CustomerProfileResponse)
async def update_preferences(
    payload: PreferencesRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> CustomerProfileResponse:
    service = CustomerService(db)
    try:
        customer = await service.update_preferences(current_user, payload.interests)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return serialize_profile(current_user, customer)


@router.get("/transactions", response_model=List[TransactionEntryResponse])
async def list_transactions(
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> List[TransactionEntryResponse]:
    entries = await CustomerService(db).transaction_history(current_user.id)
    return [
        TransactionEntryResponse(
            id=entry.id,
            type=entry.type,
            description=entry.description,
            amount=entry.amount,
            points=entry.points,
            date=entry.date,
            businessName=entry.business_name,
        )
        for entry in entries
    ]


@router.get("/notifications", response_model=List[NotificationResponse])
async def list_notifications(
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> List[NotificationResponse]:
    service = CustomerService(db)
    try:
        await service.get_or_create_profile(current_user)
        items = await service.notifications(current_user.id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return [
        NotificationResponse(
            id=item.id,
            icon=item.icon,
            title=item.title,
            description=item.description,
            type=item.type,
            createdAt=item.created_at,
        )
        for item in items
    ]


@router.get("/badges", response_model=List[BadgeResponse])
async def list_customer_badges(
    include_available: bool = Query(False, alias="includeAvailable"),
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> List[BadgeResponse]:
    statuses = await BadgeEngine(db).customer_badges(current_user.id, include_available=include_available)
    return [serialize_badge(status.badge, status) for status in statuses]


@router.post("/badges/check", response_model=BadgeCheckResponse)
async def check_badges(
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> BadgeCheckResponse:
    try:
        awarded = await BadgeEngine(db).check_and_award_badges(current_user.id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return BadgeCheckResponse(newBadges=awarded, count=len(awarded))
