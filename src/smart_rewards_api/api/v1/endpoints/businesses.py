"""Business directory and follow endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_customer
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.business import Business, Offer
from smart_rewards_api.models.user import User
from smart_rewards_api.services.businesses import BusinessService, geojson_location
from smart_rewards_api.services.customers import CustomerService
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.points import points_display_text

router = APIRouter(prefix="/businesses", tags=["Businesses"])


class OfferResponse(BaseModel):
    id: UUID
    businessId: UUID
    offerName: str
    description: Optional[str]
    pointsRequired: int
    pointsDisplay: str
    isRedeemable: bool
    activeFrom: Optional[datetime]
    activeTo: Optional[datetime]
    createdAt: datetime
    businessName: Optional[str] = None


class BusinessResponse(BaseModel):
    userId: UUID
    businessName: str
    businessCategory: Optional[str]
    description: Optional[str]
    contactPhone: Optional[str]
    address: Optional[str]
    logoUrl: Optional[str]
    location: Optional[Dict[str, Any]]
    offers: List[OfferResponse] = []


class FollowResponse(BaseModel):
    following: bool
    pointsAwarded: int = 0
    newTotal: Optional[int] = None
    badgesAwarded: List[str] = []


def serialize_offer(offer: Offer, *, business_name: str | None = None) -> OfferResponse:
    points = offer.points_required or 0
    return OfferResponse(
        id=offer.id,
        businessId=offer.business_id,
        offerName=offer.offer_name,
        description=offer.description,
        pointsRequired=points,
        pointsDisplay=points_display_text(points),
        isRedeemable=offer.is_redeemable,
        activeFrom=offer.active_from,
        activeTo=offer.active_to,
        createdAt=offer.created_at,
        businessName=business_name,
    )


def serialize_business(business: Business, *, include_offers: bool = False) -> BusinessResponse:
    return BusinessResponse(
        userId=business.user_id,
        businessName=business.business_name,
        businessCategory=business.business_category,
        description=business.description,
        contactPhone=business.contact_phone,
        address=business.address,
        logoUrl=business.logo_url,
        location=geojson_location(business),
        offers=[serialize_offer(offer) for offer in business.offers] if include_offers else [],
    )


@router.get("", response_model=List[BusinessResponse])
async def list_businesses(
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_session),
) -> List[BusinessResponse]:
    businesses = await BusinessService(db).list_businesses(category=category)
    return [serialize_business(business, include_offers=True) for business in businesses]


@router.post("/{business_id}/follow", response_model=FollowResponse, status_code=status.HTTP_201_CREATED)
async def follow_business(
    business_id: UUID,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> FollowResponse:
    """Follow a business and collect the follow bonus."""

    service = CustomerService(db)
    try:
        await service.get_or_create_profile(current_user)
        award = await service.follow(current_user.id, business_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return FollowResponse(
        following=True,
        pointsAwarded=award.points_awarded,
        newTotal=award.new_total,
        badgesAwarded=award.badges_awarded,
    )


@router.delete("/{business_id}/follow", response_model=FollowResponse)
async def unfollow_business(
    business_id: UUID,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> FollowResponse:
    try:
        await CustomerService(db).unfollow(current_user.id, business_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return FollowResponse(following=False)
