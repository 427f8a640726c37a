"""Public offers and the redeem/verify flow."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_business, require_customer
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.user import User
from smart_rewards_api.services.businesses import BusinessService
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.redemption import RedemptionService, parse_qr_payload

from .businesses import OfferResponse, serialize_offer

router = APIRouter(tags=["Offers"])


class RedeemRequest(BaseModel):
    offerId: Optional[UUID] = None


class RedeemResponse(BaseModel):
    redemptionCode: str
    qrData: str
    expiresAt: datetime
    pointsDeducted: int
    newBalance: int
    offer: OfferResponse


class VerifyRequest(BaseModel):
    redemptionCode: Optional[str] = None
    qrData: Optional[str] = None


class VerifiedOfferResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    pointsRequired: int


class VerifiedCustomerResponse(BaseModel):
    id: UUID
    fullName: Optional[str]
    email: Optional[str]


class VerifyResponse(BaseModel):
    redemptionCode: str
    verifiedAt: datetime
    businessName: Optional[str]
    offer: VerifiedOfferResponse
    customer: VerifiedCustomerResponse


@router.get("/offers", response_model=List[OfferResponse])
async def list_public_offers(
    business_id: Optional[UUID] = Query(None, alias="businessId"),
    db: AsyncSession = Depends(get_session),
) -> List[OfferResponse]:
    offers = await BusinessService(db).public_offers(business_id=business_id)
    return [
        serialize_offer(offer, business_name=offer.business.business_name if offer.business else None)
        for offer in offers
    ]


@router.post("/redeem-offer", response_model=RedeemResponse)
async def redeem_offer(
    payload: RedeemRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> RedeemResponse:
    """Spend points on an offer and return the code the business will scan."""

    if payload.offerId is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer ID is required")
    try:
        receipt = await RedemptionService(db).redeem_offer(current_user.id, payload.offerId)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    offer = receipt.offer
    return RedeemResponse(
        redemptionCode=receipt.code,
        qrData=receipt.qr_payload,
        expiresAt=receipt.expires_at,
        pointsDeducted=receipt.points_deducted,
        newBalance=receipt.new_balance,
        offer=serialize_offer(offer, business_name=offer.business.business_name if offer.business else None),
    )


@router.put("/redeem-offer", response_model=VerifyResponse)
async def verify_redemption(
    payload: VerifyRequest,
    current_user: User = Depends(require_business),
    db: AsyncSession = Depends(get_session),
) -> VerifyResponse:
    """Mark a customer's redemption code as used. Accepts the raw code or the scanned QR payload."""

    code = (payload.redemptionCode or "").strip()
    if not code and payload.qrData:
        parsed = parse_qr_payload(payload.qrData)
        if not parsed.is_valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=parsed.error)
        code = parsed.code
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Redemption code is required")

    try:
        verified = await RedemptionService(db).verify_code(current_user.id, code)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    offer = verified.offer
    return VerifyResponse(
        redemptionCode=verified.code,
        verifiedAt=verified.verified_at,
        businessName=offer.business.business_name if offer.business else None,
        offer=VerifiedOfferResponse(
            id=offer.id,
            name=offer.offer_name,
            description=offer.description,
            pointsRequired=offer.points_required or 0,
        ),
        customer=VerifiedCustomerResponse(
            id=verified.customer.user_id,
            fullName=verified.customer.full_name,
            email=verified.customer_email,
        ),
    )
