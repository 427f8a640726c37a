"""In-store earning endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_customer
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.user import User
from smart_rewards_api.services.activity import ActivityService
from smart_rewards_api.services.customers import CustomerService
from smart_rewards_api.services.errors import RewardsError

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


class ScanRequest(BaseModel):
    businessId: Optional[UUID] = None
    transactionAmount: Decimal = Field(default=Decimal("0"))


class ScanResponse(BaseModel):
    message: str
    pointsEarned: int
    newTotal: int
    bonusPoints: int = 0
    badgesAwarded: List[str] = []


class CheckInRequest(BaseModel):
    businessId: Optional[UUID] = None


class CheckInResponse(BaseModel):
    message: str
    pointsAwarded: int


def _require_business_id(business_id: UUID | None) -> UUID:
    if business_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Business ID is required")
    return business_id


@router.post("/scan", response_model=ScanResponse)
async def scan_receipt(
    payload: ScanRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> ScanResponse:
    """Earn points for a purchase using the business's points rule."""

    business_id = _require_business_id(payload.businessId)
    try:
        await CustomerService(db).get_or_create_profile(current_user)
        result = await ActivityService(db).record_scan(current_user.id, business_id, payload.transactionAmount)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()

    bonus = result.first_purchase_award
    return ScanResponse(
        message="Scan successful",
        pointsEarned=result.points_earned,
        newTotal=bonus.new_total if bonus else result.new_total,
        bonusPoints=bonus.points_awarded if bonus else 0,
        badgesAwarded=bonus.badges_awarded if bonus else [],
    )


@router.post("/check-in", response_model=CheckInResponse)
async def check_in(
    payload: CheckInRequest,
    current_user: User = Depends(require_customer),
    db: AsyncSession = Depends(get_session),
) -> CheckInResponse:
    business_id = _require_business_id(payload.businessId)
    try:
        await CustomerService(db).get_or_create_profile(current_user)
        points = await ActivityService(db).record_check_in(current_user.id, business_id)
    except RewardsError as error:
        raise as_http_exception(error) from error
    await db.commit()
    return CheckInResponse(message="Check-in successful", pointsAwarded=points)
