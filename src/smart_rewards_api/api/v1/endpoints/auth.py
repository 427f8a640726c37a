"""Registration, login and current-account endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from smart_rewards_api.api.dependencies.session import require_user
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.user import User
from smart_rewards_api.services.auth import AuthService, Registration
from smart_rewards_api.services.businesses import geojson_location
from smart_rewards_api.services.errors import RewardsError

router = APIRouter(prefix="/auth", tags=["Auth"])


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    user_type: Optional[str] = None
    full_name: Optional[str] = None
    business_name: Optional[str] = None
    business_category: Optional[str] = None
    referral_code: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CustomerProfileSummary(BaseModel):
    fullName: Optional[str]
    loyaltyPoints: int
    ecoPoints: int
    loyaltyTier: str
    referralCode: Optional[str]


class BusinessProfileSummary(BaseModel):
    businessName: str
    businessCategory: Optional[str]
    description: Optional[str]
    contactPhone: Optional[str]
    address: Optional[str]
    logoUrl: Optional[str]
    location: Optional[Dict[str, Any]]


class UserResponse(BaseModel):
    id: UUID
    email: str
    userType: str
    createdAt: datetime
    customer: Optional[CustomerProfileSummary] = None
    business: Optional[BusinessProfileSummary] = None


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
    awards: List[str] = Field(default_factory=list)


def serialize_user(user: User) -> UserResponse:
    customer = user.customer
    business = user.business
    return UserResponse(
        id=user.id,
        email=user.email,
        userType=user.user_type,
        createdAt=user.created_at,
        customer=(
            CustomerProfileSummary(
                fullName=customer.full_name,
                loyaltyPoints=customer.loyalty_points,
                ecoPoints=customer.eco_points,
                loyaltyTier=customer.loyalty_tier,
                referralCode=customer.referral_code,
            )
            if customer is not None
            else None
        ),
        business=(
            BusinessProfileSummary(
                businessName=business.business_name,
                businessCategory=business.business_category,
                description=business.description,
                contactPhone=business.contact_phone,
                address=business.address,
                logoUrl=business.logo_url,
                location=geojson_location(business),
            )
            if business is not None
            else None
        ),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_session)) -> AuthResponse:
    """Create a customer or business account and sign it in."""

    service = AuthService(db)
    try:
        result = await service.register(
            Registration(
                email=payload.email or "",
                password=payload.password or "",
                user_type=payload.user_type or "",
                full_name=payload.full_name,
                business_name=payload.business_name,
                business_category=payload.business_category,
                referral_code=payload.referral_code,
            )
        )
    except RewardsError as error:
        await db.rollback()
        raise as_http_exception(error) from error
    await db.commit()
    return AuthResponse(token=result.token, user=serialize_user(result.user), awards=result.awards)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_session)) -> AuthResponse:
    service = AuthService(db)
    try:
        result = await service.login(payload.email or "", payload.password or "")
    except RewardsError as error:
        raise as_http_exception(error) from error
    return AuthResponse(token=result.token, user=serialize_user(result.user))


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    user = await AuthService(db).get_user(current_user.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return serialize_user(user)
