"""Account registration and credential checks."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.security import create_access_token, hash_password, verify_password
from smart_rewards_api.models.business import Business
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.user import User, UserTypeEnum
from smart_rewards_api.services.errors import RewardsError, ValidationFailedError
from smart_rewards_api.services.points.awards import PointsActivity, award_points

SELF_SERVICE_USER_TYPES = (UserTypeEnum.CUSTOMER.value, UserTypeEnum.BUSINESS.value)
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits


class InvalidCredentialsError(RewardsError):
    status_code = 401


@dataclass
class Registration:
    email: str
    password: str
    user_type: str
    full_name: str | None = None
    business_name: str | None = None
    business_category: str | None = None
    referral_code: str | None = None


@dataclass
class AuthResult:
    user: User
    token: str
    awards: list[str] = field(default_factory=list)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_user(self, user_id: UUID) -> User | None:
        result = await self._db.execute(
            select(User)
            .options(selectinload(User.customer), selectinload(User.business))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def register(self, request: Registration) -> AuthResult:
        if not request.email or not request.password or not request.user_type:
            raise ValidationFailedError("Missing required fields")
        if request.user_type not in SELF_SERVICE_USER_TYPES:
            raise ValidationFailedError("user_type must be 'customer' or 'business'")
        if request.user_type == UserTypeEnum.BUSINESS.value and not (request.business_name or "").strip():
            raise ValidationFailedError("Missing required fields")

        email = normalize_email(request.email)
        existing = await self._db.execute(select(User.id).where(func.lower(User.email) == email))
        if existing.scalar_one_or_none() is not None:
            raise ValidationFailedError("User already exists")

        user = User(email=email, password_hash=hash_password(request.password), user_type=request.user_type)
        self._db.add(user)
        await self._db.flush()

        awards: list[str] = []
        if request.user_type == UserTypeEnum.CUSTOMER.value:
            self._db.add(
                Customer(
                    user_id=user.id,
                    full_name=(request.full_name or "").strip() or None,
                    interests=[],
                    referral_code=await self._unique_referral_code(),
                )
            )
            await self._db.flush()
            signup = await award_points(self._db, user.id, PointsActivity.SIGNUP)
            awards.append(signup.description)
            awards.extend(await self._credit_referrer(request.referral_code, user.id))
        else:
            self._db.add(
                Business(
                    user_id=user.id,
                    business_name=request.business_name.strip(),
                    business_category=(request.business_category or "").strip() or None,
                )
            )
            await self._db.flush()

        logger.info("Registered user", user_id=str(user.id), user_type=user.user_type)
        loaded = await self.get_user(user.id)
        return AuthResult(user=loaded, token=create_access_token(user.id, user.user_type), awards=awards)

    async def login(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationFailedError("Missing required fields")
        result = await self._db.execute(
            select(User)
            .options(selectinload(User.customer), selectinload(User.business))
            .where(func.lower(User.email) == normalize_email(email))
        )
        user = result.scalar_one_or_none()
        if user is None or not verify_password(user.password_hash, password):
            logger.warning("Rejected login", email=normalize_email(email))
            raise InvalidCredentialsError("Invalid credentials")
        logger.info("User logged in", user_id=str(user.id))
        return AuthResult(user=user, token=create_access_token(user.id, user.user_type))

    async def _credit_referrer(self, referral_code: str | None, new_customer_id: UUID) -> list[str]:
        if not referral_code:
            return []
        result = await self._db.execute(
            select(Customer).where(Customer.referral_code == referral_code.strip().upper())
        )
        referrer = result.scalar_one_or_none()
        if referrer is None or referrer.user_id == new_customer_id:
            logger.info("Ignored unknown referral code", referral_code=referral_code)
            return []
        award = await award_points(self._db, referrer.user_id, PointsActivity.REFERRAL)
        return [award.description]

    async def _unique_referral_code(self) -> str:
        while True:
            candidate = "SR" + "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(6))
            exists = await self._db.execute(select(Customer.user_id).where(Customer.referral_code == candidate))
            if exists.scalar_one_or_none() is None:
                return candidate
