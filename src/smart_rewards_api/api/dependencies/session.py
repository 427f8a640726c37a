"""Bearer-token dependencies resolving the calling account."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_rewards_api.core.security import InvalidTokenError, decode_access_token
from smart_rewards_api.db.session import get_session
from smart_rewards_api.models.user import User, UserTypeEnum

STALE_TOKEN_DETAIL = {"message": "Invalid token", "code": "STALE_TOKEN"}


def _stale_token() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=STALE_TOKEN_DETAIL)


async def require_user(
    authorization: str | None = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the authenticated user from an ``Authorization: Bearer`` header."""

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        claims = decode_access_token(authorization[len("Bearer ") :].strip())
        user_id = UUID(str(claims["userId"]))
    except (InvalidTokenError, ValueError) as error:
        logger.info("Rejected bearer token", error=str(error))
        raise _stale_token() from error

    result = await db.execute(
        select(User).options(selectinload(User.customer), selectinload(User.business)).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()
    if user is None:
        logger.info("Bearer token references a deleted user", user_id=str(user_id))
        raise _stale_token()
    return user


async def require_customer(user: User = Depends(require_user)) -> User:
    if user.user_type != UserTypeEnum.CUSTOMER.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Customer account required.",
        )
    return user


async def require_business(user: User = Depends(require_user)) -> User:
    if user.user_type != UserTypeEnum.BUSINESS.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Business account required.",
        )
    return user


async def require_business_or_admin(user: User = Depends(require_user)) -> User:
    if user.user_type not in (UserTypeEnum.BUSINESS.value, UserTypeEnum.ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Business or admin account required.",
        )
    return user
