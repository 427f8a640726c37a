"""Seed development accounts, a demo offer and the badge catalogue into the API database."""

from __future__ import annotations

import asyncio
import os
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from smart_rewards_api.core.security import hash_password
from smart_rewards_api.core.settings import settings
from smart_rewards_api.models.business import Business, Offer
from smart_rewards_api.models.customer import Customer
from smart_rewards_api.models.user import User, UserTypeEnum
from smart_rewards_api.services.badges import BadgeEngine


class SeedUser(TypedDict):
    email: str
    display_name: str
    user_type: str


DEV_PASSWORD = os.getenv("DEV_SHORTCUT_PASSWORD", "password123")

DEV_USERS: list[SeedUser] = [
    {
        "email": os.getenv("DEV_SHORTCUT_CUSTOMER_EMAIL", "customer@smartrewards.dev").lower(),
        "display_name": "Customer QA",
        "user_type": UserTypeEnum.CUSTOMER.value,
    },
    {
        "email": os.getenv("DEV_SHORTCUT_BUSINESS_EMAIL", "business@smartrewards.dev").lower(),
        "display_name": "Harare Coffee Co",
        "user_type": UserTypeEnum.BUSINESS.value,
    },
    {
        "email": os.getenv("DEV_SHORTCUT_ADMIN_EMAIL", "admin@smartrewards.dev").lower(),
        "display_name": "Admin QA",
        "user_type": UserTypeEnum.ADMIN.value,
    },
]


async def seed_users(session: AsyncSession) -> None:
    for seed in DEV_USERS:
        with session.no_autoflush:
            existing = await session.execute(select(User).where(User.email == seed["email"]))
        record = existing.scalar_one_or_none()
        if record is not None:
            record.user_type = seed["user_type"]
            continue

        user = User(email=seed["email"], password_hash=hash_password(DEV_PASSWORD), user_type=seed["user_type"])
        session.add(user)
        await session.flush()

        if seed["user_type"] == UserTypeEnum.CUSTOMER.value:
            session.add(Customer(user_id=user.id, full_name=seed["display_name"], interests=[]))
        elif seed["user_type"] == UserTypeEnum.BUSINESS.value:
            session.add(
                Business(
                    user_id=user.id,
                    business_name=seed["display_name"],
                    business_category="Food & Beverage",
                    address="1 Samora Machel Ave, Harare",
                    latitude=-17.8292,
                    longitude=31.0522,
                )
            )
            session.add(
                Offer(
                    business_id=user.id,
                    offer_name="Free Coffee",
                    description="Any regular coffee on the house",
                    points_required=100,
                )
            )
    await session.commit()


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            await seed_users(session)
            await BadgeEngine(session).initialize_badges()
            await session.commit()
        print("Development accounts ready")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
