import sys
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from smart_rewards_api.app import create_app  # noqa: E402
from smart_rewards_api.core.security import create_access_token, hash_password  # noqa: E402
from smart_rewards_api.db.base import Base  # noqa: E402
from smart_rewards_api.db.session import get_session  # noqa: E402
from smart_rewards_api.models.business import Business, LoyaltyRule, LoyaltyRuleType, Offer  # noqa: E402
from smart_rewards_api.models.customer import Customer  # noqa: E402
from smart_rewards_api.models.user import User, UserTypeEnum  # noqa: E402
from smart_rewards_api.observability.rewards import get_rewards_store  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rewards_store():
    get_rewards_store().reset()
    yield
    get_rewards_store().reset()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


class Seeder:
    """Inserts accounts, offers and rules directly, bypassing point awards."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    async def customer(self, email: str = "customer@example.com", *, points: int = 0, name: str = "Tariro") -> UUID:
        async with self._session_factory() as session:
            user = User(email=email, password_hash=hash_password("secret123"), user_type=UserTypeEnum.CUSTOMER.value)
            session.add(user)
            await session.flush()
            session.add(Customer(user_id=user.id, full_name=name, interests=[], loyalty_points=points))
            await session.commit()
            return user.id

    async def business(
        self,
        email: str = "business@example.com",
        *,
        name: str = "Harare Coffee",
        category: str | None = "Food",
    ) -> UUID:
        async with self._session_factory() as session:
            user = User(email=email, password_hash=hash_password("secret123"), user_type=UserTypeEnum.BUSINESS.value)
            session.add(user)
            await session.flush()
            session.add(Business(user_id=user.id, business_name=name, business_category=category))
            await session.commit()
            return user.id

    async def admin(self, email: str = "admin@example.com") -> UUID:
        async with self._session_factory() as session:
            user = User(email=email, password_hash=hash_password("secret123"), user_type=UserTypeEnum.ADMIN.value)
            session.add(user)
            await session.commit()
            return user.id

    async def offer(self, business_id: UUID, *, name: str = "Free Coffee", points: int = 100, **fields) -> UUID:
        async with self._session_factory() as session:
            offer = Offer(
                business_id=business_id,
                offer_name=name,
                description=fields.pop("description", f"{name} on the house"),
                points_required=points,
                **fields,
            )
            session.add(offer)
            await session.commit()
            return offer.id

    async def points_rule(self, business_id: UUID, *, amount: str = "1", points: int = 1) -> UUID:
        async with self._session_factory() as session:
            rule = LoyaltyRule(
                business_id=business_id,
                rule_type=LoyaltyRuleType.POINTS,
                rule_json={"amount": str(Decimal(amount)), "points": points},
            )
            session.add(rule)
            await session.commit()
            return rule.id

    async def balance(self, customer_id: UUID) -> int:
        async with self._session_factory() as session:
            customer = await session.get(Customer, customer_id)
            return customer.loyalty_points


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def auth_headers():
    def build(user_id: UUID, user_type: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, user_type)}"}

    return build
