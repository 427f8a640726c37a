from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.models.audit import AuditLog
from smart_rewards_api.models.business import LoyaltyRuleType
from smart_rewards_api.models.customer import Customer, CustomerBusinessRelation
from smart_rewards_api.services.businesses import (
    BusinessService,
    OfferDraft,
    ProfileUpdate,
    geojson_location,
    parse_geojson_point,
)
from smart_rewards_api.services.errors import NotFoundError, ValidationFailedError


def test_parse_geojson_point_swaps_to_lat_lng() -> None:
    assert parse_geojson_point(None) is None
    assert parse_geojson_point({"type": "Point", "coordinates": [31.05, -17.83]}) == (-17.83, 31.05)


@pytest.mark.parametrize(
    "location",
    [
        {"type": "Polygon", "coordinates": [31.05, -17.83]},
        {"type": "Point", "coordinates": [31.05]},
        {"type": "Point"},
        {"type": "Point", "coordinates": [200, 0]},
        {"type": "Point", "coordinates": [0, -91]},
        {"type": "Point", "coordinates": ["abc", 1]},
        {"type": "Point", "coordinates": [None, 1]},
        "31.05,-17.83",
    ],
)
def test_parse_geojson_point_rejects_malformed(location) -> None:
    with pytest.raises(ValidationFailedError):
        parse_geojson_point(location)


@pytest.mark.asyncio
async def test_update_profile_requires_core_fields(session_factory, seed) -> None:
    business_id = await seed.business()

    async with session_factory() as session:
        service = BusinessService(session)
        with pytest.raises(ValidationFailedError, match="contact_phone, address"):
            await service.update_profile(
                business_id,
                ProfileUpdate(business_name="Cafe", business_category="Food", contact_phone=None, address=""),
            )

        business = await service.update_profile(
            business_id,
            ProfileUpdate(
                business_name="Cafe Nhasi",
                business_category="Food",
                contact_phone="+263771000000",
                address="1 Samora Machel Ave",
                description="",
                location={"type": "Point", "coordinates": [31.05, -17.83]},
            ),
        )
        assert business.business_name == "Cafe Nhasi"
        assert business.description is None
        assert geojson_location(business) == {"type": "Point", "coordinates": [31.05, -17.83]}


@pytest.mark.asyncio
async def test_update_location_validates_range(session_factory, seed) -> None:
    business_id = await seed.business()

    async with session_factory() as session:
        service = BusinessService(session)
        with pytest.raises(ValidationFailedError):
            await service.update_location(business_id, 95.0, 0.0)
        business = await service.update_location(business_id, -17.8, 31.0)
        assert (business.latitude, business.longitude) == (-17.8, 31.0)
        with pytest.raises(NotFoundError):
            await service.update_location(uuid4(), 0.0, 0.0)


@pytest.mark.asyncio
async def test_create_offer_validation(session_factory, seed) -> None:
    business_id = await seed.business()
    now = utcnow()

    async with session_factory() as session:
        service = BusinessService(session)
        with pytest.raises(ValidationFailedError, match="Missing required fields"):
            await service.create_offer(business_id, OfferDraft(offer_name=" ", description="x", points_required=10))
        with pytest.raises(ValidationFailedError):
            await service.create_offer(business_id, OfferDraft(offer_name="A", description="x", points_required=-1))
        with pytest.raises(ValidationFailedError, match="end after"):
            await service.create_offer(
                business_id,
                OfferDraft(
                    offer_name="A",
                    description="x",
                    points_required=10,
                    active_from=now,
                    active_to=now - timedelta(days=1),
                ),
            )
        with pytest.raises(NotFoundError):
            await service.create_offer(uuid4(), OfferDraft(offer_name="A", description="x", points_required=10))

        offer = await service.create_offer(
            business_id, OfferDraft(offer_name=" Free Muffin ", description=" Any flavour ", points_required=0)
        )
        assert offer.offer_name == "Free Muffin"
        assert offer.description == "Any flavour"
        assert [item.id for item in await service.list_offers(business_id)] == [offer.id]


@pytest.mark.asyncio
async def test_public_offers_hide_expired(session_factory, seed) -> None:
    cafe = await seed.business()
    bakery = await seed.business("bakery@example.com", name="Bakery")
    now = utcnow()
    open_ended = await seed.offer(cafe, name="Open")
    current = await seed.offer(bakery, name="Current", active_to=now + timedelta(days=3))
    await seed.offer(cafe, name="Expired", active_to=now - timedelta(days=1))

    async with session_factory() as session:
        service = BusinessService(session)
        visible = {offer.id for offer in await service.public_offers(now=now)}
        assert visible == {open_ended, current}
        scoped = await service.public_offers(business_id=bakery, now=now)
        assert [offer.id for offer in scoped] == [current]


@pytest.mark.asyncio
async def test_create_rule_checks_type_and_shape(session_factory, seed) -> None:
    business_id = await seed.business()

    async with session_factory() as session:
        service = BusinessService(session)
        with pytest.raises(ValidationFailedError, match="Unknown rule type"):
            await service.create_rule(business_id, "cashback", {"amount": 1})
        with pytest.raises(ValidationFailedError):
            await service.create_rule(business_id, "tier", {})
        with pytest.raises(ValidationFailedError):
            await service.create_rule(business_id, "points", {"amount": 10})

        rule = await service.create_rule(business_id, "points", {"amount": 10, "points": 1})
        assert rule.rule_type is LoyaltyRuleType.POINTS
        assert [item.id for item in await service.list_rules(business_id)] == [rule.id]


@pytest.mark.asyncio
async def test_followers_and_customer_detail(session_factory, seed) -> None:
    business_id = await seed.business()
    follower = await seed.customer("fan@example.com", name="Fan")
    await seed.customer("stranger@example.com")

    async with session_factory() as session:
        session.add(CustomerBusinessRelation(customer_id=follower, business_id=business_id))
        await session.commit()

    async with session_factory() as session:
        service = BusinessService(session)
        followers = await service.followers(business_id)
        assert [customer.full_name for customer in followers] == ["Fan"]
        assert followers[0].user.email == "fan@example.com"

        detail = await service.customer_detail(business_id, follower)
        assert detail.customer.user_id == follower
        assert detail.transactions == []
        with pytest.raises(NotFoundError):
            await service.customer_detail(business_id, uuid4())


@pytest.mark.asyncio
async def test_adjust_points_clamps_and_audits(session_factory, seed) -> None:
    business_id = await seed.business()
    customer_id = await seed.customer(points=40)

    async with session_factory() as session:
        service = BusinessService(session)
        with pytest.raises(ValidationFailedError):
            await service.adjust_points(business_id, customer_id)

        customer = await service.adjust_points(business_id, customer_id, loyalty_points=-100, eco_points=7)
        assert customer.loyalty_points == 0
        assert customer.eco_points == 7

        customer = await service.adjust_points(business_id, customer_id, loyalty_points=1200)
        assert customer.loyalty_tier == "Silver"
        await session.commit()

    async with session_factory() as session:
        logs = (await session.execute(select(AuditLog).order_by(AuditLog.created_at))).scalars().all()
        assert [log.action for log in logs] == ["manual_points_adjustment"] * 2
        assert logs[0].details == {"customerId": str(customer_id), "loyalty_points": -100, "eco_points": 7}
        assert (await session.get(Customer, customer_id)).loyalty_points == 1200
