import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from smart_rewards_api.models.redemption import RedeemedOffer
from smart_rewards_api.models.transaction import Transaction, TransactionType
from smart_rewards_api.observability.rewards import get_rewards_store
from smart_rewards_api.services.errors import (
    InsufficientPointsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from smart_rewards_api.services.redemption import (
    RedemptionService,
    build_qr_payload,
    generate_redemption_code,
    is_valid_redemption_code,
    parse_qr_payload,
)


def test_generated_codes_embed_timestamp() -> None:
    moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    code = generate_redemption_code(moment)

    prefix, millis, suffix = code.split("-")
    assert prefix == "RDM"
    assert int(millis) == int(moment.timestamp() * 1000)
    assert len(suffix) == 6
    assert is_valid_redemption_code(code)


def test_code_validation_rejects_malformed_values() -> None:
    assert not is_valid_redemption_code(None)
    assert not is_valid_redemption_code("")
    assert not is_valid_redemption_code("RDM-123-abcdef")
    assert not is_valid_redemption_code("XYZ-123-ABCDEF")


def test_qr_payload_parses_back() -> None:
    code = generate_redemption_code()
    payload = build_qr_payload(code, "offer-1", "biz-1")

    parsed = parse_qr_payload(payload)
    assert parsed.is_valid
    assert parsed.code == code
    assert parsed.offer_id == "offer-1"
    assert parsed.business_id == "biz-1"


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps(["redemption"]),
        json.dumps({"type": "coupon", "code": "RDM-1-ABCDEF"}),
        json.dumps({"type": "redemption", "code": "bad"}),
    ],
)
def test_qr_payload_rejects_foreign_data(payload: str) -> None:
    parsed = parse_qr_payload(payload)

    assert parsed.is_valid is False
    assert parsed.error


@pytest.mark.asyncio
async def test_redeem_then_verify_flow(session_factory, seed) -> None:
    customer_id = await seed.customer(points=500)
    business_id = await seed.business()
    offer_id = await seed.offer(business_id, points=120)

    async with session_factory() as session:
        receipt = await RedemptionService(session).redeem_offer(customer_id, offer_id)
        await session.commit()

        assert receipt.points_deducted == 120
        assert receipt.new_balance == 380
        assert is_valid_redemption_code(receipt.code)
        assert parse_qr_payload(receipt.qr_payload).code == receipt.code

        ledger = (
            await session.execute(select(Transaction).where(Transaction.customer_id == customer_id))
        ).scalars().one()
        assert ledger.transaction_type == TransactionType.REDEMPTION
        assert ledger.points_deducted == 120
        redeemed = (await session.execute(select(RedeemedOffer))).scalars().one()
        assert redeemed.points_used == 120

    async with session_factory() as session:
        service = RedemptionService(session)
        verified = await service.verify_code(business_id, receipt.code)
        await session.commit()
        assert verified.offer.id == offer_id
        assert verified.customer.user_id == customer_id
        assert verified.customer_email == "customer@example.com"

        with pytest.raises(ValidationFailedError, match="already been used"):
            await service.verify_code(business_id, receipt.code)

    events = get_rewards_store().snapshot().redemptions
    assert events["redeemed"] == 1
    assert events["verified"] == 1
    assert events["verify_already_used"] == 1


@pytest.mark.asyncio
async def test_redeem_rejects_insufficient_balance(session_factory, seed) -> None:
    customer_id = await seed.customer(points=50)
    business_id = await seed.business()
    offer_id = await seed.offer(business_id, points=100)

    async with session_factory() as session:
        with pytest.raises(InsufficientPointsError) as excinfo:
            await RedemptionService(session).redeem_offer(customer_id, offer_id)

    assert excinfo.value.detail["currentPoints"] == 50
    assert excinfo.value.detail["requiredPoints"] == 100


@pytest.mark.asyncio
async def test_redeem_respects_availability_window(session_factory, seed) -> None:
    customer_id = await seed.customer(points=1000)
    business_id = await seed.business()
    now = datetime.now(timezone.utc)
    expired = await seed.offer(business_id, name="Old", active_to=now - timedelta(days=1))
    upcoming = await seed.offer(business_id, name="Soon", active_from=now + timedelta(days=1))
    paused = await seed.offer(business_id, name="Paused", is_redeemable=False)

    async with session_factory() as session:
        service = RedemptionService(session)
        with pytest.raises(ValidationFailedError, match="expired"):
            await service.redeem_offer(customer_id, expired)
        with pytest.raises(ValidationFailedError, match="not yet active"):
            await service.redeem_offer(customer_id, upcoming)
        with pytest.raises(ValidationFailedError, match="not available"):
            await service.redeem_offer(customer_id, paused)


@pytest.mark.asyncio
async def test_verify_enforces_owner_and_expiry(session_factory, seed) -> None:
    customer_id = await seed.customer(points=500)
    business_id = await seed.business()
    other_business = await seed.business("other@example.com", name="Other")
    offer_id = await seed.offer(business_id)

    async with session_factory() as session:
        receipt = await RedemptionService(session).redeem_offer(customer_id, offer_id)
        await session.commit()

    async with session_factory() as session:
        service = RedemptionService(session)
        with pytest.raises(NotFoundError):
            await service.verify_code(business_id, "RDM-1-ABCDEF")
        with pytest.raises(PermissionDeniedError):
            await service.verify_code(other_business, receipt.code)
        with pytest.raises(ValidationFailedError, match="expired"):
            await service.verify_code(business_id, receipt.code, now=receipt.expires_at + timedelta(seconds=1))
