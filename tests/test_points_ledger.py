from decimal import Decimal

import pytest

from smart_rewards_api.models.customer import Customer
from smart_rewards_api.services.errors import InsufficientPointsError, ValidationFailedError
from smart_rewards_api.services.points import (
    credit_points,
    currency_to_points,
    debit_points,
    format_currency,
    format_points_as_currency,
    next_tier,
    points_display_text,
    points_to_currency,
    sync_tier,
    tier_for_points,
    tier_progress,
)


def test_point_currency_conversions() -> None:
    assert points_to_currency(150) == Decimal("1.50")
    assert points_to_currency(0) == Decimal("0.00")
    assert currency_to_points(Decimal("1.50")) == 150
    assert currency_to_points(2.999) == 299
    assert format_currency(2) == "$2.00"
    assert format_points_as_currency(1234) == "$12.34"


def test_points_display_text_pluralises_and_optionally_shows_value() -> None:
    assert points_display_text(1) == "1 point ($0.01)"
    assert points_display_text(250) == "250 points ($2.50)"
    assert points_display_text(250, show_currency=False) == "250 points"


@pytest.mark.parametrize(
    ("points", "tier"),
    [(0, "Bronze"), (999, "Bronze"), (1000, "Silver"), (2999, "Silver"), (3000, "Gold"), (10000, "Platinum")],
)
def test_tier_for_points_uses_thresholds(points: int, tier: str) -> None:
    assert tier_for_points(points) == tier


def test_next_tier_and_progress() -> None:
    assert next_tier(950) == ("Silver", 50)
    assert next_tier(12000) is None

    progress = tier_progress(2000)
    assert progress.current_tier == "Silver"
    assert progress.next_tier == "Gold"
    assert progress.points_to_next_tier == 1000
    assert progress.progress_percentage == 50

    top = tier_progress(10000)
    assert top.next_tier is None
    assert top.points_to_next_tier == 0
    assert top.progress_percentage == 100


def test_credit_points_promotes_tier() -> None:
    customer = Customer(loyalty_points=950, loyalty_tier="Bronze")

    assert credit_points(customer, 50) == 1000
    assert customer.loyalty_tier == "Silver"


def test_debit_points_rejects_overdraft_with_balances() -> None:
    customer = Customer(loyalty_points=40, loyalty_tier="Bronze")

    with pytest.raises(InsufficientPointsError) as excinfo:
        debit_points(customer, 100)

    assert customer.loyalty_points == 40
    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == {"message": "Insufficient points", "currentPoints": 40, "requiredPoints": 100}


def test_negative_amounts_are_rejected() -> None:
    customer = Customer(loyalty_points=10, loyalty_tier="Bronze")

    with pytest.raises(ValidationFailedError):
        credit_points(customer, -1)
    with pytest.raises(ValidationFailedError):
        debit_points(customer, -1)


def test_sync_tier_demotes_after_balance_drop() -> None:
    customer = Customer(loyalty_points=500, loyalty_tier="Gold")

    assert sync_tier(customer) is True
    assert customer.loyalty_tier == "Bronze"
    assert sync_tier(customer) is False
