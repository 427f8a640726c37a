"""Balance mutation and tier derivation for customer wallets."""

from __future__ import annotations

from dataclasses import dataclass

from smart_rewards_api.models.customer import Customer
from smart_rewards_api.services.errors import InsufficientPointsError, ValidationFailedError

TIER_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("Bronze", 0),
    ("Silver", 1000),
    ("Gold", 3000),
    ("Platinum", 10000),
)


@dataclass
class TierProgress:
    current_tier: str
    next_tier: str | None
    points_to_next_tier: int
    progress_percentage: int


def tier_for_points(points: int) -> str:
    current = TIER_THRESHOLDS[0][0]
    for name, threshold in TIER_THRESHOLDS:
        if points >= threshold:
            current = name
    return current


def next_tier(points: int) -> tuple[str, int] | None:
    """Return the next tier name and the points still needed, or ``None`` at the top."""

    for name, threshold in TIER_THRESHOLDS:
        if points < threshold:
            return name, threshold - points
    return None


def tier_progress(points: int) -> TierProgress:
    current = tier_for_points(points)
    upcoming = next_tier(points)
    if upcoming is None:
        return TierProgress(current_tier=current, next_tier=None, points_to_next_tier=0, progress_percentage=100)

    floor = dict(TIER_THRESHOLDS)[current]
    target_name, remaining = upcoming
    span = dict(TIER_THRESHOLDS)[target_name] - floor
    progress = round((points - floor) / span * 100) if span else 100
    return TierProgress(
        current_tier=current,
        next_tier=target_name,
        points_to_next_tier=remaining,
        progress_percentage=progress,
    )


def sync_tier(customer: Customer) -> bool:
    """Re-derive the tier from the balance; returns True when it changed."""

    derived = tier_for_points(customer.loyalty_points or 0)
    if customer.loyalty_tier == derived:
        return False
    customer.loyalty_tier = derived
    return True


def credit_points(customer: Customer, points: int) -> int:
    if points < 0:
        raise ValidationFailedError("Credited points must be non-negative")
    customer.loyalty_points = (customer.loyalty_points or 0) + points
    sync_tier(customer)
    return customer.loyalty_points


def debit_points(customer: Customer, points: int) -> int:
    if points < 0:
        raise ValidationFailedError("Debited points must be non-negative")
    balance = customer.loyalty_points or 0
    if balance < points:
        raise InsufficientPointsError(current_points=balance, required_points=points)
    customer.loyalty_points = balance - points
    sync_tier(customer)
    return customer.loyalty_points
