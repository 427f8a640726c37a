"""Built-in badge catalogue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from smart_rewards_api.models.badge import BadgeCategory


@dataclass(frozen=True)
class BadgeDefinition:
    name: str
    description: str
    icon: str
    category: BadgeCategory
    criteria: dict[str, Any] = field(default_factory=dict)
    points_reward: int = 0


def _threshold(stat: str, value: int, operator: str = "gte") -> dict[str, Any]:
    return {"type": "threshold", "conditions": {"field": stat, "operator": operator, "value": value}}


def _achievement(stat: str, value: Any = None) -> dict[str, Any]:
    conditions: dict[str, Any] = {"field": stat}
    if value is not None:
        conditions["value"] = value
    return {"type": "achievement", "conditions": conditions}


BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    # Activity
    BadgeDefinition(
        "Welcome Aboard",
        "Successfully registered and joined Smart Rewards",
        "Sparkles",
        BadgeCategory.ACTIVITY,
        _achievement("account_created"),
        50,
    ),
    BadgeDefinition(
        "First Steps",
        "Made your first transaction or earned your first points",
        "Footprints",
        BadgeCategory.ACTIVITY,
        _threshold("totalTransactions", 1),
        100,
    ),
    BadgeDefinition(
        "Scanner Pro",
        "Successfully scanned 10 receipts or completed 10 transactions",
        "QrCode",
        BadgeCategory.ACTIVITY,
        _threshold("totalTransactions", 10),
        200,
    ),
    BadgeDefinition(
        "Transaction Master",
        "Completed 50 transactions",
        "Activity",
        BadgeCategory.ACTIVITY,
        _threshold("totalTransactions", 50),
        500,
    ),
    # Social
    BadgeDefinition(
        "Business Explorer",
        "Followed 5 businesses",
        "Compass",
        BadgeCategory.SOCIAL,
        _threshold("businessesFollowed", 5),
        150,
    ),
    BadgeDefinition(
        "Community Member",
        "Followed 15 businesses",
        "Users",
        BadgeCategory.SOCIAL,
        _threshold("businessesFollowed", 15),
        300,
    ),
    BadgeDefinition(
        "Network Builder",
        "Followed 30 businesses",
        "Network",
        BadgeCategory.SOCIAL,
        _threshold("businessesFollowed", 30),
        500,
    ),
    BadgeDefinition(
        "Mukando Starter",
        "Joined your first Mukando savings group",
        "Trophy",
        BadgeCategory.SOCIAL,
        _threshold("mukandoGroupsJoined", 1),
        200,
    ),
    BadgeDefinition(
        "Group Creator",
        "Created your first Mukando group",
        "Star",
        BadgeCategory.SOCIAL,
        _threshold("mukandoGroupsCreated", 1),
        300,
    ),
    BadgeDefinition(
        "Savings Champion",
        "Made 10 Mukando contributions",
        "PiggyBank",
        BadgeCategory.SOCIAL,
        _threshold("mukandoContributions", 10),
        400,
    ),
    BadgeDefinition(
        "Community Builder",
        "Participated in 3 Mukando groups",
        "Users2",
        BadgeCategory.SOCIAL,
        _threshold("mukandoGroupsJoined", 3),
        500,
    ),
    # Milestones
    BadgeDefinition(
        "Points Collector",
        "Earned 1,000 loyalty points",
        "Coins",
        BadgeCategory.MILESTONE,
        _threshold("totalPointsEarned", 1000),
        200,
    ),
    BadgeDefinition(
        "Silver Achiever",
        "Reached Silver tier",
        "Medal",
        BadgeCategory.MILESTONE,
        _achievement("loyaltyTier", "Silver"),
        500,
    ),
    BadgeDefinition(
        "Gold Master",
        "Reached Gold tier",
        "Crown",
        BadgeCategory.MILESTONE,
        _achievement("loyaltyTier", "Gold"),
        1000,
    ),
    BadgeDefinition(
        "High Roller",
        "Earned 10,000 loyalty points",
        "Diamond",
        BadgeCategory.MILESTONE,
        _threshold("totalPointsEarned", 10000),
        1000,
    ),
    # Special
    BadgeDefinition(
        "Smart Spender",
        "Redeemed 5 offers",
        "ShoppingBag",
        BadgeCategory.SPECIAL,
        _threshold("offersRedeemed", 5),
        250,
    ),
    BadgeDefinition(
        "Loyal Customer",
        "Active for 30 days",
        "Heart",
        BadgeCategory.SPECIAL,
        _threshold("accountAge", 30),
        300,
    ),
    BadgeDefinition(
        "Veteran Member",
        "Active for 90 days",
        "Shield",
        BadgeCategory.SPECIAL,
        _threshold("accountAge", 90),
        500,
    ),
    BadgeDefinition(
        "Eco-Warrior",
        "Contributed over 5,000 points to Mukando groups",
        "Award",
        BadgeCategory.SPECIAL,
        _threshold("totalMukandoPointsContributed", 5000),
        750,
    ),
)
