"""SQLAlchemy models package."""

from .user import User, UserTypeEnum  # noqa: F401
from .customer import Customer, CustomerBusinessRelation  # noqa: F401
from .business import Business, LoyaltyRule, LoyaltyRuleType, Offer  # noqa: F401
from .transaction import Transaction, TransactionType  # noqa: F401
from .redemption import RedeemedOffer, RedemptionCode  # noqa: F401
from .mukando import (  # noqa: F401
    ContributionInterval,
    MukandoContribution,
    MukandoGroup,
    MukandoGroupStatus,
    MukandoMember,
)
from .badge import Badge, BadgeCategory, CustomerBadge  # noqa: F401
from .audit import AiInsight, AuditLog  # noqa: F401
