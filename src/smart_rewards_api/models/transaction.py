"""Point ledger transactions."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.db.base import Base


class TransactionType(str, Enum):
    """Ledger transaction kinds."""

    EARN = "earn"
    REDEMPTION = "redemption"
    ADJUSTMENT = "adjustment"
    CHECK_IN = "check_in"
    BADGE_EARNED = "badge_earned"
    MUKANDO_CONTRIBUTION = "mukando_contribution"
    MUKANDO_PAYOUT = "mukando_payout"
    FOLLOW_BONUS = "follow_bonus"


class Transaction(Base):
    """A movement of loyalty points for a customer, optionally at a business."""

    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(UUID(as_uuid=True), ForeignKey("businesses.user_id", ondelete="SET NULL"), nullable=True, index=True)
    transaction_type = Column(
        SqlEnum(TransactionType, name="transaction_type"),
        nullable=False,
        default=TransactionType.EARN,
        server_default=TransactionType.EARN.name,
    )
    transaction_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    points_earned = Column(Integer, nullable=False, default=0, server_default="0")
    points_deducted = Column(Integer, nullable=False, default=0, server_default="0")
    offer_id = Column(UUID(as_uuid=True), ForeignKey("offers.id", ondelete="SET NULL"), nullable=True)
    mukando_group_id = Column(UUID(as_uuid=True), ForeignKey("mukando_groups.id", ondelete="SET NULL"), nullable=True)
    loyalty_points_awarded = Column(Integer, nullable=False, default=0, server_default="0")
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    customer = relationship("Customer")
    business = relationship("Business")
    offer = relationship("Offer")
