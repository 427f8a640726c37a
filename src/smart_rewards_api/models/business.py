"""Business profile, loyalty rule, and offer models."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.db.base import Base


class Business(Base):
    """Merchant profile attached to a business account."""

    __tablename__ = "businesses"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    business_name = Column(String, nullable=False)
    business_category = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)
    contact_phone = Column(String(32), nullable=True)
    address = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    logo_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="business")
    offers = relationship("Offer", back_populates="business", cascade="all, delete-orphan")
    rules = relationship("LoyaltyRule", back_populates="business", cascade="all, delete-orphan")
    followers = relationship("CustomerBusinessRelation", back_populates="business", cascade="all, delete-orphan")


class LoyaltyRuleType(str, Enum):
    POINTS = "points"
    TIER = "tier"
    MILESTONE = "milestone"
    MUKANDO = "mukando"
    ECO = "eco"


class LoyaltyRule(Base):
    """Business-defined earning rule; ``points`` rules carry ``{"amount", "points"}``."""

    __tablename__ = "loyalty_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False, index=True)
    rule_type = Column(SqlEnum(LoyaltyRuleType, name="loyalty_rule_type"), nullable=False)
    rule_json = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    business = relationship("Business", back_populates="rules")


class Offer(Base):
    """Reward a business lets customers redeem for points."""

    __tablename__ = "offers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False, index=True)
    offer_name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    points_required = Column(Integer, nullable=False)
    is_redeemable = Column(Boolean, nullable=False, default=True, server_default="true")
    active_from = Column(DateTime(timezone=True), nullable=True)
    active_to = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    business = relationship("Business", back_populates="offers")
