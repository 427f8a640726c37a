"""Customer profile and business follow models."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.db.base import Base


class Customer(Base):
    """Loyalty wallet and preferences for a customer account."""

    __tablename__ = "customers"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    full_name = Column(String, nullable=True)
    phone_number = Column(String(32), nullable=True)
    interests = Column(JSON, nullable=False, default=list)
    loyalty_points = Column(Integer, nullable=False, default=0, server_default="0")
    eco_points = Column(Integer, nullable=False, default=0, server_default="0")
    loyalty_tier = Column(String(length=16), nullable=False, default="Bronze", server_default="Bronze")
    referral_code = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="customer")
    follows = relationship("CustomerBusinessRelation", back_populates="customer", cascade="all, delete-orphan")


class CustomerBusinessRelation(Base):
    """A customer following a business."""

    __tablename__ = "customer_business_relations"

    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), primary_key=True)
    business_id = Column(UUID(as_uuid=True), ForeignKey("businesses.user_id", ondelete="CASCADE"), primary_key=True)
    followed_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="follows")
    business = relationship("Business", back_populates="followers")
