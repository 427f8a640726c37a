"""Mukando rotating-savings group models."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.db.base import Base


class MukandoGroupStatus(str, Enum):
    """Lifecycle statuses for Mukando groups."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ContributionInterval(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MukandoGroup(Base):
    """Savings group hosted by a business; members take turns receiving pooled rewards."""

    __tablename__ = "mukando_groups"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(UUID(as_uuid=True), ForeignKey("businesses.user_id", ondelete="CASCADE"), nullable=False, index=True)
    goal_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    goal_points_required = Column(Integer, nullable=False)
    contribution_interval = Column(SqlEnum(ContributionInterval, name="mukando_contribution_interval"), nullable=False)
    term_length = Column(Integer, nullable=False)
    status = Column(
        SqlEnum(MukandoGroupStatus, name="mukando_group_status"),
        nullable=False,
        default=MukandoGroupStatus.PENDING_APPROVAL,
        server_default=MukandoGroupStatus.PENDING_APPROVAL.name,
    )
    max_members = Column(Integer, nullable=True)
    discount_rate = Column(Float, nullable=True)
    total_mukando_points = Column(Integer, nullable=False, default=0, server_default="0")
    total_loyalty_points_earned = Column(Integer, nullable=False, default=0, server_default="0")
    current_payout_turn = Column(Integer, nullable=False, default=0, server_default="0")
    approved_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    business = relationship("Business")
    creator = relationship("Customer")
    members = relationship(
        "MukandoMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="MukandoMember.payout_order",
    )
    contributions = relationship("MukandoContribution", back_populates="group", cascade="all, delete-orphan")


class MukandoMember(Base):
    __tablename__ = "mukando_members"
    __table_args__ = (
        UniqueConstraint("group_id", "customer_id", name="uq_mukando_members_group_customer"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    group_id = Column(UUID(as_uuid=True), ForeignKey("mukando_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    payout_order = Column(Integer, nullable=False)
    points_contributed = Column(Integer, nullable=False, default=0, server_default="0")
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    group = relationship("MukandoGroup", back_populates="members")
    customer = relationship("Customer")


class MukandoContribution(Base):
    __tablename__ = "mukando_contributions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    group_id = Column(UUID(as_uuid=True), ForeignKey("mukando_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    points_amount = Column(Integer, nullable=False)
    loyalty_points_awarded = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    group = relationship("MukandoGroup", back_populates="contributions")
