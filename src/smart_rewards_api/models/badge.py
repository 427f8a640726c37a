"""Achievement badges and the customers who earned them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
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


class BadgeCategory(str, Enum):
    ACTIVITY = "activity"
    SOCIAL = "social"
    MILESTONE = "milestone"
    SPECIAL = "special"


class Badge(Base):
    __tablename__ = "badges"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    icon = Column(String(32), nullable=False, default="award")
    category = Column(SqlEnum(BadgeCategory, name="badge_category"), nullable=False)
    criteria_json = Column(JSON, nullable=False, default=dict)
    points_reward = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class CustomerBadge(Base):
    __tablename__ = "customer_badges"
    __table_args__ = (
        UniqueConstraint("customer_id", "badge_id", name="uq_customer_badges_customer_badge"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.user_id", ondelete="CASCADE"), nullable=False, index=True)
    badge_id = Column(UUID(as_uuid=True), ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    earned_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    badge = relationship("Badge")
