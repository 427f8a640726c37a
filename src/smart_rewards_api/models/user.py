from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from smart_rewards_api.core.clock import utcnow
from smart_rewards_api.db.base import Base


class UserTypeEnum(str, Enum):
    CUSTOMER = "customer"
    BUSINESS = "business"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    user_type = Column(String(length=16), nullable=False, default=UserTypeEnum.CUSTOMER.value, server_default=UserTypeEnum.CUSTOMER.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="user", uselist=False, cascade="all, delete-orphan")
    business = relationship("Business", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def is_customer(self) -> bool:
        return self.user_type == UserTypeEnum.CUSTOMER.value

    @property
    def is_business(self) -> bool:
        return self.user_type == UserTypeEnum.BUSINESS.value
