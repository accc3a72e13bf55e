"""
TalkToJesus — Subscription Model
Local mirror of a Razorpay subscription. Rows are never deleted; status only
changes from provider data.
"""

import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, BigInteger
from sqlalchemy.orm import relationship

from app.core.database import Base


class SubscriptionStatus(str, enum.Enum):
    CREATED = "created"
    AUTHENTICATED = "authenticated"
    ACTIVE = "active"
    PENDING = "pending"
    HALTED = "halted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PAUSED = "paused"
    RESUMED = "resumed"

    @classmethod
    def parse(cls, value):
        """Return the member for ``value`` or None if it is not a known status."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=True)
    razorpay_subscription_id = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(String(20), default=SubscriptionStatus.CREATED.value, nullable=False)

    # Provider billing-cycle timestamps, Unix seconds as Razorpay sends them
    current_start = Column(BigInteger, nullable=True)
    current_end = Column(BigInteger, nullable=True)
    charge_at = Column(BigInteger, nullable=True)
    start_at = Column(BigInteger, nullable=True)
    end_at = Column(BigInteger, nullable=True)
    last_charged_at = Column(BigInteger, nullable=True)  # only moves forward

    quantity = Column(Integer, default=1, nullable=False)
    total_count = Column(Integer, default=12, nullable=False)
    paid_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    user = relationship("User", back_populates="subscriptions")
    plan = relationship("Plan", lazy="joined")

    def __repr__(self):
        return f"<Subscription(id={self.id}, razorpay_id='{self.razorpay_subscription_id}', status='{self.status}')>"
