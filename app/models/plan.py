"""
TalkToJesus — Plan Model
Razorpay plan catalogue. Read-only for the application.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean

from app.core.database import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)  # minor units, e.g. 49900 paise = Rs 499
    razorpay_plan_id = Column(String(255), nullable=True)
    interval = Column(Integer, default=1, nullable=False)
    period = Column(String(20), default="monthly", nullable=False)  # daily, weekly, monthly, yearly
    cycles = Column(Integer, default=12, nullable=False)
    is_prod = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<Plan(id={self.id}, name='{self.name}', is_prod={self.is_prod})>"
