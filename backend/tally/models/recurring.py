"""
Recurring entity database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Enum, JSON
from tally.database import Base


class Cadence(str, enum.Enum):
    """Recurring cadence enumeration."""
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    annual = "annual"


class RecurringEntity(Base):
    """
    A subscription or bill, either detected from history or added by the user.

    Detected entities (is_user_created False) are replaced wholesale on every
    recompute. User-created reminders are never touched by detection.
    """

    __tablename__ = "recurring_entities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    merchant_name = Column(String(255), nullable=False)
    cadence = Column(Enum(Cadence), nullable=False)
    last_amount = Column(Numeric(12, 2), nullable=False)
    next_due_date = Column(Date, nullable=False, index=True)
    is_subscription = Column(Boolean, default=False, nullable=False)
    price_change_flag = Column(Boolean, default=False, nullable=False)
    price_history = Column(JSON, nullable=False, default=list)  # [{"date": "YYYY-MM-DD", "amount": "9.99"}]
    is_user_created = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
