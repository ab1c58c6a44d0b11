"""
Budget database model.
"""

import uuid
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from tally.database import Base


class BudgetStatus(str, enum.Enum):
    """Budget status enumeration."""
    on_track = "on_track"
    warning = "warning"
    over_budget = "over_budget"


class RolloverMode(str, enum.Enum):
    """How the unspent (or overspent) remainder moves to the next month."""
    carry_forward = "carry_forward"
    reset_each_month = "reset_each_month"


class Budget(Base):
    """One spending limit per category per calendar month."""

    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    month = Column(Integer, nullable=False)  # 1-12
    year = Column(Integer, nullable=False)
    limit = Column(Numeric(12, 2), nullable=False)
    spent = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)  # Derived, never hand-edited
    rollover_enabled = Column(Boolean, default=False, nullable=False)
    rollover_mode = Column(Enum(RolloverMode), default=RolloverMode.reset_each_month, nullable=False)
    rollover_balance = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)  # Signed
    status = Column(Enum(BudgetStatus), default=BudgetStatus.on_track, nullable=False)
    is_closed = Column(Boolean, default=False, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="budgets")

    __table_args__ = (
        UniqueConstraint("user_id", "category_id", "month", "year", name="uq_budget_category_period"),
    )
