"""
Transaction database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Text, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from tally.database import Base


class ReviewStatus(str, enum.Enum):
    """Review status enumeration."""
    unreviewed = "unreviewed"
    reviewed = "reviewed"


class Transaction(Base):
    """
    Transaction model.

    Amount, date, name and pending flag are facts from the bank and are never
    rewritten by the engine. Category, transfer, hidden and review fields are
    the classification overlay.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    account_id = Column(String(128), nullable=False)

    # Facts
    amount = Column(Numeric(12, 2), nullable=False)  # Positive = expense, negative = income
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Merchant / payee display name
    raw_description = Column(Text, nullable=True)
    is_pending = Column(Boolean, default=False, nullable=False)

    # Classification overlay
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    is_transfer = Column(Boolean, default=False, nullable=False)
    transfer_match_id = Column(String(36), nullable=True)
    is_hidden = Column(Boolean, default=False, nullable=False)
    review_status = Column(Enum(ReviewStatus), default=ReviewStatus.unreviewed, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="transactions")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_user_date", "user_id", "date"),
        Index("idx_transaction_category", "category_id"),
    )

    @property
    def display_name(self) -> str:
        return self.name or self.raw_description or ""

    @property
    def is_expense(self) -> bool:
        return self.amount is not None and self.amount > 0
