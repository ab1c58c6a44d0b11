"""
Categorization rule database model.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum, ForeignKey, JSON
from tally.database import Base


class RuleMatchType(str, enum.Enum):
    """What a rule's match value is compared against."""
    merchant = "merchant"
    regex = "regex"
    account = "account"
    mcc = "mcc"


class RuleApplyScope(str, enum.Enum):
    """Whether a rule may be re-run over existing history."""
    new_only = "new_only"
    all_history = "all_history"


class CategorizationRule(Base):
    """User categorization rule. Lower priority runs first."""

    __tablename__ = "categorization_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    priority = Column(Integer, default=100, nullable=False)
    match_type = Column(Enum(RuleMatchType), nullable=False)
    match_value = Column(String(255), nullable=False)
    action_category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    action_tags = Column(JSON, nullable=False, default=list)  # ["business", "reimbursable"]
    apply_scope = Column(Enum(RuleApplyScope), default=RuleApplyScope.new_only, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    last_applied_at = Column(DateTime, nullable=True)
    last_applied_count = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
