"""
Categorization rule schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from tally.models.rule import RuleMatchType, RuleApplyScope


class RuleCreate(BaseModel):
    """Schema for creating a rule."""
    priority: int = 100
    match_type: RuleMatchType
    match_value: str = Field(..., min_length=1, max_length=255)
    action_category_id: str
    action_tags: List[str] = Field(default_factory=list)
    apply_scope: RuleApplyScope = RuleApplyScope.new_only
    enabled: bool = True


class RuleUpdate(BaseModel):
    """Schema for editing a rule. Omitted fields are left as they are."""
    priority: Optional[int] = None
    match_type: Optional[RuleMatchType] = None
    match_value: Optional[str] = Field(None, min_length=1, max_length=255)
    action_category_id: Optional[str] = None
    action_tags: Optional[List[str]] = None
    apply_scope: Optional[RuleApplyScope] = None
    enabled: Optional[bool] = None


class RuleResponse(BaseModel):
    id: str
    user_id: str
    priority: int
    match_type: RuleMatchType
    match_value: str
    action_category_id: str
    action_tags: List[str] = []
    apply_scope: RuleApplyScope
    enabled: bool
    last_applied_at: Optional[datetime] = None
    last_applied_count: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RuleList(BaseModel):
    items: list[RuleResponse]
    total: int


class RuleApplyResponse(BaseModel):
    """Result of applying one rule across a user's history."""
    rule_id: str
    matched: int
    changed: int
    last_applied_at: datetime


class CategorizeResponse(BaseModel):
    transaction_id: str
    category_id: Optional[str] = None
    rule_matched: bool
