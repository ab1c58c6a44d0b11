"""
Budget schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from tally.models.budget import BudgetStatus, RolloverMode


class BudgetCreate(BaseModel):
    """Rollover balance is not accepted here; only a month close seeds it."""
    model_config = ConfigDict(extra="forbid")

    category_id: str
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=9999)
    limit: Decimal = Field(..., ge=0)
    rollover_enabled: bool = False
    rollover_mode: RolloverMode = RolloverMode.reset_each_month


class RolloverEnable(BaseModel):
    """Turn rollover on for an open budget."""
    rollover_mode: RolloverMode = RolloverMode.carry_forward


class BudgetResponse(BaseModel):
    id: str
    user_id: str
    category_id: str
    month: int
    year: int
    limit: Decimal
    spent: Decimal
    rollover_enabled: bool
    rollover_mode: RolloverMode
    rollover_balance: Decimal
    status: BudgetStatus
    is_closed: bool
    closed_at: Optional[datetime] = None

    # Computed fields added by API
    effective_limit: Optional[Decimal] = None
    remaining: Optional[Decimal] = None
    progress: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class BudgetCloseResponse(BaseModel):
    closed: BudgetResponse
    next: BudgetResponse
