"""Pydantic schemas for recurring entities."""

from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import date, datetime
from decimal import Decimal

from tally.models.recurring import Cadence


class PricePoint(BaseModel):
    date: date
    amount: Decimal


class DetectedRecurring(BaseModel):
    """A recurring charge found by the cadence detector."""
    merchant_key: str
    merchant_name: str
    cadence: Cadence
    last_amount: Decimal
    next_due_date: date
    price_change_flag: bool
    price_history: List[PricePoint]


class RecurringCreate(BaseModel):
    """A user-created reminder."""
    merchant_name: str = Field(..., min_length=1, max_length=255)
    cadence: Cadence = Cadence.monthly
    last_amount: Decimal
    next_due_date: date
    is_subscription: bool = False


class RecurringResponse(BaseModel):
    id: str
    user_id: str
    merchant_name: str
    cadence: Cadence
    last_amount: Decimal
    next_due_date: date
    is_subscription: bool
    price_change_flag: bool
    price_history: List[PricePoint] = []
    is_user_created: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecurringRecomputeResponse(BaseModel):
    detected_count: int
    replaced_count: int
    recurring: List[DetectedRecurring]


class UpcomingRecurringResponse(BaseModel):
    upcoming: List[RecurringResponse]
    total: int
