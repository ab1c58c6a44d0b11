"""Pydantic schemas for transfer matching."""

from pydantic import BaseModel
from typing import List
from decimal import Decimal


class TransferMatch(BaseModel):
    """Two transactions judged to be one movement between the user's accounts."""
    from_id: str
    to_id: str
    amount: Decimal
    confidence: float = 0.9


class TransferRecomputeResponse(BaseModel):
    matches_found: int
    matches: List[TransferMatch]
