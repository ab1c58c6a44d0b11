"""
Pydantic schemas package.
"""

from tally.schemas.recurring import (
    PricePoint,
    DetectedRecurring,
    RecurringCreate,
    RecurringResponse,
    RecurringRecomputeResponse,
    UpcomingRecurringResponse,
)
from tally.schemas.transfer import TransferMatch, TransferRecomputeResponse
from tally.schemas.rule import (
    RuleCreate,
    RuleUpdate,
    RuleResponse,
    RuleList,
    RuleApplyResponse,
    CategorizeResponse,
)
from tally.schemas.budget import (
    BudgetCreate,
    RolloverEnable,
    BudgetResponse,
    BudgetCloseResponse,
)

__all__ = [
    "PricePoint",
    "DetectedRecurring",
    "RecurringCreate",
    "RecurringResponse",
    "RecurringRecomputeResponse",
    "UpcomingRecurringResponse",
    "TransferMatch",
    "TransferRecomputeResponse",
    "RuleCreate",
    "RuleUpdate",
    "RuleResponse",
    "RuleList",
    "RuleApplyResponse",
    "CategorizeResponse",
    "BudgetCreate",
    "RolloverEnable",
    "BudgetResponse",
    "BudgetCloseResponse",
]
