"""
Database models package.
"""

from tally.models.category import Category, CategoryType
from tally.models.transaction import Transaction, ReviewStatus
from tally.models.recurring import RecurringEntity, Cadence
from tally.models.rule import CategorizationRule, RuleMatchType, RuleApplyScope
from tally.models.budget import Budget, BudgetStatus, RolloverMode

__all__ = [
    "Category",
    "CategoryType",
    "Transaction",
    "ReviewStatus",
    "RecurringEntity",
    "Cadence",
    "CategorizationRule",
    "RuleMatchType",
    "RuleApplyScope",
    "Budget",
    "BudgetStatus",
    "RolloverMode",
]
