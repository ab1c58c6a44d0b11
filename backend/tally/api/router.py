"""
Main API router.
"""

from fastapi import APIRouter
from tally.api import recurring, transfers, rules, budgets

api_router = APIRouter()

api_router.include_router(recurring.router)
api_router.include_router(transfers.router)
api_router.include_router(rules.router)
api_router.include_router(budgets.router)
