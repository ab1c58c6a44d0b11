"""
Budget API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from tally.database import get_db
from tally.models.budget import Budget
from tally.schemas.budget import BudgetCreate, BudgetResponse, BudgetCloseResponse, RolloverEnable
from tally.services import budget_service

router = APIRouter(prefix="/users/{user_id}/budgets", tags=["budgets"])


def to_response(budget: Budget) -> BudgetResponse:
    response = BudgetResponse.model_validate(budget)
    effective, remaining, progress = budget_service.budget_figures(budget)
    response.effective_limit = effective
    response.remaining = remaining
    response.progress = progress
    return response


@router.get("", response_model=List[BudgetResponse])
def list_budgets(
    user_id: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1900, le=9999),
    db: Session = Depends(get_db)
):
    """List a month's budgets by category."""
    return [to_response(b) for b in budget_service.list_budgets(db, user_id, month, year)]


@router.post("", response_model=BudgetResponse, status_code=201)
def create_budget(
    user_id: str,
    data: BudgetCreate,
    db: Session = Depends(get_db)
):
    """Create the budget for a category and month."""
    try:
        budget = budget_service.create_budget(db, user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return to_response(budget)


@router.post("/recompute", response_model=List[BudgetResponse])
def recompute_month(
    user_id: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1900, le=9999),
    db: Session = Depends(get_db)
):
    """Recompute every open budget for a month."""
    budgets = budget_service.recompute_month(db, user_id, month, year)
    return [to_response(b) for b in budgets]


@router.get("/{budget_id}", response_model=BudgetResponse)
def get_budget(
    user_id: str,
    budget_id: str,
    db: Session = Depends(get_db)
):
    return to_response(budget_service.get_budget(db, user_id, budget_id))


@router.post("/{budget_id}/recompute", response_model=BudgetResponse)
def recompute_budget(
    user_id: str,
    budget_id: str,
    db: Session = Depends(get_db)
):
    """Recompute spent and status from the month's transactions."""
    return to_response(budget_service.recompute_budget(db, user_id, budget_id))


@router.post("/{budget_id}/rollover/enable", response_model=BudgetResponse)
def enable_rollover(
    user_id: str,
    budget_id: str,
    data: Optional[RolloverEnable] = None,
    db: Session = Depends(get_db)
):
    """Turn rollover on; the balance moves at the next close."""
    data = data or RolloverEnable()
    return to_response(budget_service.enable_rollover(db, user_id, budget_id, data.rollover_mode))


@router.post("/{budget_id}/close", response_model=BudgetCloseResponse)
def close_budget(
    user_id: str,
    budget_id: str,
    db: Session = Depends(get_db)
):
    """Close the month and seed next month's rollover balance."""
    closed, following = budget_service.close_budget_month(db, user_id, budget_id)
    return BudgetCloseResponse(closed=to_response(closed), next=to_response(following))
