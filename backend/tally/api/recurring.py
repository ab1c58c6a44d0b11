"""API endpoints for recurring charges."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from tally.database import get_db
from tally.schemas.recurring import (
    RecurringCreate,
    RecurringResponse,
    RecurringRecomputeResponse,
    UpcomingRecurringResponse,
)
from tally.services import recurring_service

router = APIRouter(prefix="/users/{user_id}/recurring", tags=["recurring"])


@router.get("", response_model=List[RecurringResponse])
def list_recurring(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Get all recurring entities, soonest due first."""
    return recurring_service.get_recurring(db, user_id)


@router.post("", response_model=RecurringResponse, status_code=201)
def create_recurring(
    user_id: str,
    data: RecurringCreate,
    db: Session = Depends(get_db)
):
    """Add a user-created reminder."""
    return recurring_service.create_user_recurring(db, user_id, data)


@router.post("/recompute", response_model=RecurringRecomputeResponse)
def recompute_recurring(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Rebuild detected recurring charges from the last year of transactions."""
    detected, replaced = recurring_service.recompute_recurring(db, user_id)
    return RecurringRecomputeResponse(
        detected_count=len(detected),
        replaced_count=replaced,
        recurring=detected
    )


@router.get("/upcoming", response_model=UpcomingRecurringResponse)
def upcoming_recurring(
    user_id: str,
    days: int = Query(30, ge=1, le=366),
    db: Session = Depends(get_db)
):
    """Recurring charges due in the next N days."""
    upcoming = recurring_service.get_upcoming_recurring(db, user_id, days)
    return UpcomingRecurringResponse(
        upcoming=[RecurringResponse.model_validate(e) for e in upcoming],
        total=len(upcoming)
    )
