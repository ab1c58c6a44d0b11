"""API endpoints for transfer matching."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tally.database import get_db
from tally.schemas.transfer import TransferRecomputeResponse
from tally.services import transfer_service

router = APIRouter(prefix="/users/{user_id}/transfers", tags=["transfers"])


@router.post("/recompute", response_model=TransferRecomputeResponse)
def recompute_transfers(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Detect transfers between the user's accounts over the last 30 days."""
    matches = transfer_service.recompute_transfers(db, user_id)
    return TransferRecomputeResponse(matches_found=len(matches), matches=matches)
