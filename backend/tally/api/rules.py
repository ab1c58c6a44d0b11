"""
Categorization rule API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tally.database import get_db
from tally.schemas.rule import (
    RuleCreate,
    RuleUpdate,
    RuleResponse,
    RuleList,
    RuleApplyResponse,
    CategorizeResponse,
)
from tally.services import rules_service

router = APIRouter(prefix="/users/{user_id}", tags=["rules"])


@router.get("/rules", response_model=RuleList)
def list_rules(
    user_id: str,
    db: Session = Depends(get_db)
):
    """List rules in evaluation order."""
    rules = rules_service.get_rules(db, user_id)
    return RuleList(
        items=[RuleResponse.model_validate(r) for r in rules],
        total=len(rules)
    )


@router.post("/rules", response_model=RuleResponse, status_code=201)
def create_rule(
    user_id: str,
    data: RuleCreate,
    db: Session = Depends(get_db)
):
    """Create a rule; regex patterns are validated up front."""
    try:
        return rules_service.create_rule(db, user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
def update_rule(
    user_id: str,
    rule_id: str,
    data: RuleUpdate,
    db: Session = Depends(get_db)
):
    """Edit priority, match, action, scope or enabled flag."""
    try:
        return rules_service.update_rule(db, user_id, rule_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/rules/{rule_id}/apply", response_model=RuleApplyResponse)
def apply_rule(
    user_id: str,
    rule_id: str,
    db: Session = Depends(get_db)
):
    """Retroactively apply an all-history rule to existing transactions."""
    try:
        rule, matched, changed = rules_service.apply_rule_to_history(db, user_id, rule_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RuleApplyResponse(
        rule_id=rule.id,
        matched=matched,
        changed=changed,
        last_applied_at=rule.last_applied_at
    )


@router.post("/transactions/{transaction_id}/categorize/recompute", response_model=CategorizeResponse)
def recompute_category(
    user_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Re-run the user's rules against one transaction."""
    category_id = rules_service.recategorize_transaction(db, user_id, transaction_id)
    return CategorizeResponse(
        transaction_id=transaction_id,
        category_id=category_id,
        rule_matched=category_id is not None
    )
