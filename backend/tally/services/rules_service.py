"""Service for rule-based transaction categorization."""

import logging
import re
import uuid
from datetime import datetime
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tally.exceptions import RecomputeFailedError, RecordNotFoundError
from tally.models.rule import CategorizationRule, RuleMatchType, RuleApplyScope
from tally.models.transaction import Transaction
from tally.schemas.rule import RuleCreate, RuleUpdate
from tally.services.locks import single_flight

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return None


def validate_rule_pattern(match_type: RuleMatchType, match_value: str) -> None:
    """Reject a regex rule whose pattern does not compile."""
    if match_type == RuleMatchType.regex:
        try:
            re.compile(match_value)
        except re.error as e:
            raise ValueError(f"match_value is not a valid regex pattern: {e}")


def rule_matches(rule: CategorizationRule, txn: Transaction) -> bool:
    """Evaluate a single rule predicate. Never raises on a bad pattern."""
    if rule.match_type == RuleMatchType.merchant:
        return rule.match_value.lower() in txn.display_name.lower()
    if rule.match_type == RuleMatchType.regex:
        compiled = _compile(rule.match_value)
        if compiled is None:
            logger.warning("Rule %s has an invalid regex %r, treating as no match", rule.id, rule.match_value)
            return False
        return compiled.search(txn.display_name) is not None
    if rule.match_type == RuleMatchType.account:
        return txn.account_id == rule.match_value
    # MCC data is not available to this engine
    return False


def order_rules(rules: Sequence[CategorizationRule]) -> List[CategorizationRule]:
    """Enabled rules by ascending priority; ties keep their input order."""
    return sorted((r for r in rules if r.enabled), key=lambda r: r.priority)


def match_category(rules: Sequence[CategorizationRule], txn: Transaction) -> Optional[str]:
    """Category of the first matching rule, or None."""
    for rule in order_rules(rules):
        if rule_matches(rule, txn):
            return rule.action_category_id
    return None


def get_enabled_rules(db: Session, user_id: str) -> List[CategorizationRule]:
    return db.query(CategorizationRule).filter(
        CategorizationRule.user_id == user_id,
        CategorizationRule.enabled == True
    ).order_by(
        CategorizationRule.priority,
        CategorizationRule.created_at,
        CategorizationRule.id
    ).all()


def get_rules(db: Session, user_id: str) -> List[CategorizationRule]:
    return db.query(CategorizationRule).filter(
        CategorizationRule.user_id == user_id
    ).order_by(
        CategorizationRule.priority,
        CategorizationRule.created_at,
        CategorizationRule.id
    ).all()


def create_rule(db: Session, user_id: str, data: RuleCreate) -> CategorizationRule:
    validate_rule_pattern(data.match_type, data.match_value)

    rule = CategorizationRule(
        id=str(uuid.uuid4()),
        user_id=user_id,
        priority=data.priority,
        match_type=data.match_type,
        match_value=data.match_value,
        action_category_id=data.action_category_id,
        action_tags=list(data.action_tags),
        apply_scope=data.apply_scope,
        enabled=data.enabled,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def get_rule(db: Session, user_id: str, rule_id: str) -> CategorizationRule:
    rule = db.query(CategorizationRule).filter(
        CategorizationRule.id == rule_id,
        CategorizationRule.user_id == user_id
    ).first()
    if not rule:
        raise RecordNotFoundError("Rule", rule_id)
    return rule


def update_rule(db: Session, user_id: str, rule_id: str, data: RuleUpdate) -> CategorizationRule:
    """
    Edit a rule in place.

    Only the fields present in `data` change. The resulting match type and
    value are validated together, so switching a merchant rule to regex
    re-checks its pattern.
    """
    rule = get_rule(db, user_id, rule_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    validate_rule_pattern(
        changes.get("match_type", rule.match_type),
        changes.get("match_value", rule.match_value)
    )

    for field, value in changes.items():
        setattr(rule, field, value)

    db.commit()
    db.refresh(rule)
    logger.info("Updated rule %s for user %s: %s", rule_id, user_id, sorted(changes))
    return rule


def categorize_on_ingest(
    db: Session,
    user_id: str,
    transactions: Sequence[Transaction]
) -> int:
    """
    Assign categories to newly ingested transactions.

    Consults every enabled rule regardless of apply scope. Transactions that
    already carry a category are left alone. The caller commits.
    """
    rules = get_enabled_rules(db, user_id)
    assigned = 0
    for txn in transactions:
        if txn.category_id:
            continue
        category_id = match_category(rules, txn)
        if category_id:
            txn.category_id = category_id
            assigned += 1
    return assigned


def recategorize_transaction(db: Session, user_id: str, transaction_id: str) -> Optional[str]:
    """Re-run the rules against one stored transaction."""
    txn = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.user_id == user_id
    ).first()
    if not txn:
        raise RecordNotFoundError("Transaction", transaction_id)

    category_id = match_category(get_enabled_rules(db, user_id), txn)
    if category_id and category_id != txn.category_id:
        txn.category_id = category_id
        db.commit()
    return category_id


def apply_rule_to_history(
    db: Session,
    user_id: str,
    rule_id: str,
    now: Optional[datetime] = None
) -> Tuple[CategorizationRule, int, int]:
    """
    Run one all-history rule over every transaction the user has.

    Matching transactions get the rule's category. Returns the rule, the
    number matched and the number whose category actually changed.
    """
    rule = get_rule(db, user_id, rule_id)
    if not rule.enabled:
        raise ValueError(f"Rule {rule_id} is disabled")
    if rule.apply_scope != RuleApplyScope.all_history:
        raise ValueError(f"Rule {rule_id} applies to new transactions only")

    with single_flight("rules", user_id):
        transactions = db.query(Transaction).filter(
            Transaction.user_id == user_id
        ).order_by(Transaction.date, Transaction.id).all()

        matched = 0
        changed = 0
        try:
            for txn in transactions:
                if not rule_matches(rule, txn):
                    continue
                matched += 1
                if txn.category_id != rule.action_category_id:
                    txn.category_id = rule.action_category_id
                    changed += 1

            rule.last_applied_at = now or datetime.utcnow()
            rule.last_applied_count = changed
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Applying rule %s failed for user %s: %s", rule_id, user_id, e)
            raise RecomputeFailedError("rule apply", user_id, e) from e

    logger.info("Rule %s applied for user %s: %d matched, %d changed", rule_id, user_id, matched, changed)
    return rule, matched, changed
