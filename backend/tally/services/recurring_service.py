"""Service for recurring charge detection and management."""

import logging
import re
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tally.config import settings
from tally.exceptions import RecomputeFailedError
from tally.models.recurring import RecurringEntity, Cadence
from tally.models.transaction import Transaction
from tally.schemas.recurring import DetectedRecurring, PricePoint, RecurringCreate
from tally.services.locks import single_flight
from tally.utils.money import add_months, amounts_differ, to_decimal

logger = logging.getLogger(__name__)

# Store numbers and similar trailing tokens: "STARBUCKS #1234", "SHELL 00451"
_TRAILING_NUMBER = re.compile(r"\s+#?\d+$")

# Groups whose mean absolute deviation exceeds this share of the mean interval are noise
MAX_DEVIATION_RATIO = 0.5

# Upper bounds (inclusive) on the mean interval in days
WEEKLY_MAX_DAYS = 9
MONTHLY_MAX_DAYS = 35
QUARTERLY_MAX_DAYS = 100

# Deterministic ids so an unchanged history regenerates identical rows
_ENTITY_NAMESPACE = uuid.UUID("6f1c1a52-8f7e-4d0b-9a57-3c1f0e6b2d41")


def normalize_merchant(name: Optional[str]) -> str:
    """Collapse repeat visits to one merchant into a single grouping key."""
    return _TRAILING_NUMBER.sub("", (name or "").lower().strip())


def interval_stats(intervals: Sequence[int]) -> Tuple[float, float]:
    """Return the mean interval and the mean absolute deviation from it."""
    mean = sum(intervals) / len(intervals)
    deviation = sum(abs(i - mean) for i in intervals) / len(intervals)
    return mean, deviation


def is_regular(intervals: Sequence[int]) -> bool:
    """
    Whether the spacing is consistent enough to call recurring.

    A single interval has zero deviation and always passes: two data points
    cannot prove irregularity.
    """
    mean, deviation = interval_stats(intervals)
    return deviation <= mean * MAX_DEVIATION_RATIO


def classify_cadence(mean_interval: float) -> Cadence:
    if mean_interval <= WEEKLY_MAX_DAYS:
        return Cadence.weekly
    if mean_interval <= MONTHLY_MAX_DAYS:
        return Cadence.monthly
    if mean_interval <= QUARTERLY_MAX_DAYS:
        return Cadence.quarterly
    return Cadence.annual


def calculate_next_due(last_date: date, cadence: Cadence) -> date:
    """Advance by one cadence period; month arithmetic clamps to month end."""
    if cadence == Cadence.weekly:
        return last_date + timedelta(days=7)
    if cadence == Cadence.monthly:
        return add_months(last_date, 1)
    if cadence == Cadence.quarterly:
        return add_months(last_date, 3)
    return add_months(last_date, 12)


def _is_analyzable(txn) -> bool:
    if not isinstance(getattr(txn, "date", None), date) or getattr(txn, "amount", None) is None:
        logger.warning("Skipping transaction %s with missing date or amount", getattr(txn, "id", None))
        return False
    return True


def group_by_merchant(transactions: Sequence[Transaction]) -> Dict[str, List[Transaction]]:
    """
    Group usable, non-transfer transactions by normalized merchant.

    Each group is ordered by (date, id); groups keep first-seen order.
    """
    usable = [t for t in transactions if _is_analyzable(t) and not t.is_transfer]
    usable.sort(key=lambda t: (t.date, str(t.id)))

    groups: Dict[str, List[Transaction]] = {}
    for txn in usable:
        groups.setdefault(normalize_merchant(txn.display_name), []).append(txn)
    return groups


def analyze_group(key: str, txns: Sequence[Transaction]) -> Optional[DetectedRecurring]:
    """Classify one merchant group, or None when it carries no recurring signal."""
    if len(txns) < 2:
        return None

    intervals = [(b.date - a.date).days for a, b in zip(txns, txns[1:])]
    if not is_regular(intervals):
        logger.debug("Merchant %r rejected as irregular: intervals %s", key, intervals)
        return None

    mean, _ = interval_stats(intervals)
    cadence = classify_cadence(mean)
    last = txns[-1]
    last_amount = to_decimal(last.amount)

    return DetectedRecurring(
        merchant_key=key,
        merchant_name=last.display_name,
        cadence=cadence,
        last_amount=last_amount,
        next_due_date=calculate_next_due(last.date, cadence),
        price_change_flag=any(amounts_differ(t.amount, last_amount) for t in txns),
        price_history=[PricePoint(date=t.date, amount=to_decimal(t.amount)) for t in txns],
    )


def detect_recurring(transactions: Sequence[Transaction]) -> List[DetectedRecurring]:
    """Find recurring charges in a transaction history."""
    detected = []
    for key, txns in group_by_merchant(transactions).items():
        result = analyze_group(key, txns)
        if result is not None:
            detected.append(result)
    return detected


def _entity_from_detection(user_id: str, detection: DetectedRecurring) -> RecurringEntity:
    return RecurringEntity(
        id=str(uuid.uuid5(_ENTITY_NAMESPACE, f"{user_id}:{detection.merchant_key}")),
        user_id=user_id,
        merchant_name=detection.merchant_name,
        cadence=detection.cadence,
        last_amount=detection.last_amount,
        next_due_date=detection.next_due_date,
        is_subscription=True,
        price_change_flag=detection.price_change_flag,
        price_history=[p.model_dump(mode="json") for p in detection.price_history],
        is_user_created=False,
    )


def recompute_recurring(
    db: Session,
    user_id: str,
    today: Optional[date] = None
) -> Tuple[List[DetectedRecurring], int]:
    """
    Rebuild the detected recurring entities for a user.

    Deletes every detector-produced entity and inserts the fresh set in one
    commit. A re-detected entity keeps the id and created_at of the row it
    replaces. User-created reminders are left alone. Returns the detections and
    the number of entities replaced.
    """
    today = today or date.today()
    cutoff = today - timedelta(days=settings.recurring_lookback_days)

    with single_flight("recurring", user_id):
        transactions = db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.date >= cutoff,
            Transaction.is_transfer == False
        ).order_by(Transaction.date, Transaction.id).all()

        detected = detect_recurring(transactions)

        try:
            stale = db.query(RecurringEntity).filter(
                RecurringEntity.user_id == user_id,
                RecurringEntity.is_user_created == False
            ).all()
            first_seen = {entity.id: entity.created_at for entity in stale}
            for entity in stale:
                db.delete(entity)
            db.flush()

            fresh = [_entity_from_detection(user_id, d) for d in detected]
            for entity in fresh:
                if entity.id in first_seen:
                    entity.created_at = first_seen[entity.id]
            db.add_all(fresh)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Recurring recompute failed for user %s: %s", user_id, e)
            raise RecomputeFailedError("recurring recompute", user_id, e) from e

    logger.info(
        "Recurring recompute for user %s: %d transactions, %d detected, %d replaced",
        user_id, len(transactions), len(detected), len(stale)
    )
    return detected, len(stale)


def create_user_recurring(db: Session, user_id: str, data: RecurringCreate) -> RecurringEntity:
    """Add a manual reminder that detection never replaces."""
    entity = RecurringEntity(
        id=str(uuid.uuid4()),
        user_id=user_id,
        merchant_name=data.merchant_name,
        cadence=data.cadence,
        last_amount=data.last_amount,
        next_due_date=data.next_due_date,
        is_subscription=data.is_subscription,
        price_change_flag=False,
        price_history=[],
        is_user_created=True,
    )
    db.add(entity)
    db.commit()
    db.refresh(entity)
    return entity


def get_recurring(db: Session, user_id: str) -> List[RecurringEntity]:
    return db.query(RecurringEntity).filter(
        RecurringEntity.user_id == user_id
    ).order_by(RecurringEntity.next_due_date, RecurringEntity.id).all()


def get_upcoming_recurring(
    db: Session,
    user_id: str,
    days: int = 30,
    today: Optional[date] = None
) -> List[RecurringEntity]:
    """Recurring charges due between today and `days` from now, soonest first."""
    today = today or date.today()
    until = today + timedelta(days=days)

    return db.query(RecurringEntity).filter(
        RecurringEntity.user_id == user_id,
        RecurringEntity.next_due_date >= today,
        RecurringEntity.next_due_date <= until
    ).order_by(RecurringEntity.next_due_date, RecurringEntity.id).all()
