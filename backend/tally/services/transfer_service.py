"""Service for matching transfers between a user's own accounts."""

import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tally.config import settings
from tally.exceptions import RecomputeFailedError
from tally.models.transaction import Transaction
from tally.schemas.transfer import TransferMatch
from tally.services.locks import single_flight
from tally.utils.money import amounts_equal, days_between, to_decimal

logger = logging.getLogger(__name__)

MATCH_CONFIDENCE = 0.9


def _sign(amount) -> int:
    value = to_decimal(amount)
    return (value > 0) - (value < 0)


def is_transfer_pair(a: Transaction, b: Transaction, max_day_gap: int = 3) -> bool:
    """Mirrored amount, opposite direction, and close in time."""
    return (
        amounts_equal(abs(to_decimal(a.amount)), abs(to_decimal(b.amount)))
        and _sign(a.amount) != _sign(b.amount)
        and days_between(a.date, b.date) <= max_day_gap
    )


def find_transfer_pairs(
    transactions: Sequence[Transaction],
    max_day_gap: int = 3
) -> List[TransferMatch]:
    """
    Pair transactions greedily in input order.

    The first compatible partner wins and a matched transaction leaves the
    pool, so the result depends on input order. With three or more equal
    amounts in the window this can pair differently than a global optimum
    would. Callers pass a stable ordering.
    """
    candidates = []
    for txn in transactions:
        if txn.is_transfer:
            continue
        if not isinstance(txn.date, date) or txn.amount is None:
            logger.warning("Skipping transaction %s with missing date or amount", txn.id)
            continue
        candidates.append(txn)

    matches = []
    matched = set()
    for i, a in enumerate(candidates):
        if a.id in matched:
            continue
        for b in candidates[i + 1:]:
            if b.id in matched:
                continue
            if is_transfer_pair(a, b, max_day_gap):
                matches.append(TransferMatch(
                    from_id=a.id,
                    to_id=b.id,
                    amount=abs(to_decimal(a.amount)),
                    confidence=MATCH_CONFIDENCE,
                ))
                matched.add(a.id)
                matched.add(b.id)
                break
    return matches


def recompute_transfers(
    db: Session,
    user_id: str,
    today: Optional[date] = None
) -> List[TransferMatch]:
    """
    Flag transfer pairs among the user's recent, unmatched transactions.

    Already-flagged transactions are not candidates, so re-runs never re-pair
    existing matches.
    """
    today = today or date.today()
    cutoff = today - timedelta(days=settings.transfer_window_days)

    with single_flight("transfers", user_id):
        transactions = db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.date >= cutoff,
            Transaction.is_transfer == False
        ).order_by(Transaction.date, Transaction.id).all()

        matches = find_transfer_pairs(transactions, settings.transfer_max_day_gap)
        by_id = {t.id: t for t in transactions}

        try:
            for match in matches:
                by_id[match.from_id].is_transfer = True
                by_id[match.from_id].transfer_match_id = match.to_id
                by_id[match.to_id].is_transfer = True
                by_id[match.to_id].transfer_match_id = match.from_id
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Transfer recompute failed for user %s: %s", user_id, e)
            raise RecomputeFailedError("transfer recompute", user_id, e) from e

    logger.info(
        "Transfer recompute for user %s: %d candidates, %d pairs",
        user_id, len(transactions), len(matches)
    )
    return matches
