"""Service for monthly budget accounting with rollover."""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tally.exceptions import BudgetClosedError, RecomputeFailedError, RecordNotFoundError
from tally.models.budget import Budget, BudgetStatus, RolloverMode
from tally.models.transaction import Transaction
from tally.schemas.budget import BudgetCreate
from tally.services.locks import single_flight
from tally.utils.money import month_bounds, next_month, to_decimal

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = Decimal("0.8")
OVER_BUDGET_THRESHOLD = Decimal("1")

ZERO = Decimal("0")


def counts_toward_budget(txn: Transaction, category_id: str, month: int, year: int) -> bool:
    """Categorized, visible, non-transfer expense in the budget's month."""
    if not isinstance(txn.date, date) or txn.amount is None:
        logger.warning("Skipping transaction %s with missing date or amount", txn.id)
        return False
    start, end = month_bounds(month, year)
    return (
        txn.category_id == category_id
        and not txn.is_hidden
        and not txn.is_transfer
        and txn.is_expense
        and start <= txn.date < end
    )


def compute_spent(
    transactions: Sequence[Transaction],
    category_id: str,
    month: int,
    year: int
) -> Decimal:
    return sum(
        (to_decimal(t.amount) for t in transactions if counts_toward_budget(t, category_id, month, year)),
        ZERO
    )


def effective_limit(limit, rollover_balance) -> Decimal:
    return to_decimal(limit) + to_decimal(rollover_balance or 0)


def compute_remaining(limit, rollover_balance, spent) -> Decimal:
    return effective_limit(limit, rollover_balance) - to_decimal(spent)


def compute_progress(spent, effective) -> Decimal:
    """spent / effective limit clamped to [0, 1]; zero when the limit is not positive."""
    effective = to_decimal(effective)
    if effective <= 0:
        return ZERO
    return max(ZERO, min(to_decimal(spent) / effective, Decimal("1")))


def compute_status(progress: Decimal) -> BudgetStatus:
    if progress >= OVER_BUDGET_THRESHOLD:
        return BudgetStatus.over_budget
    if progress >= WARNING_THRESHOLD:
        return BudgetStatus.warning
    return BudgetStatus.on_track


def opening_rollover_balance(budget: Budget) -> Decimal:
    """
    The rollover balance the following month starts with.

    Carry-forward passes on the remainder, including a negative one: an
    overspend reduces next month's effective limit.
    """
    if not budget.rollover_enabled or budget.rollover_mode == RolloverMode.reset_each_month:
        return ZERO
    return compute_remaining(budget.limit, budget.rollover_balance, budget.spent)


def budget_figures(budget: Budget) -> Tuple[Decimal, Decimal, Decimal]:
    """Effective limit, remaining and progress for a budget as stored."""
    effective = effective_limit(budget.limit, budget.rollover_balance)
    remaining = effective - to_decimal(budget.spent)
    return effective, remaining, compute_progress(budget.spent, effective)


def apply_spent(budget: Budget, spent: Decimal) -> Budget:
    """Set spent and the status derived from it."""
    budget.spent = spent
    effective = effective_limit(budget.limit, budget.rollover_balance)
    budget.status = compute_status(compute_progress(spent, effective))
    return budget


def get_budget(db: Session, user_id: str, budget_id: str) -> Budget:
    budget = db.query(Budget).filter(
        Budget.id == budget_id,
        Budget.user_id == user_id
    ).first()
    if not budget:
        raise RecordNotFoundError("Budget", budget_id)
    return budget


def find_budget(db: Session, user_id: str, category_id: str, month: int, year: int) -> Optional[Budget]:
    return db.query(Budget).filter(
        Budget.user_id == user_id,
        Budget.category_id == category_id,
        Budget.month == month,
        Budget.year == year
    ).first()


def list_budgets(db: Session, user_id: str, month: int, year: int) -> List[Budget]:
    return db.query(Budget).filter(
        Budget.user_id == user_id,
        Budget.month == month,
        Budget.year == year
    ).order_by(Budget.category_id).all()


def enable_rollover(
    db: Session,
    user_id: str,
    budget_id: str,
    mode: RolloverMode = RolloverMode.carry_forward
) -> Budget:
    """
    Turn rollover on for an open budget.

    The current rollover balance is left alone; the mode takes effect when
    this month is closed.
    """
    budget = get_budget(db, user_id, budget_id)
    if budget.is_closed:
        raise BudgetClosedError(budget.id)

    budget.rollover_enabled = True
    budget.rollover_mode = mode
    db.commit()
    db.refresh(budget)
    logger.info("Enabled %s rollover on budget %s for user %s", mode.value, budget_id, user_id)
    return budget


def create_budget(db: Session, user_id: str, data: BudgetCreate) -> Budget:
    """
    Create the single budget for a (category, month, year).

    The rollover balance always starts at zero; only closing the previous
    month writes it.
    """
    if find_budget(db, user_id, data.category_id, data.month, data.year):
        raise ValueError(
            f"Budget already exists for category {data.category_id} in {data.year}-{data.month:02d}"
        )

    budget = Budget(
        id=str(uuid.uuid4()),
        user_id=user_id,
        category_id=data.category_id,
        month=data.month,
        year=data.year,
        limit=data.limit,
        spent=ZERO,
        rollover_enabled=data.rollover_enabled,
        rollover_mode=data.rollover_mode,
        rollover_balance=ZERO,
    )
    apply_spent(budget, ZERO)
    db.add(budget)
    db.commit()
    db.refresh(budget)
    return budget


def _load_month_transactions(db: Session, budget: Budget) -> List[Transaction]:
    start, end = month_bounds(budget.month, budget.year)
    return db.query(Transaction).filter(
        Transaction.user_id == budget.user_id,
        Transaction.category_id == budget.category_id,
        Transaction.date >= start,
        Transaction.date < end,
        Transaction.is_hidden == False,
        Transaction.is_transfer == False,
        Transaction.amount > 0
    ).all()


def _refresh_spent(db: Session, budget: Budget) -> Budget:
    if budget.is_closed:
        raise BudgetClosedError(budget.id)
    transactions = _load_month_transactions(db, budget)
    return apply_spent(budget, compute_spent(transactions, budget.category_id, budget.month, budget.year))


def recompute_budget(db: Session, user_id: str, budget_id: str) -> Budget:
    """Recompute spent and status for an open budget. Safe to repeat."""
    budget = get_budget(db, user_id, budget_id)

    with single_flight("budgets", user_id):
        try:
            _refresh_spent(db, budget)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Budget recompute failed for user %s: %s", user_id, e)
            raise RecomputeFailedError("budget recompute", user_id, e) from e

    db.refresh(budget)
    return budget


def recompute_month(db: Session, user_id: str, month: int, year: int) -> List[Budget]:
    """Recompute every open budget the user has for one month."""
    with single_flight("budgets", user_id):
        budgets = db.query(Budget).filter(
            Budget.user_id == user_id,
            Budget.month == month,
            Budget.year == year,
            Budget.is_closed == False
        ).order_by(Budget.category_id).all()

        try:
            for budget in budgets:
                _refresh_spent(db, budget)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Budget month recompute failed for user %s: %s", user_id, e)
            raise RecomputeFailedError("budget recompute", user_id, e) from e

    logger.info("Recomputed %d budgets for user %s in %d-%02d", len(budgets), user_id, year, month)
    return budgets


def close_budget_month(
    db: Session,
    user_id: str,
    budget_id: str,
    now: Optional[datetime] = None
) -> Tuple[Budget, Budget]:
    """
    Close a budget month and seed the next one.

    Spent is recomputed first. The following month's budget for the same
    category is created with this month's limit and rollover settings if it
    does not exist yet; either way its opening rollover balance is set from
    this month. A closed budget cannot be reopened or closed again.
    """
    budget = get_budget(db, user_id, budget_id)

    with single_flight("budgets", user_id):
        try:
            _refresh_spent(db, budget)
            opening = opening_rollover_balance(budget)

            budget.is_closed = True
            budget.closed_at = now or datetime.utcnow()

            month, year = next_month(budget.month, budget.year)
            following = find_budget(db, user_id, budget.category_id, month, year)
            if following is None:
                following = Budget(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    category_id=budget.category_id,
                    month=month,
                    year=year,
                    limit=budget.limit,
                    rollover_enabled=budget.rollover_enabled,
                    rollover_mode=budget.rollover_mode,
                )
                db.add(following)
                spent = ZERO
            elif following.is_closed:
                raise BudgetClosedError(following.id)
            else:
                spent = compute_spent(
                    _load_month_transactions(db, following), following.category_id, month, year
                )

            following.rollover_balance = opening
            apply_spent(following, spent)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Closing budget %s failed for user %s: %s", budget_id, user_id, e)
            raise RecomputeFailedError("budget close", user_id, e) from e
        except BudgetClosedError:
            db.rollback()
            raise

    logger.info(
        "Closed budget %s (%d-%02d) for user %s; next month opens with rollover %s",
        budget_id, budget.year, budget.month, user_id, opening
    )
    db.refresh(budget)
    db.refresh(following)
    return budget, following
