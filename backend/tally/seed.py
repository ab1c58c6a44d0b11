"""
Seed script for system categories.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from tally.database import SessionLocal
from tally.models import Category, CategoryType

logger = logging.getLogger(__name__)

SYSTEM_CATEGORIES = [
    {"name": "Income", "type": CategoryType.income, "icon": "dollar-sign", "color": "#2F9E44"},
    {"name": "Food & Dining", "type": CategoryType.expense, "icon": "utensils", "color": "#FF6B6B"},
    {"name": "Groceries", "type": CategoryType.expense, "icon": "shopping-cart", "color": "#51CF66"},
    {"name": "Transportation", "type": CategoryType.expense, "icon": "car", "color": "#339AF0"},
    {"name": "Shopping", "type": CategoryType.expense, "icon": "shopping-bag", "color": "#20C997"},
    {"name": "Bills & Utilities", "type": CategoryType.expense, "icon": "zap", "color": "#FCC419"},
    {"name": "Entertainment", "type": CategoryType.expense, "icon": "tv", "color": "#FF922B"},
    {"name": "Health", "type": CategoryType.expense, "icon": "heart", "color": "#F06595"},
    {"name": "Travel", "type": CategoryType.expense, "icon": "plane", "color": "#4DABF7"},
    {"name": "Education", "type": CategoryType.expense, "icon": "book", "color": "#A9E34B"},
    {"name": "Personal Care", "type": CategoryType.expense, "icon": "user", "color": "#CC5DE8"},
    {"name": "Gifts", "type": CategoryType.expense, "icon": "gift", "color": "#FF6B9D"},
    {"name": "Investments", "type": CategoryType.expense, "icon": "trending-up", "color": "#845EF7"},
    {"name": "Fees", "type": CategoryType.expense, "icon": "alert-circle", "color": "#FA5252"},
    {"name": "Taxes", "type": CategoryType.expense, "icon": "file-text", "color": "#868E96"},
    {"name": "Transfer", "type": CategoryType.transfer, "icon": "repeat", "color": "#ADB5BD"},
    {"name": "Uncategorized", "type": CategoryType.expense, "icon": "more-horizontal", "color": "#CED4DA"},
]


def seed_system_categories(db: Optional[Session] = None) -> int:
    """Insert the system categories if none exist. Returns the number created."""
    owns_session = db is None
    db = db or SessionLocal()

    try:
        existing_count = db.query(Category).filter(Category.is_system == True).count()
        if existing_count > 0:
            logger.info("System categories already seeded (%d exist)", existing_count)
            return 0

        for data in SYSTEM_CATEGORIES:
            db.add(Category(id=str(uuid.uuid4()), is_system=True, user_id=None, **data))
        db.commit()

        logger.info("Seeded %d system categories", len(SYSTEM_CATEGORIES))
        return len(SYSTEM_CATEGORIES)
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    from tally.database import Base, engine

    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    seed_system_categories()
