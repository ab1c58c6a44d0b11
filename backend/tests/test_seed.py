"""Tests for system category seeding."""

from tally.seed import seed_system_categories, SYSTEM_CATEGORIES
from tally.models import Category, CategoryType


def test_seeds_once(db_session):
    """Seeding twice should not duplicate categories."""
    assert seed_system_categories(db_session) == len(SYSTEM_CATEGORIES)
    assert seed_system_categories(db_session) == 0
    assert db_session.query(Category).count() == len(SYSTEM_CATEGORIES)


def test_transfer_category_typed(db_session):
    seed_system_categories(db_session)
    transfer = db_session.query(Category).filter(Category.name == "Transfer").one()
    assert transfer.type == CategoryType.transfer
    assert transfer.is_system is True
    assert transfer.user_id is None
