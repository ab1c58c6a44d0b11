"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal
import uuid

from tally.database import Base, get_db
from tally.main import app
from tally.models.category import Category, CategoryType
from tally.models.rule import CategorizationRule, RuleMatchType, RuleApplyScope
from tally.models.budget import Budget, RolloverMode

from factories import USER_ID, build_transaction


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_transaction(db_session):
    """Factory that saves a transaction and returns it."""
    def _make(name, amount, txn_date, **kwargs):
        txn = build_transaction(name, amount, txn_date, **kwargs)
        db_session.add(txn)
        db_session.commit()
        db_session.refresh(txn)
        return txn
    return _make


@pytest.fixture
def sample_category(db_session):
    """Create a sample category."""
    category = Category(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        name="Groceries",
        type=CategoryType.expense,
        color="#22c55e",
        icon="shopping-cart",
        is_system=False
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def dining_category(db_session):
    category = Category(id="cat-dining", user_id=USER_ID, name="Dining", is_system=False)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def work_category(db_session):
    category = Category(id="cat-work", user_id=USER_ID, name="Work", is_system=False)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def make_rule(db_session):
    """Factory that saves a categorization rule."""
    def _make(match_type, match_value, category_id, priority=100,
              apply_scope=RuleApplyScope.all_history, enabled=True, user_id=USER_ID):
        rule = CategorizationRule(
            id=str(uuid.uuid4()),
            user_id=user_id,
            priority=priority,
            match_type=RuleMatchType(match_type),
            match_value=match_value,
            action_category_id=category_id,
            apply_scope=apply_scope,
            enabled=enabled,
        )
        db_session.add(rule)
        db_session.commit()
        db_session.refresh(rule)
        return rule
    return _make


@pytest.fixture
def sample_budget(db_session, sample_category):
    """Create a carry-forward budget for January 2024."""
    budget = Budget(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        category_id=sample_category.id,
        month=1,
        year=2024,
        limit=Decimal("200.00"),
        spent=Decimal("0"),
        rollover_enabled=True,
        rollover_mode=RolloverMode.carry_forward,
        rollover_balance=Decimal("0"),
    )
    db_session.add(budget)
    db_session.commit()
    db_session.refresh(budget)
    return budget
