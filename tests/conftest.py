"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from household_ledger.api.main import create_app
from household_ledger.domain.models import PaymentData
from household_ledger.infrastructure.database.models import Base, IncomeEvent, SpendingCategory
from household_ledger.infrastructure.database.repositories import (
    CategoryRepository,
    HouseholdRepository,
    IncomeEventRepository,
)
from household_ledger.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

HOUSEHOLD_ID = "household_smith"
OTHER_HOUSEHOLD_ID = "household_jones"
TODAY = date(2024, 3, 15)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session, household: str) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-Household-ID": household, "X-Member-ID": "member_alex"})


@pytest.fixture
def clock() -> Callable[[], date]:
    """Fixed 'today' for services that derive overdue status"""
    return lambda: TODAY


@pytest.fixture
def household(db: Session) -> str:
    """Two households; tests act as the first one"""
    repo = HouseholdRepository(db)
    repo.create(HOUSEHOLD_ID, "Smith family")
    repo.create(OTHER_HOUSEHOLD_ID, "Jones family")
    db.commit()
    return HOUSEHOLD_ID


@pytest.fixture
def category(db: Session, household: str) -> SpendingCategory:
    category = CategoryRepository(db).create(household, "Housing")
    db.commit()
    return category


@pytest.fixture
def make_income(db: Session, household: str) -> Callable[..., IncomeEvent]:
    """Factory for committed income events"""

    def _make(amount: str, scheduled_date: date = TODAY, name: str = "Paycheck", household_id: str = household):
        income = IncomeEventRepository(db).create(household_id, name, Decimal(amount), scheduled_date)
        db.commit()
        return income

    return _make


@pytest.fixture
def payment_data(category: SpendingCategory) -> Callable[..., PaymentData]:
    """Factory for payment creation input"""

    def _make(amount: str = "100.00", due_date: date = TODAY + timedelta(days=5), **overrides):
        values = dict(
            payee="City Utilities",
            amount=Decimal(amount),
            due_date=due_date,
            payment_type="once",
            spending_category_id=category.id,
        )
        values.update(overrides)
        return PaymentData(**values)

    return _make
