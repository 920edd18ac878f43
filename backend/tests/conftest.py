"""
Shared fixtures: in-memory SQLite database, API client and Plaid mocks.

Run with: pytest backend/tests -v
"""

import os

# Must be set before superapp.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PLAID_CLIENT_ID"] = ""
os.environ["PLAID_SECRET"] = ""

from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from superapp.core.auth import create_access_token
from superapp.core.database import Base, get_db
from superapp.main import app
from superapp.modules.accounts.services import AccountStore
from superapp.modules.budgets.models import Budget, BudgetGoal, CustomCategory  # noqa: F401
from superapp.modules.plaid.service import get_plaid_service
from superapp.modules.transactions.services import TransactionStore
from superapp.modules.users.models import UserProfile  # noqa: F401


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def account_store(db_session):
    return AccountStore(db_session)


@pytest.fixture
def transaction_store(db_session):
    return TransactionStore(db_session)


def plaid_account(account_id="acc-1", name="Everyday Chequing", current=1250.50, available=1200.00, **extra):
    """Account dict shaped like PlaidService.get_accounts output."""
    account = {
        "account_id": account_id,
        "name": name,
        "official_name": f"{name} Account",
        "type": "depository",
        "subtype": "checking",
        "mask": "0000",
        "balances": {
            "current": current,
            "available": available,
            "iso_currency_code": "CAD",
        },
    }
    account.update(extra)
    return account


def plaid_transaction(transaction_id, amount=10.0, txn_date="2026-01-15", name="Purchase",
                      merchant_name=None, category=None, authorized_date=None):
    """Transaction dict shaped like PlaidService.get_transactions output."""
    return {
        "transaction_id": transaction_id,
        "account_id": "acc-1",
        "amount": amount,
        "name": name,
        "merchant_name": merchant_name,
        "date": date.fromisoformat(txn_date),
        "authorized_date": date.fromisoformat(authorized_date) if authorized_date else None,
        "category": category,
    }


@pytest.fixture
def linked_account(account_store):
    """Factory that links a Plaid account for a user and returns the row."""
    def _link(user_id="user-1", account_id="acc-1", name="Everyday Chequing", **kwargs):
        return account_store.upsert_account(
            user_id, plaid_account(account_id, name, **kwargs), "access-sandbox-token", "item-1"
        )
    return _link


@pytest.fixture
def plaid_mock():
    """Plaid service stand-in with a successful link flow configured."""
    service = MagicMock()
    service.create_link_token.return_value = {
        "link_token": "link-sandbox-abc",
        "expiration": "2026-10-19T14:00:00Z",
    }
    service.exchange_public_token.return_value = {
        "access_token": "access-sandbox-123",
        "item_id": "item-123",
    }
    service.get_accounts.return_value = [plaid_account("acc-1")]
    service.get_transactions.return_value = []
    return service


@pytest.fixture
def client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def plaid_client(client, plaid_mock):
    """API client whose Plaid dependency is the plaid_mock fixture."""
    app.dependency_overrides[get_plaid_service] = lambda: plaid_mock
    return client


def auth_headers(user_id="user-1", email="user@example.com"):
    return {"Authorization": f"Bearer {create_access_token(user_id, email=email)}"}
