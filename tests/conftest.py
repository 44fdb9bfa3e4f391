"""
Pytest fixtures for the PayHub test suite.

Provides:
- ``storage``: parametrized over the in-memory and the SQLite-backed store,
  so ledger behavior is checked against both implementations
- ``ledger``: a LedgerService over that storage with a FrozenClock
- ``client``: a FastAPI TestClient wired to a fresh in-memory ledger
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from payhub.api.deps import get_ledger
from payhub.db.session import init_db, make_engine, make_session_factory
from payhub.ledger.clock import FrozenClock
from payhub.ledger.records import NewAccount
from payhub.ledger.service import LedgerService, TransactionIntent
from payhub.ledger.storage.memory import MemoryLedgerStorage
from payhub.ledger.storage.sql import SqlLedgerStorage

_usernames = itertools.count(1)


@pytest.fixture
def sql_storage(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'payhub-test.db'}")
    init_db(engine)
    yield SqlLedgerStorage(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def memory_storage():
    return MemoryLedgerStorage()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def ledger(storage, clock):
    return LedgerService(storage, clock=clock)


@pytest.fixture
def make_account(ledger):
    """Factory for accounts; skips bcrypt to keep tests fast."""

    def _make(first_name="John", last_name="Doe", opening_balance="0.00"):
        n = next(_usernames)
        return ledger.open_account(
            NewAccount(
                username=f"user{n}",
                email=f"user{n}@example.com",
                first_name=first_name,
                last_name=last_name,
                hashed_password="not-a-real-hash",
            ),
            opening_balance=Decimal(opening_balance),
        )

    return _make


@pytest.fixture
def account(make_account):
    """Account holding 1000.00."""
    return make_account(opening_balance="1000.00")


@pytest.fixture
def intent():
    """Factory for transaction intents with sensible defaults."""

    def _intent(user_id, amount="10.00", type="debit", **fields):
        fields.setdefault("description", "Test Payment")
        fields.setdefault("category", "payment")
        return TransactionIntent(user_id=user_id, amount=amount, type=type, **fields)

    return _intent


@pytest.fixture
def api_ledger():
    return LedgerService(MemoryLedgerStorage())


@pytest.fixture
def client(api_ledger):
    from payhub.main import app

    app.dependency_overrides[get_ledger] = lambda: api_ledger
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
