"""
Pytest fixtures for the market kernel test suite.

Provides:
- A file-backed SQLite database per test (tables + immutability listeners)
- Session, session factory and ApprovalEngine wired to that database
- Row factories for users, transactions, orders and tasks
- Structured log capture

Row factories write through their own committed unit so the rows are
visible to every session the code under test opens.  Create the rows a
test needs BEFORE opening a writing session on the same database.

Monetary amounts in tests are whole numbers or quarters: SQLite stores
Numeric columns as floats, and those values survive the round trip exactly.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from market_kernel.db.engine import create_tables, session_scope
from market_kernel.domain.actor import Actor, AdminRole
from market_kernel.domain.clock import DeterministicClock
from market_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from market_kernel.models.order import Order
from market_kernel.models.task import Task
from market_kernel.models.transaction import Transaction
from market_kernel.models.user import UserAccount
from market_kernel.services.approval_engine import ApprovalEngine
from market_kernel.services.ledger_service import LedgerService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture market_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, approval_engine):
            approval_engine.approve_order(...)
            logs = captured_logs()
            assert any(r["message"] == "order_approved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("market_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """A fresh SQLite database file with every kernel table."""
    engine = create_engine(f"sqlite:///{tmp_path / 'market.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """A session for flush-only service tests; rolled back afterwards."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(
        actor_id=uuid4(),
        role=AdminRole.ADMIN,
        ip_address="10.0.0.7",
        user_agent="pytest-admin-panel",
    )


@pytest.fixture
def moderator_actor() -> Actor:
    return Actor(actor_id=uuid4(), role=AdminRole.MODERATOR)


@pytest.fixture
def approval_engine(session_factory, deterministic_clock) -> ApprovalEngine:
    return ApprovalEngine(session_factory, clock=deterministic_clock)


# =============================================================================
# Row factories
# =============================================================================


@pytest.fixture
def make_user(session_factory):
    """Create a user; returns its id."""
    counter = {"n": 0}

    def _make(balance="0", role="task_giver", **overrides) -> UUID:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "email": f"user{n}@example.com",
            "username": f"user{n}",
            "first_name": f"First{n}",
            "last_name": f"Last{n}",
            "role": role,
            "balance": Decimal(str(balance)),
        }
        fields.update(overrides)
        with session_scope(session_factory) as sess:
            user = UserAccount(**fields)
            sess.add(user)
            sess.flush()
            return user.id

    return _make


@pytest.fixture
def make_transaction(session_factory):
    """Create a transaction row directly (no ledger effect); returns its id."""

    def _make(
        user_id: UUID,
        type="deposit",
        amount="100",
        status="pending",
        method="bank_transfer",
        **overrides,
    ) -> UUID:
        with session_scope(session_factory) as sess:
            txn = Transaction(
                user_id=user_id,
                type=type,
                amount=Decimal(str(amount)),
                status=status,
                method=method,
                created_by_id=user_id,
                **overrides,
            )
            sess.add(txn)
            sess.flush()
            return txn.id

    return _make


@pytest.fixture
def make_order(session_factory):
    def _make(
        user_id: UUID,
        status="pending",
        amount="25.50",
        platform="INSTAGRAM",
        service_type="LIKES",
        quantity=1000,
        **overrides,
    ) -> UUID:
        fields = {
            "target_url": "https://www.instagram.com/p/abc123/",
            "remaining_count": quantity,
        }
        fields.update(overrides)
        with session_scope(session_factory) as sess:
            order = Order(
                user_id=user_id,
                status=status,
                amount=Decimal(str(amount)),
                platform=platform,
                service_type=service_type,
                quantity=quantity,
                created_by_id=user_id,
                **fields,
            )
            sess.add(order)
            sess.flush()
            return order.id

    return _make


@pytest.fixture
def make_task(session_factory):
    def _make(
        user_id: UUID,
        status="submitted",
        reward="0.50",
        platform="YOUTUBE",
        service_type="SUBSCRIBERS",
        **overrides,
    ) -> UUID:
        fields = {
            "target_url": "https://www.youtube.com/@channel",
            "proof": "https://imgur.example/proof.png",
            "submitted_at": datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        with session_scope(session_factory) as sess:
            task = Task(
                user_id=user_id,
                status=status,
                reward=Decimal(str(reward)),
                platform=platform,
                service_type=service_type,
                created_by_id=user_id,
                **fields,
            )
            sess.add(task)
            sess.flush()
            return task.id

    return _make


@pytest.fixture
def read_balance(session_factory):
    """Read a user's committed balance in a fresh session."""

    def _read(user_id: UUID) -> Decimal:
        with session_scope(session_factory) as sess:
            return LedgerService(sess).get_balance(user_id)

    return _read


@pytest.fixture
def read_row(session_factory):
    """Load a committed row in a fresh session and return its DTO."""

    def _read(model, row_id: UUID):
        with session_scope(session_factory) as sess:
            return sess.get(model, row_id).to_dto()

    return _read
