"""Tests for the module-level engine helpers in market_kernel/db/engine.py."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect, select

from market_config.schema import DatabaseConfig
from market_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_config,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from market_kernel.models.user import UserAccount


@pytest.fixture
def module_engine(tmp_path):
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'module.db'}")
    create_tables()
    yield engine
    reset_engine()


class TestUninitialized:

    def test_accessors_raise_before_init(self):
        reset_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()
        with pytest.raises(RuntimeError):
            get_session_factory()


class TestModuleEngine:

    def test_init_from_config(self, tmp_path):
        engine = init_engine_from_config(
            DatabaseConfig(url=f"sqlite:///{tmp_path / 'cfg.db'}"),
        )
        try:
            assert get_engine() is engine
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()

    def test_session_scope_commits(self, module_engine):
        with session_scope() as session:
            session.add(UserAccount(email="a@example.com", username="a", balance=Decimal("5")))

        with session_scope(get_session_factory()) as session:
            user = session.execute(
                select(UserAccount).where(UserAccount.username == "a")
            ).scalar_one()
            assert user.balance == Decimal("5")

    def test_session_scope_rolls_back_and_reraises(self, module_engine, captured_logs):
        with pytest.raises(ZeroDivisionError):
            with session_scope() as session:
                session.add(UserAccount(email="b@example.com", username="b"))
                session.flush()
                1 / 0

        with session_scope() as session:
            assert session.execute(select(UserAccount)).first() is None
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_drop_tables(self, module_engine):
        assert "orders" in inspect(module_engine).get_table_names()
        drop_tables()
        assert inspect(module_engine).get_table_names() == []
