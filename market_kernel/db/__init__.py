"""Database layer - engine, base classes, money helpers, and immutability listeners."""

from market_kernel.db.base import UUID, Base, TrackedBase, UUIDString, coerce_uuid
from market_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from market_kernel.db.types import round_money, to_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "coerce_uuid",
    "round_money",
    "to_money",
]
