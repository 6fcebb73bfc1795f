"""
Module: market_kernel.models.user
Responsibility: ORM persistence for marketplace user accounts and their
    monetary balance.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - balance >= 0 (ck_users_balance_non_negative).  The ledger service
      also refuses any delta that would cross zero, so the constraint is
      only ever hit by code that bypasses it.
    - balance is written only by LedgerService.apply_balance_delta.

Failure modes:
    - IntegrityError on duplicate email/username or a negative balance.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from market_kernel.db.base import TrackedBase


class UserRole(str, Enum):
    """Marketplace side of the account."""

    TASK_GIVER = "task_giver"  # Buys engagement
    TASK_DOER = "task_doer"  # Performs tasks for rewards


class UserAccount(TrackedBase):
    """A marketplace user and their spendable balance."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint(
            "role IN ('task_giver', 'task_doer')",
            name="ck_users_valid_role",
        ),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.TASK_GIVER.value,
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<UserAccount {self.username} balance={self.balance}>"
