"""
Module: market_kernel.models.transaction
Responsibility: ORM persistence for balance movements (deposits,
    withdrawals, order payments, task earnings, refunds).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Status and type are limited to their enum values by check constraints.
    - Once status leaves 'pending' the row is immutable except for audit
      metadata (ORM listener in db/immutability.py).

Failure modes:
    - ImmutabilityViolationError on any ORM edit of a completed/failed row.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from market_kernel.domain.transaction import TransactionRecord
    from market_kernel.models.user import UserAccount


class Transaction(TrackedBase):
    """A pending or settled balance movement for one user."""

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(
            "type IN ('deposit', 'withdrawal', 'order_payment', "
            "'task_earning', 'refund')",
            name="ck_transactions_valid_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="ck_transactions_valid_status",
        ),
        CheckConstraint(
            "method IN ('bank_transfer', 'credit_card', 'crypto', "
            "'balance', 'paypal')",
            name="ck_transactions_valid_method",
        ),
        Index("ix_transactions_user_id", "user_id"),
        Index("ix_transactions_status_type", "status", "type"),
        Index("ix_transactions_created_at", "created_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="balance",
    )
    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    user: Mapped["UserAccount"] = relationship("UserAccount")

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} {self.type} amount={self.amount} "
            f"status={self.status}>"
        )

    def to_dto(self) -> TransactionRecord:
        """Convert ORM model to frozen domain DTO."""
        from market_kernel.db.types import round_money
        from market_kernel.domain.transaction import (
            PaymentMethod,
            TransactionRecord,
            TransactionStatus,
            TransactionType,
        )

        return TransactionRecord(
            id=self.id,
            user_id=self.user_id,
            type=TransactionType(self.type),
            amount=round_money(self.amount),
            status=TransactionStatus(self.status),
            method=PaymentMethod(self.method),
            order_id=self.order_id,
            reference=self.reference,
            description=self.description,
            admin_notes=self.admin_notes,
            rejection_reason=self.rejection_reason,
            processed_by=self.processed_by,
            processed_at=self.processed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
