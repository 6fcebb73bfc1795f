"""
Module: market_kernel.models.task
Responsibility: ORM persistence for tasks performed by task doers.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Status limited to enum values (check constraint).
    - approved_at and rejected_at are write-once and mutually exclusive
      (ORM listener in db/immutability.py).
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
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from market_kernel.domain.task import TaskRecord
    from market_kernel.models.user import UserAccount


class Task(TrackedBase):
    """One unit of engagement work claimed by a task doer."""

    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'in_progress', 'submitted', 'approved', "
            "'rejected', 'completed')",
            name="ck_tasks_valid_status",
        ),
        CheckConstraint("reward >= 0", name="ck_tasks_reward_non_negative"),
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_submitted_at", "submitted_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=True,
    )
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    service_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reward: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="available",
    )
    proof: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    admin_reviewed_by: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True,
    )
    admin_reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    user: Mapped["UserAccount"] = relationship("UserAccount")

    def __repr__(self) -> str:
        return f"<Task {self.id} {self.platform}/{self.service_type} status={self.status}>"

    def to_dto(self) -> TaskRecord:
        """Convert ORM model to frozen domain DTO."""
        from market_kernel.db.types import round_money
        from market_kernel.domain.order import Platform, ServiceType
        from market_kernel.domain.task import TaskRecord, TaskStatus

        return TaskRecord(
            id=self.id,
            user_id=self.user_id,
            platform=Platform(self.platform),
            service_type=ServiceType(self.service_type),
            target_url=self.target_url,
            quantity=self.quantity,
            reward=round_money(self.reward),
            status=TaskStatus(self.status),
            order_id=self.order_id,
            description=self.description,
            proof=self.proof,
            admin_notes=self.admin_notes,
            rejection_reason=self.rejection_reason,
            submitted_at=self.submitted_at,
            approved_at=self.approved_at,
            rejected_at=self.rejected_at,
            admin_reviewed_by=self.admin_reviewed_by,
            admin_reviewed_at=self.admin_reviewed_at,
            completed_at=self.completed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
