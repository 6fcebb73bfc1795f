"""
Module: market_kernel.models.order
Responsibility: ORM persistence for engagement orders placed by task givers.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Status/platform/service type limited to enum values (check constraints).
    - approved_at and rejected_at are each write-once and mutually exclusive.
      OrderService guards its compare-and-set UPDATEs on both stamps; the
      ORM listener in db/immutability.py covers flushes of loaded instances.
    - Quantities are non-negative.
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
    from market_kernel.domain.order import OrderRecord
    from market_kernel.models.user import UserAccount


class Order(TrackedBase):
    """An engagement order (e.g. 1000 Instagram likes on one URL)."""

    __tablename__ = "orders"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed', "
            "'cancelled', 'refunded')",
            name="ck_orders_valid_status",
        ),
        CheckConstraint(
            "platform IN ('YOUTUBE', 'INSTAGRAM', 'TIKTOK', 'TWITTER', 'FACEBOOK')",
            name="ck_orders_valid_platform",
        ),
        CheckConstraint(
            "service_type IN ('LIKES', 'FOLLOWERS', 'SUBSCRIBERS', 'VIEWS', "
            "'COMMENTS', 'SHARES')",
            name="ck_orders_valid_service_type",
        ),
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
        CheckConstraint(
            "remaining_count >= 0 AND completed_count >= 0",
            name="ck_orders_counts_non_negative",
        ),
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    service_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    start_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remaining_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    speed: Mapped[str | None] = mapped_column(String(20), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejected_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    user: Mapped["UserAccount"] = relationship("UserAccount")

    def __repr__(self) -> str:
        return (
            f"<Order {self.id} {self.platform}/{self.service_type} "
            f"qty={self.quantity} status={self.status}>"
        )

    def to_dto(self) -> OrderRecord:
        """Convert ORM model to frozen domain DTO."""
        from market_kernel.db.types import round_money
        from market_kernel.domain.order import (
            OrderRecord,
            OrderStatus,
            Platform,
            ServiceType,
        )

        return OrderRecord(
            id=self.id,
            user_id=self.user_id,
            platform=Platform(self.platform),
            service_type=ServiceType(self.service_type),
            target_url=self.target_url,
            quantity=self.quantity,
            amount=round_money(self.amount),
            status=OrderStatus(self.status),
            start_count=self.start_count,
            remaining_count=self.remaining_count,
            completed_count=self.completed_count,
            speed=self.speed,
            description=self.description,
            admin_notes=self.admin_notes,
            approved_by=self.approved_by,
            approved_at=self.approved_at,
            rejected_by=self.rejected_by,
            rejected_at=self.rejected_at,
            rejection_reason=self.rejection_reason,
            refund_reason=self.refund_reason,
            started_at=self.started_at,
            completed_at=self.completed_at,
            updated_by_id=self.updated_by_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
