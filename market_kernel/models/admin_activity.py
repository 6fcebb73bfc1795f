"""
Module: market_kernel.models.admin_activity
Responsibility: ORM persistence for the admin activity log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listener in db/immutability.py).
    - payload_hash = SHA-256 of the canonical JSON of ``details``.

Audit relevance:
    Every successful admin transition writes one row here after its own
    commit, and every bulk call writes one BULK_ACTION summary.  Writes are
    best-effort: a failed write is logged and never undoes the transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from market_kernel.db.base import Base, UUIDString


class ActivityAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REFUND = "REFUND"
    CANCEL = "CANCEL"
    STATUS_UPDATE = "STATUS_UPDATE"
    BULK_ACTION = "BULK_ACTION"


@dataclass(frozen=True)
class AdminActivityRecord:
    """Immutable snapshot of an activity row."""

    id: UUID
    admin_id: UUID
    action: ActivityAction
    resource: str
    resource_id: str | None
    details: dict[str, Any]
    payload_hash: str
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


class AdminActivity(Base):
    """One admin action, as recorded after the fact."""

    __tablename__ = "admin_activities"

    __table_args__ = (
        Index("ix_admin_activities_admin_id", "admin_id"),
        Index("ix_admin_activities_resource", "resource", "resource_id"),
        Index("ix_admin_activities_created_at", "created_at"),
    )

    admin_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    # Resource family ("balance", "order", "task", "orders", ...)
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    # Not a UUID column: bulk callers may send ids that match nothing
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AdminActivity {self.action} {self.resource}/{self.resource_id}>"

    def to_dto(self) -> AdminActivityRecord:
        """Convert ORM model to frozen DTO."""
        return AdminActivityRecord(
            id=self.id,
            admin_id=self.admin_id,
            action=ActivityAction(self.action),
            resource=self.resource,
            resource_id=self.resource_id,
            details=dict(self.details or {}),
            payload_hash=self.payload_hash,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            created_at=self.created_at,
        )
