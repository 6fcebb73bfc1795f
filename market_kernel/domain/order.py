"""
Order domain types (``market_kernel.domain.order``).

Responsibility
--------------
Pure lifecycle rules for engagement orders (likes, followers, views...):
status enum, transition table, the source states each admin action
accepts, and the field stamps a manual status override implies.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.

Invariants enforced
-------------------
* ``ORDER_TRANSITIONS`` is the lifecycle graph used by approve, reject,
  refund and cancel.  ``failed``, ``cancelled`` and ``refunded`` are terminal.
* ``set_status`` is an admin escape hatch and deliberately ignores the
  graph; ``override_stamps`` only derives the bookkeeping fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class Platform(str, Enum):
    YOUTUBE = "YOUTUBE"
    INSTAGRAM = "INSTAGRAM"
    TIKTOK = "TIKTOK"
    TWITTER = "TWITTER"
    FACEBOOK = "FACEBOOK"


class ServiceType(str, Enum):
    LIKES = "LIKES"
    FOLLOWERS = "FOLLOWERS"
    SUBSCRIBERS = "SUBSCRIBERS"
    VIEWS = "VIEWS"
    COMMENTS = "COMMENTS"
    SHARES = "SHARES"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.COMPLETED,
        OrderStatus.FAILED,
        OrderStatus.REFUNDED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_ORDER_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.FAILED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
})


def sources_for(target: OrderStatus) -> frozenset[OrderStatus]:
    """All statuses with an edge into ``target``."""
    return frozenset(
        src for src, targets in ORDER_TRANSITIONS.items() if target in targets
    )


# Admin review only ever acts on orders still waiting for approval.
APPROVE_FROM: frozenset[OrderStatus] = frozenset({OrderStatus.PENDING})
REJECT_FROM: frozenset[OrderStatus] = frozenset({OrderStatus.PENDING})
REFUND_FROM: frozenset[OrderStatus] = sources_for(OrderStatus.REFUNDED)
CANCEL_FROM: frozenset[OrderStatus] = sources_for(OrderStatus.CANCELLED)


def parse_order_status(value: str | OrderStatus) -> OrderStatus:
    """Coerce a status string; raises ValueError for unknown values."""
    if isinstance(value, OrderStatus):
        return value
    return OrderStatus(value)


def override_stamps(
    new_status: OrderStatus,
    *,
    quantity: int,
    started_at: datetime | None,
    now: datetime,
) -> dict[str, Any]:
    """Field values implied by manually forcing an order into ``new_status``."""
    stamps: dict[str, Any] = {}
    if new_status == OrderStatus.COMPLETED:
        stamps["completed_at"] = now
        stamps["completed_count"] = quantity
        stamps["remaining_count"] = 0
    elif new_status == OrderStatus.PROCESSING and started_at is None:
        stamps["started_at"] = now
    return stamps


@dataclass(frozen=True)
class OrderRecord:
    """Immutable snapshot of an order row."""

    id: UUID
    user_id: UUID
    platform: Platform
    service_type: ServiceType
    target_url: str
    quantity: int
    amount: Decimal
    status: OrderStatus
    start_count: int = 0
    remaining_count: int = 0
    completed_count: int = 0
    speed: str | None = None
    description: str | None = None
    admin_notes: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    refund_reason: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_by_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES
