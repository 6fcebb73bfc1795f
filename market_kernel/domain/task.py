"""
Task domain types (``market_kernel.domain.task``).

A task is one unit of work a doer performs against an order (follow this
account, like this post).  Doers move it through ``available ->
in_progress -> submitted``; admins only review submitted tasks.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from market_kernel.domain.order import Platform, ServiceType


class TaskStatus(str, Enum):
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.AVAILABLE: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.SUBMITTED}),
    TaskStatus.SUBMITTED: frozenset({TaskStatus.APPROVED, TaskStatus.REJECTED}),
    TaskStatus.APPROVED: frozenset({TaskStatus.COMPLETED}),
    TaskStatus.REJECTED: frozenset(),
    TaskStatus.COMPLETED: frozenset(),
}

TERMINAL_TASK_STATUSES: frozenset[TaskStatus] = frozenset({
    TaskStatus.REJECTED,
    TaskStatus.COMPLETED,
})

REVIEWABLE_FROM: frozenset[TaskStatus] = frozenset({TaskStatus.SUBMITTED})


@dataclass(frozen=True)
class TaskRecord:
    """Immutable snapshot of a task row."""

    id: UUID
    user_id: UUID
    platform: Platform
    service_type: ServiceType
    target_url: str
    quantity: int
    reward: Decimal
    status: TaskStatus
    order_id: UUID | None = None
    description: str | None = None
    proof: str | None = None
    admin_notes: str | None = None
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    admin_reviewed_by: UUID | None = None
    admin_reviewed_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
