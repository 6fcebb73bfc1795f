"""
Bulk action domain types (``market_kernel.domain.bulk``).

Frozen result types for applying one admin action to many entities.  The
processor produces exactly one ``BulkItemOutcome`` per requested id, in
request order and duplicates included, so callers can zip the result
against their own request.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EntityKind(str, Enum):
    ORDER = "order"
    TRANSACTION = "transaction"
    TASK = "task"


class BulkAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class BulkItemStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ERROR = "error"


SUCCESS_STATUS: dict[BulkAction, BulkItemStatus] = {
    BulkAction.APPROVE: BulkItemStatus.APPROVED,
    BulkAction.REJECT: BulkItemStatus.REJECTED,
    BulkAction.CANCEL: BulkItemStatus.CANCELLED,
}

SUPPORTED_ACTIONS: dict[EntityKind, frozenset[BulkAction]] = {
    EntityKind.ORDER: frozenset({
        BulkAction.APPROVE, BulkAction.REJECT, BulkAction.CANCEL,
    }),
    EntityKind.TRANSACTION: frozenset({BulkAction.APPROVE, BulkAction.REJECT}),
    EntityKind.TASK: frozenset({BulkAction.APPROVE, BulkAction.REJECT}),
}

# Plural resource names used on the summary activity record.
BULK_RESOURCE: dict[EntityKind, str] = {
    EntityKind.ORDER: "orders",
    EntityKind.TRANSACTION: "balance_requests",
    EntityKind.TASK: "tasks",
}


@dataclass(frozen=True)
class BulkItemOutcome:
    """Result for a single requested id."""

    entity_id: str
    status: BulkItemStatus
    error_code: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != BulkItemStatus.ERROR


@dataclass(frozen=True)
class BulkResult:
    """Aggregate result of a bulk call."""

    entity_kind: EntityKind
    action: str
    outcomes: tuple[BulkItemOutcome, ...]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successes(self) -> tuple[BulkItemOutcome, ...]:
        return tuple(o for o in self.outcomes if o.ok)

    @property
    def errors(self) -> tuple[BulkItemOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def succeeded(self) -> int:
        return len(self.successes)

    @property
    def failed(self) -> int:
        return len(self.errors)
