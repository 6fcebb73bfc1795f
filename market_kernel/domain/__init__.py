"""
Pure domain layer.

Lifecycle tables, balance effects, actor roles, reason validation and the
frozen DTOs the services and selectors hand back.  NO dependencies on the
ORM, the database or I/O.
"""

from market_kernel.domain.actor import Actor, AdminRole, check_mutation_allowed
from market_kernel.domain.bulk import (
    BulkAction,
    BulkItemOutcome,
    BulkItemStatus,
    BulkResult,
    EntityKind,
)
from market_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from market_kernel.domain.order import OrderRecord, OrderStatus, Platform, ServiceType
from market_kernel.domain.settings import ApprovalSettings
from market_kernel.domain.task import TaskRecord, TaskStatus
from market_kernel.domain.transaction import (
    PaymentMethod,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    approval_delta,
    rejection_delta,
)

__all__ = [
    "Actor",
    "AdminRole",
    "ApprovalSettings",
    "BulkAction",
    "BulkItemOutcome",
    "BulkItemStatus",
    "BulkResult",
    "Clock",
    "DeterministicClock",
    "EntityKind",
    "OrderRecord",
    "OrderStatus",
    "PaymentMethod",
    "Platform",
    "ServiceType",
    "SystemClock",
    "TaskRecord",
    "TaskStatus",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionType",
    "approval_delta",
    "check_mutation_allowed",
    "rejection_delta",
]
