"""Kernel services: flush-only state changes plus the ApprovalEngine that owns units of work."""

from market_kernel.services.admin_activity_service import (
    ActivitySink,
    AdminActivityService,
    DatabaseActivitySink,
)
from market_kernel.services.approval_engine import ApprovalEngine
from market_kernel.services.balance_request_service import BalanceRequestService
from market_kernel.services.bulk_processor import BulkProcessor
from market_kernel.services.ledger_service import LedgerService
from market_kernel.services.order_service import OrderService
from market_kernel.services.task_service import TaskService
from market_kernel.services.transaction_service import TransactionService

__all__ = [
    "ActivitySink",
    "AdminActivityService",
    "ApprovalEngine",
    "BalanceRequestService",
    "BulkProcessor",
    "DatabaseActivitySink",
    "LedgerService",
    "OrderService",
    "TaskService",
    "TransactionService",
]
