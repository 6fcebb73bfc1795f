"""Read-only query selectors for the admin views."""

from market_kernel.selectors.activity_selector import ActivitySelector
from market_kernel.selectors.base import BaseSelector, Page
from market_kernel.selectors.order_selector import OrderSelector, OrderStatistics
from market_kernel.selectors.task_selector import TaskSelector
from market_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "ActivitySelector",
    "BaseSelector",
    "OrderSelector",
    "OrderStatistics",
    "Page",
    "TaskSelector",
    "TransactionSelector",
]
