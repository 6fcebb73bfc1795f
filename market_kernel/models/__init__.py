"""ORM models for the market kernel."""

from market_kernel.models.admin_activity import (
    ActivityAction,
    AdminActivity,
    AdminActivityRecord,
)
from market_kernel.models.order import Order
from market_kernel.models.task import Task
from market_kernel.models.transaction import Transaction
from market_kernel.models.user import UserAccount, UserRole

__all__ = [
    "ActivityAction",
    "AdminActivity",
    "AdminActivityRecord",
    "Order",
    "Task",
    "Transaction",
    "UserAccount",
    "UserRole",
]
