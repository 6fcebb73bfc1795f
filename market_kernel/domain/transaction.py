"""
Transaction domain types (``market_kernel.domain.transaction``).

Responsibility
--------------
Pure value objects and tables for the balance-request lifecycle: the
status state machine and, per transaction type, the balance effect of an
admin approval or rejection.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``TRANSACTION_TRANSITIONS`` defines the only valid status transitions.
  ``completed`` and ``failed`` are terminal.
* ``APPROVAL_EFFECTS`` and ``REJECTION_EFFECTS`` hold one function per
  ``TransactionType``.  Every member is present, so dispatch is exhaustive
  and a newly added type fails loudly instead of falling through.

Balance effects
---------------
============== ================ =====================
type           approve          reject
============== ================ =====================
deposit        +amount          0
withdrawal     0 (pre-debited)  +abs(amount) (refund)
order_payment  invalid          invalid
task_earning   invalid          invalid
refund         invalid          invalid
============== ================ =====================

A withdrawal is debited when the user requests it, so approving it moves
no money and rejecting it gives the money back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable
from uuid import UUID

from market_kernel.exceptions import InvalidTransactionTypeError


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ORDER_PAYMENT = "order_payment"
    TASK_EARNING = "task_earning"
    REFUND = "refund"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    CRYPTO = "crypto"
    BALANCE = "balance"
    PAYPAL = "paypal"


TRANSACTION_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
    }),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
}

TERMINAL_TRANSACTION_STATUSES: frozenset[TransactionStatus] = frozenset({
    TransactionStatus.COMPLETED,
    TransactionStatus.FAILED,
})

# Types that show up in the admin balance-request queue.
BALANCE_REQUEST_TYPES: frozenset[TransactionType] = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.WITHDRAWAL,
})


BalanceEffect = Callable[[str, Decimal], Decimal]


def _credit_amount(transaction_id: str, amount: Decimal) -> Decimal:
    return amount


def _refund_abs_amount(transaction_id: str, amount: Decimal) -> Decimal:
    return abs(amount)


def _no_effect(transaction_id: str, amount: Decimal) -> Decimal:
    return Decimal("0")


def _not_reviewable(action: str, transaction_type: TransactionType) -> BalanceEffect:
    def effect(transaction_id: str, amount: Decimal) -> Decimal:
        raise InvalidTransactionTypeError(
            transaction_id, transaction_type.value, action,
        )
    return effect


APPROVAL_EFFECTS: dict[TransactionType, BalanceEffect] = {
    TransactionType.DEPOSIT: _credit_amount,
    TransactionType.WITHDRAWAL: _no_effect,
    TransactionType.ORDER_PAYMENT: _not_reviewable("approve", TransactionType.ORDER_PAYMENT),
    TransactionType.TASK_EARNING: _not_reviewable("approve", TransactionType.TASK_EARNING),
    TransactionType.REFUND: _not_reviewable("approve", TransactionType.REFUND),
}

REJECTION_EFFECTS: dict[TransactionType, BalanceEffect] = {
    TransactionType.DEPOSIT: _no_effect,
    TransactionType.WITHDRAWAL: _refund_abs_amount,
    TransactionType.ORDER_PAYMENT: _not_reviewable("reject", TransactionType.ORDER_PAYMENT),
    TransactionType.TASK_EARNING: _not_reviewable("reject", TransactionType.TASK_EARNING),
    TransactionType.REFUND: _not_reviewable("reject", TransactionType.REFUND),
}


def approval_delta(
    transaction_id: str, transaction_type: TransactionType, amount: Decimal,
) -> Decimal:
    """Balance delta applied when an admin approves the transaction.

    Raises:
        InvalidTransactionTypeError: type has no approval transition.
    """
    return APPROVAL_EFFECTS[transaction_type](transaction_id, amount)


def rejection_delta(
    transaction_id: str, transaction_type: TransactionType, amount: Decimal,
) -> Decimal:
    """Balance delta applied when an admin rejects the transaction.

    Raises:
        InvalidTransactionTypeError: type has no rejection transition.
    """
    return REJECTION_EFFECTS[transaction_type](transaction_id, amount)


@dataclass(frozen=True)
class TransactionRecord:
    """Immutable snapshot of a transaction row."""

    id: UUID
    user_id: UUID
    type: TransactionType
    amount: Decimal
    status: TransactionStatus
    method: PaymentMethod
    order_id: UUID | None = None
    reference: str | None = None
    description: str | None = None
    admin_notes: str | None = None
    rejection_reason: str | None = None
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TRANSACTION_STATUSES
