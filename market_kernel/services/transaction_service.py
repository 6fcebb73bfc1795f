"""
TransactionService -- admin review of deposit and withdrawal requests.

Responsibility:
    Approve (pending -> completed) or reject (pending -> failed) a balance
    request and apply its balance effect through the LedgerService, all in
    the caller's atomic unit.

Architecture position:
    Kernel > Services.  Flush-only.  Balance effects come from the pure
    tables in ``domain/transaction.py``.

Invariants enforced:
    - Exactly-once: the row is locked, its status checked, and the status
      write is a compare-and-set in the same unit as the ledger write.  A
      second caller sees a non-pending row and gets AlreadyProcessedError
      with no balance change.
    - The type gate runs before any write, so an order_payment or refund
      row is never half-processed.

Failure modes:
    - ValidationError (reject reason too short), raised before any read.
    - TransactionNotFoundError, AlreadyProcessedError,
      InvalidTransactionTypeError, InsufficientFundsError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from market_kernel.db.types import MONEY_DECIMAL_PLACES, round_money
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.transaction import (
    TransactionStatus,
    TransactionType,
    approval_delta,
    rejection_delta,
)
from market_kernel.domain.validation import DEFAULT_MIN_REASON_LENGTH, require_reason
from market_kernel.exceptions import AlreadyProcessedError, TransactionNotFoundError
from market_kernel.logging_config import get_logger
from market_kernel.models.transaction import Transaction
from market_kernel.services.base import BaseService
from market_kernel.services.ledger_service import LedgerService

logger = get_logger("services.transaction")

_PENDING = frozenset({TransactionStatus.PENDING})


class TransactionService(BaseService[Transaction]):
    """Admin decisions on pending balance requests."""

    model = Transaction
    entity_type = "Transaction"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: LedgerService | None = None,
        min_reason_length: int = DEFAULT_MIN_REASON_LENGTH,
        decimal_places: int = MONEY_DECIMAL_PLACES,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._decimal_places = decimal_places
        self._ledger = ledger or LedgerService(session, decimal_places)
        self._min_reason_length = min_reason_length

    def approve(
        self,
        transaction_id: UUID | str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> Transaction:
        """pending -> completed; deposits credit the user."""
        txn = self._load_pending(transaction_id)
        delta = approval_delta(
            str(txn.id), TransactionType(txn.type), self._amount(txn),
        )

        values = self._decision_stamps(actor_id, notes)
        values["status"] = TransactionStatus.COMPLETED.value
        self._claim(txn, _PENDING, values)

        new_balance = self._apply(txn, delta, "transaction_approved")
        logger.info(
            "transaction_approved",
            extra={
                "transaction_id": str(txn.id),
                "transaction_type": txn.type,
                "amount": str(self._amount(txn)),
                "balance_delta": str(delta),
                "new_balance": str(new_balance) if new_balance is not None else None,
            },
        )
        return txn

    def reject(
        self,
        transaction_id: UUID | str,
        actor_id: UUID,
        reason: str | None,
        notes: str | None = None,
    ) -> Transaction:
        """pending -> failed; withdrawals are refunded."""
        cleaned = require_reason(reason, self._min_reason_length)
        txn = self._load_pending(transaction_id)
        delta = rejection_delta(
            str(txn.id), TransactionType(txn.type), self._amount(txn),
        )

        values = self._decision_stamps(actor_id, notes)
        values["status"] = TransactionStatus.FAILED.value
        values["rejection_reason"] = cleaned
        self._claim(txn, _PENDING, values)

        new_balance = self._apply(txn, delta, "transaction_rejected")
        logger.info(
            "transaction_rejected",
            extra={
                "transaction_id": str(txn.id),
                "transaction_type": txn.type,
                "amount": str(self._amount(txn)),
                "balance_delta": str(delta),
                "new_balance": str(new_balance) if new_balance is not None else None,
            },
        )
        return txn

    def _load_pending(self, transaction_id: UUID | str) -> Transaction:
        txn = self._load_for_update(transaction_id, TransactionNotFoundError)
        if txn.status != TransactionStatus.PENDING.value:
            raise AlreadyProcessedError(self.entity_type, str(txn.id), txn.status)
        return txn

    def _amount(self, txn: Transaction) -> Decimal:
        return round_money(txn.amount, self._decimal_places)

    def _decision_stamps(self, actor_id: UUID, notes: str | None) -> dict:
        values = {
            "processed_by": actor_id,
            "processed_at": self._clock.now(),
            "updated_by_id": actor_id,
        }
        if notes is not None:
            values["admin_notes"] = notes
        return values

    def _apply(self, txn: Transaction, delta: Decimal, reason: str) -> Decimal | None:
        if delta == 0:
            return None
        return self._ledger.apply_balance_delta(
            txn.user_id, delta, reason=reason, reference_id=txn.id,
        )
