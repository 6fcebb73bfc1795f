"""
BalanceRequestService -- users asking to add or take out money.

Responsibility:
    Create the pending deposit/withdrawal rows that admins later review.

    - Deposit: pending row with a positive amount.  No balance change
      until an admin approves it.
    - Withdrawal: the amount is debited immediately through the
      LedgerService (so it cannot be spent twice while under review) and a
      pending row with a negative amount is recorded.  Rejection refunds it.

Architecture position:
    Kernel > Services.  Flush-only.

Failure modes:
    - ValidationError: non-positive or float amount, unknown method.
    - UserNotFoundError, InsufficientFundsError (withdrawal).
"""

from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from market_kernel.db.base import coerce_uuid
from market_kernel.db.types import MONEY_DECIMAL_PLACES, round_money, to_money
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.transaction import (
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)
from market_kernel.exceptions import UserNotFoundError, ValidationError
from market_kernel.logging_config import get_logger
from market_kernel.models.transaction import Transaction
from market_kernel.models.user import UserAccount
from market_kernel.services.base import BaseService
from market_kernel.services.ledger_service import LedgerService

logger = get_logger("services.balance_request")


class BalanceRequestService(BaseService[Transaction]):
    model = Transaction
    entity_type = "Transaction"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger: LedgerService | None = None,
        decimal_places: int = MONEY_DECIMAL_PLACES,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._decimal_places = decimal_places
        self._ledger = ledger or LedgerService(session, decimal_places)

    def create_deposit(
        self,
        user_id: UUID | str,
        amount: Decimal | int | str,
        method: str | PaymentMethod,
        reference: str | None = None,
    ) -> Transaction:
        """Record a pending deposit request."""
        value = self._positive_amount(amount)
        payment_method = self._method(method)
        user = self._user(user_id)

        txn = Transaction(
            user_id=user.id,
            type=TransactionType.DEPOSIT.value,
            amount=value,
            status=TransactionStatus.PENDING.value,
            method=payment_method.value,
            reference=reference,
            description=f"Deposit via {payment_method.value}",
            created_by_id=user.id,
        )
        self.session.add(txn)
        self.session.flush()
        logger.info(
            "deposit_requested",
            extra={"transaction_id": str(txn.id), "user_id": str(user.id), "amount": str(value)},
        )
        return txn

    def create_withdrawal(
        self,
        user_id: UUID | str,
        amount: Decimal | int | str,
        method: str | PaymentMethod,
        reference: str | None = None,
    ) -> Transaction:
        """Debit the user now and record a pending withdrawal request."""
        value = self._positive_amount(amount)
        payment_method = self._method(method)
        user = self._user(user_id)

        txn_id = uuid4()
        self._ledger.apply_balance_delta(
            user.id, -value, reason="withdrawal_requested", reference_id=txn_id,
        )
        txn = Transaction(
            id=txn_id,
            user_id=user.id,
            type=TransactionType.WITHDRAWAL.value,
            amount=-value,
            status=TransactionStatus.PENDING.value,
            method=payment_method.value,
            reference=reference,
            description=f"Withdrawal via {payment_method.value}",
            created_by_id=user.id,
        )
        self.session.add(txn)
        self.session.flush()
        logger.info(
            "withdrawal_requested",
            extra={"transaction_id": str(txn.id), "user_id": str(user.id), "amount": str(value)},
        )
        return txn

    def _positive_amount(self, amount: Decimal | int | str) -> Decimal:
        try:
            value = round_money(to_money(amount), self._decimal_places)
        except (TypeError, InvalidOperation) as exc:
            raise ValidationError("amount", f"not a monetary value: {amount!r}") from exc
        if value <= 0:
            raise ValidationError("amount", "must be positive")
        return value

    def _method(self, method: str | PaymentMethod) -> PaymentMethod:
        try:
            return PaymentMethod(method)
        except ValueError as exc:
            raise ValidationError("method", f"unknown payment method: {method!r}") from exc

    def _user(self, user_id: UUID | str) -> UserAccount:
        parsed = coerce_uuid(user_id)
        user = self.session.get(UserAccount, parsed) if parsed is not None else None
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user
