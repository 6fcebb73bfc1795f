"""
LedgerService -- the only writer of ``users.balance``.

Responsibility:
    Apply a signed balance delta to one user inside the caller's atomic
    unit.  Every balance change in the system (deposit approval,
    withdrawal request, withdrawal refund) goes through
    ``apply_balance_delta``.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns commit/rollback.

Invariants enforced:
    - Balance floor: a delta that would drive the balance below zero is
      refused.  The check and the write are one statement:
      ``UPDATE users SET balance = balance + :delta
        WHERE id = :id AND balance + :delta >= 0``
      so concurrent writers cannot interleave between read and write.
    - Deltas are rounded to the business precision before use.

Failure modes:
    - UserNotFoundError: no such user.
    - InsufficientFundsError: the floor guard refused the delta.
    Either aborts the enclosing transition; nothing is retried.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from market_kernel.db.base import coerce_uuid
from market_kernel.db.types import MONEY_DECIMAL_PLACES, round_money
from market_kernel.exceptions import InsufficientFundsError, UserNotFoundError
from market_kernel.logging_config import get_logger
from market_kernel.models.user import UserAccount
from market_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class LedgerService(BaseService[UserAccount]):
    """Guarded balance mutations for user accounts."""

    model = UserAccount
    entity_type = "User"

    def __init__(self, session: Session, decimal_places: int = MONEY_DECIMAL_PLACES):
        super().__init__(session)
        self._decimal_places = decimal_places

    def get_balance(self, user_id: UUID | str) -> Decimal:
        """
        Current balance, read straight from the column.

        Raises:
            UserNotFoundError: no such user.
        """
        parsed = coerce_uuid(user_id)
        balance = None
        if parsed is not None:
            balance = self.session.execute(
                select(UserAccount.balance).where(UserAccount.id == parsed)
            ).scalar_one_or_none()
        if balance is None:
            raise UserNotFoundError(str(user_id))
        return round_money(balance, self._decimal_places)

    def apply_balance_delta(
        self,
        user_id: UUID | str,
        delta: Decimal,
        *,
        reason: str,
        reference_id: UUID | str | None = None,
    ) -> Decimal:
        """
        Add ``delta`` (positive, negative or zero) to the user's balance.

        Returns:
            The new balance.

        Raises:
            UserNotFoundError: no such user.
            InsufficientFundsError: the new balance would be negative.
        """
        delta = round_money(delta, self._decimal_places)
        if delta == 0:
            return self.get_balance(user_id)

        parsed = coerce_uuid(user_id)
        if parsed is None:
            raise UserNotFoundError(str(user_id))

        result = self.session.execute(
            update(UserAccount)
            .where(UserAccount.id == parsed)
            .where(UserAccount.balance + delta >= 0)
            .values(balance=UserAccount.balance + delta)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            current = self.get_balance(parsed)
            logger.warning(
                "balance_delta_refused",
                extra={
                    "user_id": str(parsed),
                    "delta": str(delta),
                    "balance": str(current),
                    "reason": reason,
                },
            )
            raise InsufficientFundsError(str(parsed), str(current), str(delta))

        new_balance = self.get_balance(parsed)
        logger.info(
            "balance_delta_applied",
            extra={
                "user_id": str(parsed),
                "delta": str(delta),
                "new_balance": str(new_balance),
                "reason": reason,
                "reference_id": str(reference_id) if reference_id else None,
            },
        )
        return new_balance
