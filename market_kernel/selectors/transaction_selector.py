"""
TransactionSelector -- read side of the balance-request queue.

Lists deposit and withdrawal requests for the admin review screen, newest
first, with free-text search over the requesting user's identity.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from market_kernel.db.base import coerce_uuid
from market_kernel.domain.transaction import (
    BALANCE_REQUEST_TYPES,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)
from market_kernel.exceptions import TransactionNotFoundError, ValidationError
from market_kernel.models.transaction import Transaction
from market_kernel.models.user import UserAccount
from market_kernel.selectors.base import BaseSelector, Page


class TransactionSelector(BaseSelector[Transaction]):

    def get(self, transaction_id: UUID | str) -> TransactionRecord:
        parsed = coerce_uuid(transaction_id)
        txn = self.session.get(Transaction, parsed) if parsed is not None else None
        if txn is None:
            raise TransactionNotFoundError(str(transaction_id))
        return txn.to_dto()

    def list_balance_requests(
        self,
        type: str | TransactionType | None = None,
        status: str | TransactionStatus | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        """Deposit/withdrawal requests, newest first."""
        stmt = (
            select(Transaction)
            .join(Transaction.user)
            .where(Transaction.type.in_([t.value for t in BALANCE_REQUEST_TYPES]))
        )
        if type is not None:
            requested = self._enum(TransactionType, type, "type")
            if requested not in BALANCE_REQUEST_TYPES:
                raise ValidationError("type", "must be deposit or withdrawal")
            stmt = stmt.where(Transaction.type == requested.value)
        if status is not None:
            requested_status = self._enum(TransactionStatus, status, "status")
            stmt = stmt.where(Transaction.status == requested_status.value)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                UserAccount.email.ilike(pattern),
                UserAccount.username.ilike(pattern),
                UserAccount.first_name.ilike(pattern),
                UserAccount.last_name.ilike(pattern),
            ))
        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id)
        return self._paginate(stmt, page, limit)
