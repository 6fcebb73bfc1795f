"""
OrderService -- admin lifecycle actions on engagement orders.

Responsibility:
    approve, reject, refund, cancel and the manual status override.  Each
    action is one compare-and-set UPDATE carrying the new status and its
    stamps.  No action here moves money.

Architecture position:
    Kernel > Services.  Flush-only.  Source states come from
    ``domain/order.py``.

Failure modes:
    - ValidationError (reason rules, unknown status), raised before any read.
    - OrderNotFoundError, AlreadyProcessedError, NotRefundableError.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.order import (
    APPROVE_FROM,
    CANCEL_FROM,
    REFUND_FROM,
    REJECT_FROM,
    OrderStatus,
    override_stamps,
    parse_order_status,
)
from market_kernel.domain.validation import (
    DEFAULT_MAX_STATUS_REASON_LENGTH,
    DEFAULT_MIN_REASON_LENGTH,
    optional_reason,
    require_reason,
)
from market_kernel.exceptions import (
    AlreadyProcessedError,
    NotRefundableError,
    OrderNotFoundError,
    ValidationError,
)
from market_kernel.logging_config import get_logger
from market_kernel.models.order import Order
from market_kernel.services.base import BaseService

logger = get_logger("services.order")

_ALL_STATUSES = frozenset(OrderStatus)

# An order is decided at most once; set_status may reopen it but never clears
# the stamp.
_UNDECIDED = (Order.approved_at.is_(None), Order.rejected_at.is_(None))


class OrderService(BaseService[Order]):
    """Admin decisions on orders."""

    model = Order
    entity_type = "Order"

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        min_reason_length: int = DEFAULT_MIN_REASON_LENGTH,
        max_status_reason_length: int = DEFAULT_MAX_STATUS_REASON_LENGTH,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._min_reason_length = min_reason_length
        self._max_status_reason_length = max_status_reason_length

    def approve(
        self, order_id: UUID | str, actor_id: UUID, notes: str | None = None,
    ) -> Order:
        """pending -> processing."""
        order = self._load_from(order_id, APPROVE_FROM, undecided=True)
        now = self._clock.now()
        values = {
            "status": OrderStatus.PROCESSING.value,
            "approved_by": actor_id,
            "approved_at": now,
            "updated_by_id": actor_id,
        }
        if order.started_at is None:
            values["started_at"] = now
        if notes is not None:
            values["admin_notes"] = notes
        self._claim(order, APPROVE_FROM, values, guards=_UNDECIDED)
        logger.info("order_approved", extra={"order_id": str(order.id)})
        return order

    def reject(
        self,
        order_id: UUID | str,
        actor_id: UUID,
        reason: str | None,
        notes: str | None = None,
    ) -> Order:
        """pending -> cancelled, with the rejection recorded."""
        cleaned = require_reason(reason, self._min_reason_length)
        order = self._load_from(order_id, REJECT_FROM, undecided=True)
        values = {
            "status": OrderStatus.CANCELLED.value,
            "rejected_by": actor_id,
            "rejected_at": self._clock.now(),
            "rejection_reason": cleaned,
            "updated_by_id": actor_id,
        }
        if notes is not None:
            values["admin_notes"] = notes
        self._claim(order, REJECT_FROM, values, guards=_UNDECIDED)
        logger.info(
            "order_rejected",
            extra={"order_id": str(order.id), "reason": cleaned},
        )
        return order

    def refund(
        self,
        order_id: UUID | str,
        actor_id: UUID,
        reason: str | None,
        notes: str | None = None,
    ) -> Order:
        """completed|processing -> refunded."""
        cleaned = require_reason(reason, self._min_reason_length)
        order = self._load_for_update(order_id, OrderNotFoundError)
        if OrderStatus(order.status) not in REFUND_FROM:
            raise NotRefundableError(str(order.id), order.status)
        values = {
            "status": OrderStatus.REFUNDED.value,
            "refund_reason": cleaned,
            "updated_by_id": actor_id,
        }
        if notes is not None:
            values["admin_notes"] = notes
        self._claim(
            order, REFUND_FROM, values,
            on_conflict=lambda current: NotRefundableError(str(order.id), current),
        )
        logger.info(
            "order_refunded",
            extra={"order_id": str(order.id), "reason": cleaned},
        )
        return order

    def cancel(
        self, order_id: UUID | str, actor_id: UUID, reason: str | None = None,
    ) -> Order:
        """pending|processing -> cancelled without a rejection stamp."""
        cleaned = optional_reason(reason, self._max_status_reason_length)
        order = self._load_from(order_id, CANCEL_FROM)
        values = {
            "status": OrderStatus.CANCELLED.value,
            "updated_by_id": actor_id,
        }
        if cleaned is not None:
            values["admin_notes"] = cleaned
        self._claim(order, CANCEL_FROM, values)
        logger.info("order_cancelled", extra={"order_id": str(order.id)})
        return order

    def set_status(
        self,
        order_id: UUID | str,
        actor_id: UUID,
        new_status: str | OrderStatus,
        reason: str | None = None,
    ) -> tuple[Order, OrderStatus]:
        """
        Force an order into any status, ignoring the lifecycle graph.

        Returns:
            (order, previous_status).
        """
        try:
            target = parse_order_status(new_status)
        except ValueError as exc:
            raise ValidationError(
                "status", f"unknown order status: {new_status!r}",
            ) from exc
        cleaned = optional_reason(reason, self._max_status_reason_length)

        order = self._load_for_update(order_id, OrderNotFoundError)
        previous = OrderStatus(order.status)
        values = {
            "status": target.value,
            "updated_by_id": actor_id,
            **override_stamps(
                target,
                quantity=order.quantity,
                started_at=order.started_at,
                now=self._clock.now(),
            ),
        }
        if cleaned is not None:
            values["admin_notes"] = cleaned
        self._claim(order, _ALL_STATUSES, values)
        logger.info(
            "order_status_overridden",
            extra={
                "order_id": str(order.id),
                "previous_status": previous.value,
                "new_status": target.value,
            },
        )
        return order, previous

    def _load_from(
        self,
        order_id: UUID | str,
        sources: frozenset[OrderStatus],
        undecided: bool = False,
    ) -> Order:
        order = self._load_for_update(order_id, OrderNotFoundError)
        decided = order.approved_at is not None or order.rejected_at is not None
        if OrderStatus(order.status) not in sources or (undecided and decided):
            raise AlreadyProcessedError(self.entity_type, str(order.id), order.status)
        return order
