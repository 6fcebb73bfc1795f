"""
ApprovalEngine -- the admin-facing entry point for every state change.

Responsibility:
    Stateless orchestrator over the transaction, order and task services.
    Every mutating call follows the same path:

        1. role check (UnauthorizedActorError)
        2. bind actor/entity/action into LogContext
        3. run the service call inside one session_scope()
           (commit on success, rollback on any exception)
        4. SQLAlchemyError -> InternalError; kernel errors pass through
        5. after commit, hand an activity record to the ActivitySink
           (best-effort; a failed write never undoes step 3)
        6. return a frozen DTO

Architecture position:
    Kernel > Services.  The ONLY kernel component that opens units of
    work.  Holds no persistent state between calls.

Invariants enforced:
    - Single-item operations either fully apply (status + stamps + ledger)
      or leave no trace.
    - bulk_action checks authorization once, then never raises for
      item-level problems (see BulkProcessor).

Failure modes:
    - UnauthorizedActorError, ValidationError, NotFoundError subclasses,
      AlreadyProcessedError, InvalidTransactionTypeError,
      NotRefundableError, InsufficientFundsError, InternalError.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from market_kernel.db.engine import session_scope
from market_kernel.domain.actor import Actor, check_mutation_allowed
from market_kernel.domain.bulk import (
    BULK_RESOURCE,
    BulkAction,
    BulkResult,
    EntityKind,
)
from market_kernel.domain.clock import Clock, SystemClock
from market_kernel.domain.order import OrderRecord, OrderStatus
from market_kernel.domain.settings import ApprovalSettings
from market_kernel.domain.task import TaskRecord
from market_kernel.domain.transaction import TransactionRecord
from market_kernel.domain.validation import optional_reason
from market_kernel.exceptions import (
    InternalError,
    UnauthorizedActorError,
    ValidationError,
)
from market_kernel.logging_config import LogContext, get_logger
from market_kernel.models.admin_activity import ActivityAction
from market_kernel.services.admin_activity_service import (
    ActivitySink,
    DatabaseActivitySink,
)
from market_kernel.services.bulk_processor import BulkProcessor
from market_kernel.services.order_service import OrderService
from market_kernel.services.task_service import TaskService
from market_kernel.services.transaction_service import TransactionService

logger = get_logger("services.approval_engine")

T = TypeVar("T")


class ApprovalEngine:
    """Admin approval/rejection/refund/cancel/status operations."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        settings: ApprovalSettings | None = None,
        activity_sink: ActivitySink | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings or ApprovalSettings()
        self._activity_sink = activity_sink or DatabaseActivitySink(
            session_factory, self._clock,
        )
        self._bulk_handlers: dict[
            tuple[EntityKind, BulkAction], Callable[[str, Actor, str | None], Any]
        ] = {
            (EntityKind.TRANSACTION, BulkAction.APPROVE):
                lambda i, a, r: self._approve_transaction(i, a, None, bulk=True),
            (EntityKind.TRANSACTION, BulkAction.REJECT):
                lambda i, a, r: self._reject_transaction(i, a, r, None, bulk=True),
            (EntityKind.ORDER, BulkAction.APPROVE):
                lambda i, a, r: self._approve_order(i, a, None, bulk=True),
            (EntityKind.ORDER, BulkAction.REJECT):
                lambda i, a, r: self._reject_order(i, a, r, None, bulk=True),
            (EntityKind.ORDER, BulkAction.CANCEL):
                lambda i, a, r: self._cancel_order(i, a, r, bulk=True),
            (EntityKind.TASK, BulkAction.APPROVE):
                lambda i, a, r: self._approve_task(i, a, None, bulk=True),
            (EntityKind.TASK, BulkAction.REJECT):
                lambda i, a, r: self._reject_task(i, a, r, None, bulk=True),
        }

    # ------------------------------------------------------------------
    # Transactions (balance requests)
    # ------------------------------------------------------------------

    def approve_transaction(
        self, transaction_id: UUID | str, actor: Actor, notes: str | None = None,
    ) -> TransactionRecord:
        self._authorize(actor, "approve_transaction")
        return self._approve_transaction(transaction_id, actor, notes)

    def reject_transaction(
        self,
        transaction_id: UUID | str,
        actor: Actor,
        reason: str | None,
        notes: str | None = None,
    ) -> TransactionRecord:
        self._authorize(actor, "reject_transaction")
        return self._reject_transaction(transaction_id, actor, reason, notes)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def approve_order(
        self, order_id: UUID | str, actor: Actor, notes: str | None = None,
    ) -> OrderRecord:
        self._authorize(actor, "approve_order")
        return self._approve_order(order_id, actor, notes)

    def reject_order(
        self,
        order_id: UUID | str,
        actor: Actor,
        reason: str | None,
        notes: str | None = None,
    ) -> OrderRecord:
        self._authorize(actor, "reject_order")
        return self._reject_order(order_id, actor, reason, notes)

    def refund_order(
        self,
        order_id: UUID | str,
        actor: Actor,
        reason: str | None,
        notes: str | None = None,
    ) -> OrderRecord:
        self._authorize(actor, "refund_order")

        def work(session: Session) -> OrderRecord:
            order = self._orders(session).refund(order_id, actor.actor_id, reason, notes)
            return order.to_dto()

        dto = self._execute("refund_order", "Order", order_id, actor, work)
        self._record(
            actor, ActivityAction.REFUND, "order", dto.id,
            {"reason": dto.refund_reason, "amount": dto.amount, "notes": notes},
        )
        return dto

    def cancel_order(
        self, order_id: UUID | str, actor: Actor, reason: str | None = None,
    ) -> OrderRecord:
        self._authorize(actor, "cancel_order")
        return self._cancel_order(order_id, actor, reason)

    def set_order_status(
        self,
        order_id: UUID | str,
        actor: Actor,
        new_status: str | OrderStatus,
        reason: str | None = None,
    ) -> OrderRecord:
        """Manual override: any status, regardless of the current one."""
        self._authorize(actor, "set_order_status")
        previous: list[OrderStatus] = []

        def work(session: Session) -> OrderRecord:
            order, old = self._orders(session).set_status(
                order_id, actor.actor_id, new_status, reason,
            )
            previous.append(old)
            return order.to_dto()

        dto = self._execute("set_order_status", "Order", order_id, actor, work)
        self._record(
            actor, ActivityAction.STATUS_UPDATE, "order", dto.id,
            {"old_status": previous[0], "new_status": dto.status, "reason": reason},
        )
        return dto

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def approve_task(
        self, task_id: UUID | str, actor: Actor, notes: str | None = None,
    ) -> TaskRecord:
        self._authorize(actor, "approve_task")
        return self._approve_task(task_id, actor, notes)

    def reject_task(
        self,
        task_id: UUID | str,
        actor: Actor,
        reason: str | None,
        notes: str | None = None,
    ) -> TaskRecord:
        self._authorize(actor, "reject_task")
        return self._reject_task(task_id, actor, reason, notes)

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def bulk_action(
        self,
        entity_kind: EntityKind | str,
        ids: Sequence[UUID | str],
        action: BulkAction | str,
        actor: Actor,
        reason: str | None = None,
    ) -> BulkResult:
        """
        Apply ``action`` to every id independently.

        Raises only for call-level problems: an unauthorized actor, an
        unknown entity kind or a reason over the length limit.  Every
        item-level failure is reported in the returned BulkResult.  An empty
        id list yields an empty result and writes no activity.
        """
        self._authorize(actor, "bulk_action")
        try:
            kind = EntityKind(entity_kind)
        except ValueError as exc:
            raise ValidationError(
                "entity_kind", f"unknown entity kind: {entity_kind!r}",
            ) from exc
        optional_reason(reason, self._settings.max_status_reason_length)

        with LogContext.bind(
            actor_id=str(actor.actor_id), entity_type=kind.value, action="bulk_action",
        ):
            result = BulkProcessor(self._bulk_item).run(kind, ids, action, actor, reason)

        if not result.total:
            return result
        self._record(
            actor, ActivityAction.BULK_ACTION, BULK_RESOURCE[kind], None,
            {
                "entity_kind": kind.value,
                "action": result.action,
                "ids": [str(i) for i in ids],
                "reason": reason,
                "total": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
            },
        )
        return result

    def _bulk_item(
        self,
        kind: EntityKind,
        action: BulkAction,
        entity_id: str,
        actor: Actor,
        reason: str | None,
    ) -> Any:
        return self._bulk_handlers[(kind, action)](entity_id, actor, reason)

    # ------------------------------------------------------------------
    # Unchecked single-item units (authorization already done)
    # ------------------------------------------------------------------

    def _approve_transaction(
        self, transaction_id, actor: Actor, notes: str | None, bulk: bool = False,
    ) -> TransactionRecord:
        def work(session: Session) -> TransactionRecord:
            return self._transactions(session).approve(
                transaction_id, actor.actor_id, notes,
            ).to_dto()

        dto = self._execute("approve_transaction", "Transaction", transaction_id, actor, work)
        self._record(
            actor, ActivityAction.APPROVE, "balance", dto.id,
            {
                "type": dto.type, "amount": dto.amount, "user_id": dto.user_id,
                "notes": notes, "bulk": bulk,
            },
        )
        return dto

    def _reject_transaction(
        self, transaction_id, actor: Actor, reason: str | None, notes: str | None,
        bulk: bool = False,
    ) -> TransactionRecord:
        def work(session: Session) -> TransactionRecord:
            return self._transactions(session).reject(
                transaction_id, actor.actor_id, reason, notes,
            ).to_dto()

        dto = self._execute("reject_transaction", "Transaction", transaction_id, actor, work)
        self._record(
            actor, ActivityAction.REJECT, "balance", dto.id,
            {
                "type": dto.type, "amount": dto.amount, "user_id": dto.user_id,
                "reason": dto.rejection_reason, "notes": notes, "bulk": bulk,
            },
        )
        return dto

    def _approve_order(
        self, order_id, actor: Actor, notes: str | None, bulk: bool = False,
    ) -> OrderRecord:
        def work(session: Session) -> OrderRecord:
            return self._orders(session).approve(order_id, actor.actor_id, notes).to_dto()

        dto = self._execute("approve_order", "Order", order_id, actor, work)
        self._record(
            actor, ActivityAction.APPROVE, "order", dto.id,
            {"status": dto.status, "notes": notes, "bulk": bulk},
        )
        return dto

    def _reject_order(
        self, order_id, actor: Actor, reason: str | None, notes: str | None,
        bulk: bool = False,
    ) -> OrderRecord:
        def work(session: Session) -> OrderRecord:
            return self._orders(session).reject(
                order_id, actor.actor_id, reason, notes,
            ).to_dto()

        dto = self._execute("reject_order", "Order", order_id, actor, work)
        self._record(
            actor, ActivityAction.REJECT, "order", dto.id,
            {"reason": dto.rejection_reason, "notes": notes, "bulk": bulk},
        )
        return dto

    def _cancel_order(
        self, order_id, actor: Actor, reason: str | None, bulk: bool = False,
    ) -> OrderRecord:
        def work(session: Session) -> OrderRecord:
            return self._orders(session).cancel(order_id, actor.actor_id, reason).to_dto()

        dto = self._execute("cancel_order", "Order", order_id, actor, work)
        self._record(
            actor, ActivityAction.CANCEL, "order", dto.id,
            {"reason": reason, "bulk": bulk},
        )
        return dto

    def _approve_task(
        self, task_id, actor: Actor, notes: str | None, bulk: bool = False,
    ) -> TaskRecord:
        def work(session: Session) -> TaskRecord:
            return self._tasks(session).approve(task_id, actor.actor_id, notes).to_dto()

        dto = self._execute("approve_task", "Task", task_id, actor, work)
        self._record(
            actor, ActivityAction.APPROVE, "task", dto.id,
            {"notes": notes, "bulk": bulk},
        )
        return dto

    def _reject_task(
        self, task_id, actor: Actor, reason: str | None, notes: str | None,
        bulk: bool = False,
    ) -> TaskRecord:
        def work(session: Session) -> TaskRecord:
            return self._tasks(session).reject(
                task_id, actor.actor_id, reason, notes,
            ).to_dto()

        dto = self._execute("reject_task", "Task", task_id, actor, work)
        self._record(
            actor, ActivityAction.REJECT, "task", dto.id,
            {"reason": dto.rejection_reason, "notes": notes, "bulk": bulk},
        )
        return dto

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _transactions(self, session: Session) -> TransactionService:
        return TransactionService(
            session,
            clock=self._clock,
            min_reason_length=self._settings.min_reason_length,
            decimal_places=self._settings.money_decimal_places,
        )

    def _orders(self, session: Session) -> OrderService:
        return OrderService(
            session,
            clock=self._clock,
            min_reason_length=self._settings.min_reason_length,
            max_status_reason_length=self._settings.max_status_reason_length,
        )

    def _tasks(self, session: Session) -> TaskService:
        return TaskService(
            session,
            clock=self._clock,
            min_reason_length=self._settings.min_reason_length,
        )

    def _authorize(self, actor: Actor, operation: str) -> None:
        allowed, reason = check_mutation_allowed(actor, self._settings.mutating_roles)
        if not allowed:
            logger.warning(
                "admin_action_unauthorized",
                extra={
                    "actor_id": str(actor.actor_id),
                    "role": actor.role.value,
                    "operation": operation,
                    "denial_reason": reason,
                },
            )
            raise UnauthorizedActorError(
                str(actor.actor_id), actor.role.value, operation,
            )

    def _execute(
        self,
        operation: str,
        entity_type: str,
        entity_id: UUID | str,
        actor: Actor,
        work: Callable[[Session], T],
    ) -> T:
        with LogContext.bind(
            actor_id=str(actor.actor_id),
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=operation,
        ):
            try:
                with session_scope(self._session_factory) as session:
                    return work(session)
            except SQLAlchemyError as exc:
                logger.error(
                    "admin_action_persistence_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise InternalError(operation, str(exc)) from exc

    def _record(
        self,
        actor: Actor,
        action: ActivityAction,
        resource: str,
        resource_id: UUID | None,
        details: dict[str, Any],
    ) -> None:
        try:
            self._activity_sink.record(
                actor=actor,
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else None,
                details=details,
            )
        except Exception:
            # Sinks are best-effort; the transition is already committed
            logger.error(
                "admin_activity_sink_failed",
                extra={"activity_action": action.value, "resource": resource},
                exc_info=True,
            )
