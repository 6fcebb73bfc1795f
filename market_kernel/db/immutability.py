"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

A settled balance movement is history.  Once an admin approved a deposit
(and the user's balance moved) or rejected a withdrawal (and the money was
refunded), editing that row through the ORM would make the row disagree
with the balance it produced.  The same goes for the admin activity log
and for the approve/reject decision stamps on orders and tasks.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below intercept them:

    session.flush()
         |
         v
    [before_update] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The services move state with compare-and-set Core UPDATE statements that
carry the new status and its stamps in one statement.  Those do not pass
through these listeners; the listeners guard every later edit made through
ORM objects.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule
----------------|-----------------------------------------------------------
Transaction     | Frozen once status is completed/failed (audit metadata ok)
                | Cannot be deleted once settled
Order, Task     | approved_at / rejected_at write-once, mutually exclusive
AdminActivity   | Append-only: no UPDATE, no DELETE

updated_at and updated_by_id stay writable everywhere: they record who
touched a row, not what the row says.

===============================================================================
USAGE
===============================================================================

    from market_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # create_tables() calls this

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from market_kernel.exceptions import ImmutabilityViolationError
from market_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})
_TERMINAL_TRANSACTION_STATUSES = frozenset({"completed", "failed"})
_DECISION_STAMPS = ("approved_at", "rejected_at")


def _changed_fields(mapper, target) -> set[str]:
    return {
        attr.key
        for attr in mapper.column_attrs
        if get_history(target, attr.key).has_changes()
    }


def _block(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_transaction_immutability(mapper, connection, target):
    """
    Prevent updates to settled Transaction records.

    pending -> completed/failed through the ORM is allowed (that IS the
    settlement).  Leaving a terminal status, or changing any non-audit
    field while terminal, is blocked.
    """
    status_history = get_history(target, "status")

    if status_history.deleted:
        previous = status_history.deleted[0]
        if previous in _TERMINAL_TRANSACTION_STATUSES:
            _block(
                "Transaction", target, "UPDATE",
                f"status cannot change once {previous}",
            )
        return

    if target.status not in _TERMINAL_TRANSACTION_STATUSES:
        return

    changed = _changed_fields(mapper, target) - _AUDIT_METADATA_FIELDS
    if changed:
        _block(
            "Transaction", target, "UPDATE",
            f"settled transaction is immutable (attempted: {sorted(changed)})",
        )


def _check_transaction_delete(mapper, connection, target):
    """Settled transactions cannot be deleted."""
    status_history = get_history(target, "status")
    current = (
        status_history.deleted[0] if status_history.deleted else target.status
    )
    if current in _TERMINAL_TRANSACTION_STATUSES:
        _block("Transaction", target, "DELETE", "settled transactions cannot be deleted")


def _decision_stamp_guard(entity_type: str):
    def check(mapper, connection, target):
        for field in _DECISION_STAMPS:
            history = get_history(target, field)
            if history.deleted and history.deleted[0] is not None and history.added:
                _block(
                    entity_type, target, "UPDATE",
                    f"{field} is write-once",
                )
        if target.approved_at is not None and target.rejected_at is not None:
            _block(
                entity_type, target, "UPDATE",
                "approved_at and rejected_at are mutually exclusive",
            )
    check.__name__ = f"_check_{entity_type.lower()}_decision_stamps"
    return check


_check_order_decision_stamps = _decision_stamp_guard("Order")
_check_task_decision_stamps = _decision_stamp_guard("Task")


def _check_admin_activity_immutability(mapper, connection, target):
    """Admin activity rows are append-only."""
    _block(
        "AdminActivity", target, "UPDATE",
        "admin activity records are immutable and cannot be modified",
    )


def _check_admin_activity_delete(mapper, connection, target):
    _block(
        "AdminActivity", target, "DELETE",
        "admin activity records are immutable and cannot be deleted",
    )


def _listeners():
    from market_kernel.models.admin_activity import AdminActivity
    from market_kernel.models.order import Order
    from market_kernel.models.task import Task
    from market_kernel.models.transaction import Transaction

    return (
        (Transaction, "before_update", _check_transaction_immutability),
        (Transaction, "before_delete", _check_transaction_delete),
        (Order, "before_update", _check_order_decision_stamps),
        (Task, "before_update", _check_task_decision_stamps),
        (AdminActivity, "before_update", _check_admin_activity_immutability),
        (AdminActivity, "before_delete", _check_admin_activity_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: a listener already registered is not added twice.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that need to violate the rules on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
