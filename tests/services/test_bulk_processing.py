"""
Tests for bulk admin actions (BulkProcessor + ApprovalEngine.bulk_action).

Covers:
- Mixed batch [pending, completed, missing]: exactly one outcome per id,
  in request order, with the failures reported and the success committed
- Duplicate ids: the second occurrence fails with ALREADY_PROCESSED
- Unsupported action for the entity kind: every id gets UNSUPPORTED_ACTION
- Unexpected exceptions are captured as UNHANDLED_EXCEPTION
- Call-level validation: unknown kind, oversized reason
- An empty id list returns an empty result
- One BULK_ACTION summary activity plus one record per successful item
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from market_kernel.db.engine import session_scope
from market_kernel.domain.bulk import BulkAction, BulkItemStatus, EntityKind
from market_kernel.domain.order import OrderStatus
from market_kernel.exceptions import OrderNotFoundError, ValidationError
from market_kernel.models.admin_activity import ActivityAction
from market_kernel.models.order import Order
from market_kernel.selectors.activity_selector import ActivitySelector
from market_kernel.services.bulk_processor import (
    UNHANDLED_EXCEPTION,
    UNSUPPORTED_ACTION,
    BulkProcessor,
)


class TestBulkProcessor:
    """The executor in isolation, with a scripted item handler."""

    def test_outcomes_follow_request_order(self, admin_actor):
        def handler(kind, action, entity_id, actor, reason):
            if entity_id == "missing":
                raise OrderNotFoundError(entity_id)
            if entity_id == "boom":
                raise KeyError("unexpected")
            return None

        result = BulkProcessor(handler).run(
            EntityKind.ORDER, ["a", "missing", "boom", "b"], BulkAction.CANCEL, admin_actor,
        )

        assert [o.entity_id for o in result.outcomes] == ["a", "missing", "boom", "b"]
        assert [o.status for o in result.outcomes] == [
            BulkItemStatus.CANCELLED,
            BulkItemStatus.ERROR,
            BulkItemStatus.ERROR,
            BulkItemStatus.CANCELLED,
        ]
        missing = result.outcomes[1]
        assert missing.error_code == "ORDER_NOT_FOUND"
        assert missing.error == "Order not found"
        assert result.outcomes[2].error_code == UNHANDLED_EXCEPTION
        assert (result.succeeded, result.failed) == (2, 2)

    def test_unsupported_action_skips_handler(self, admin_actor):
        calls = []

        def handler(*args):
            calls.append(args)

        result = BulkProcessor(handler).run(
            EntityKind.TASK, ["x", "y"], "cancel", admin_actor,
        )

        assert calls == []
        assert result.total == 2
        assert all(o.error_code == UNSUPPORTED_ACTION for o in result.outcomes)

    def test_unknown_action_name(self, admin_actor):
        result = BulkProcessor(lambda *a: None).run(
            EntityKind.ORDER, ["x"], "archive", admin_actor,
        )
        assert result.action == "archive"
        assert result.outcomes[0].error_code == UNSUPPORTED_ACTION


class TestBulkOrders:

    def test_mixed_batch(
        self, approval_engine, admin_actor, make_user, make_order, read_row,
    ):
        user_id = make_user()
        pending = make_order(user_id)
        completed = make_order(user_id, status="completed")
        missing = uuid4()

        result = approval_engine.bulk_action(
            "order", [pending, completed, missing], "approve", admin_actor,
        )

        assert result.total == 3
        assert result.succeeded == 1
        assert result.failed == 2
        first, second, third = result.outcomes
        assert first.entity_id == str(pending)
        assert first.status is BulkItemStatus.APPROVED
        assert second.error_code == "ALREADY_PROCESSED"
        assert third.error_code == "ORDER_NOT_FOUND"
        assert third.error == "Order not found"
        assert read_row(Order, pending).status is OrderStatus.PROCESSING
        assert read_row(Order, completed).status is OrderStatus.COMPLETED

    def test_duplicate_ids(self, approval_engine, admin_actor, make_user, make_order):
        order_id = make_order(make_user())

        result = approval_engine.bulk_action(
            EntityKind.ORDER, [order_id, order_id], BulkAction.REJECT, admin_actor,
            reason="Spam target",
        )

        assert result.total == 2
        assert result.outcomes[0].status is BulkItemStatus.REJECTED
        assert result.outcomes[1].error_code == "ALREADY_PROCESSED"

    def test_bulk_cancel(self, approval_engine, admin_actor, make_user, make_order, read_row):
        user_id = make_user()
        ids = [make_order(user_id), make_order(user_id, status="processing")]

        result = approval_engine.bulk_action("order", ids, "cancel", admin_actor)

        assert result.succeeded == 2
        assert all(read_row(Order, i).status is OrderStatus.CANCELLED for i in ids)

    def test_reject_without_reason_fails_per_item(
        self, approval_engine, admin_actor, make_user, make_order,
    ):
        order_id = make_order(make_user())

        result = approval_engine.bulk_action("order", [order_id], "reject", admin_actor)

        assert result.outcomes[0].error_code == "VALIDATION_ERROR"

    def test_activity_records(
        self, approval_engine, admin_actor, make_user, make_order, session_factory,
    ):
        user_id = make_user()
        ids = [make_order(user_id), make_order(user_id, status="failed")]

        approval_engine.bulk_action("order", ids, "approve", admin_actor)

        with session_scope(session_factory) as sess:
            selector = ActivitySelector(sess)
            summaries = selector.list_activities(action=ActivityAction.BULK_ACTION)
            approvals = selector.list_activities(resource="order", action="APPROVE")
        assert summaries.total == 1
        summary = summaries.items[0]
        assert summary.resource == "orders"
        assert summary.resource_id is None
        assert summary.details["total"] == 2
        assert summary.details["succeeded"] == 1
        assert summary.details["failed"] == 1
        assert summary.details["ids"] == [str(i) for i in ids]
        assert approvals.total == 1
        assert approvals.items[0].details["bulk"] is True


class TestBulkTransactions:

    def test_bulk_approve_deposits(
        self, approval_engine, admin_actor, make_user, make_transaction, read_balance,
    ):
        user_id = make_user(balance="0")
        ids = [
            make_transaction(user_id, type="deposit", amount="10"),
            make_transaction(user_id, type="deposit", amount="2.50"),
            make_transaction(user_id, type="refund", amount="5", method="balance"),
        ]

        result = approval_engine.bulk_action("transaction", ids, "approve", admin_actor)

        assert [o.ok for o in result.outcomes] == [True, True, False]
        assert result.outcomes[2].error_code == "INVALID_TRANSACTION_TYPE"
        assert read_balance(user_id) == Decimal("12.50")

    def test_cancel_is_unsupported(self, approval_engine, admin_actor, make_user, make_transaction):
        txn_id = make_transaction(make_user())

        result = approval_engine.bulk_action("transaction", [txn_id], "cancel", admin_actor)

        assert result.outcomes[0].error_code == UNSUPPORTED_ACTION


class TestBulkTasks:

    def test_bulk_reject_tasks(self, approval_engine, admin_actor, make_user, make_task, read_row):
        doer = make_user(role="task_doer")
        ids = [make_task(doer), make_task(doer, status="approved")]

        result = approval_engine.bulk_action(
            "task", ids, "reject", admin_actor, reason="Fake engagement",
        )

        assert result.outcomes[0].status is BulkItemStatus.REJECTED
        assert result.outcomes[1].error_code == "ALREADY_PROCESSED"


class TestBulkCallValidation:

    def test_unknown_entity_kind(self, approval_engine, admin_actor):
        with pytest.raises(ValidationError) as exc_info:
            approval_engine.bulk_action("user", [str(uuid4())], "approve", admin_actor)
        assert exc_info.value.field == "entity_kind"

    def test_empty_ids_yield_empty_result(self, approval_engine, admin_actor, session_factory):
        result = approval_engine.bulk_action("order", [], "approve", admin_actor)

        assert result.outcomes == ()
        assert (result.total, result.succeeded, result.failed) == (0, 0, 0)
        with session_scope(session_factory) as sess:
            assert ActivitySelector(sess).list_activities(resource="orders").total == 0

    def test_reason_too_long(self, approval_engine, admin_actor):
        with pytest.raises(ValidationError):
            approval_engine.bulk_action(
                "order", [str(uuid4())], "cancel", admin_actor, reason="x" * 501,
            )
