"""
Tests for OrderService -- admin lifecycle actions on orders.

Covers:
- approve: pending -> processing with approval stamps
- reject: pending -> cancelled with rejection stamps and trimmed reason
- refund: processing/completed -> refunded; NotRefundableError otherwise
- cancel: pending/processing -> cancelled; optional reason kept in notes
- set_status: any -> any, with the bookkeeping stamps
- Compare-and-set: a stale caller loses
- A reopened order cannot collect a second decision stamp
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from market_kernel.domain.order import APPROVE_FROM, REJECT_FROM, OrderStatus
from market_kernel.exceptions import (
    AlreadyProcessedError,
    NotRefundableError,
    OrderNotFoundError,
    ValidationError,
)
from market_kernel.models.order import Order
from market_kernel.services.order_service import OrderService


@pytest.fixture
def service(session, deterministic_clock):
    return OrderService(session, clock=deterministic_clock)


class TestApproveAndReject:

    def test_approve_pending(self, service, make_user, make_order):
        order_id = make_order(make_user())
        actor_id = uuid4()

        order = service.approve(order_id, actor_id)

        assert order.status == "processing"
        assert order.approved_by == actor_id
        assert order.approved_at is not None
        assert order.started_at is not None
        assert order.rejected_at is None
        assert order.updated_by_id == actor_id

    def test_approve_twice(self, service, make_user, make_order):
        order_id = make_order(make_user())
        service.approve(order_id, uuid4())

        with pytest.raises(AlreadyProcessedError) as exc_info:
            service.approve(order_id, uuid4())
        assert exc_info.value.current_status == "processing"

    @pytest.mark.parametrize("status", ["processing", "completed", "failed", "refunded"])
    def test_reject_requires_pending(self, service, make_user, make_order, status):
        order_id = make_order(make_user(), status=status)
        with pytest.raises(AlreadyProcessedError):
            service.reject(order_id, uuid4(), "Target account is private")

    def test_reject_pending(self, service, make_user, make_order):
        order_id = make_order(make_user())
        actor_id = uuid4()

        order = service.reject(order_id, actor_id, "  Target account is private ")

        assert order.status == "cancelled"
        assert order.rejected_by == actor_id
        assert order.rejected_at is not None
        assert order.rejection_reason == "Target account is private"
        assert order.approved_at is None

    def test_reject_short_reason(self, service, make_user, make_order):
        order_id = make_order(make_user())
        with pytest.raises(ValidationError):
            service.reject(order_id, uuid4(), "bad")

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFoundError):
            service.approve(uuid4(), uuid4())


class TestRefund:

    @pytest.mark.parametrize("status", ["processing", "completed"])
    def test_refund_from_refundable_status(self, service, make_user, make_order, status):
        order_id = make_order(make_user(), status=status)

        order = service.refund(order_id, uuid4(), "Delivery never started")

        assert order.status == "refunded"
        assert order.refund_reason == "Delivery never started"

    @pytest.mark.parametrize("status", ["pending", "failed", "cancelled", "refunded"])
    def test_refund_from_other_status(self, service, make_user, make_order, status):
        order_id = make_order(make_user(), status=status)

        with pytest.raises(NotRefundableError) as exc_info:
            service.refund(order_id, uuid4(), "Delivery never started")
        assert exc_info.value.current_status == status

    def test_refund_needs_reason(self, service, make_user, make_order):
        order_id = make_order(make_user(), status="completed")
        with pytest.raises(ValidationError):
            service.refund(order_id, uuid4(), None)


class TestCancel:

    @pytest.mark.parametrize("status", ["pending", "processing"])
    def test_cancel(self, service, make_user, make_order, status):
        order_id = make_order(make_user(), status=status)

        order = service.cancel(order_id, uuid4(), "Customer asked")

        assert order.status == "cancelled"
        assert order.admin_notes == "Customer asked"
        assert order.rejected_at is None

    def test_cancel_without_reason(self, service, make_user, make_order):
        order_id = make_order(make_user())
        assert service.cancel(order_id, uuid4()).status == "cancelled"

    @pytest.mark.parametrize("status", ["completed", "failed", "cancelled", "refunded"])
    def test_cancel_from_other_status(self, service, make_user, make_order, status):
        order_id = make_order(make_user(), status=status)
        with pytest.raises(AlreadyProcessedError):
            service.cancel(order_id, uuid4())


class TestSetStatus:

    def test_completed_fills_counts(self, service, make_user, make_order):
        order_id = make_order(make_user(), status="processing", quantity=250)

        order, previous = service.set_status(order_id, uuid4(), "completed", "Delivered manually")

        assert previous is OrderStatus.PROCESSING
        assert order.status == "completed"
        assert order.completed_count == 250
        assert order.remaining_count == 0
        assert order.completed_at is not None
        assert order.admin_notes == "Delivered manually"

    def test_ignores_lifecycle_graph(self, service, make_user, make_order):
        order_id = make_order(make_user(), status="refunded")

        order, previous = service.set_status(order_id, uuid4(), OrderStatus.PENDING)

        assert previous is OrderStatus.REFUNDED
        assert order.status == "pending"

    def test_processing_sets_started_at(self, service, make_user, make_order):
        order_id = make_order(make_user())
        order, _ = service.set_status(order_id, uuid4(), "processing")
        assert order.started_at is not None

    def test_unknown_status(self, service, make_user, make_order):
        order_id = make_order(make_user())
        with pytest.raises(ValidationError) as exc_info:
            service.set_status(order_id, uuid4(), "shipped")
        assert exc_info.value.field == "status"

    def test_reason_too_long(self, service, make_user, make_order):
        order_id = make_order(make_user())
        with pytest.raises(ValidationError):
            service.set_status(order_id, uuid4(), "failed", "x" * 501)


class TestCompareAndSet:

    def test_stale_claim_loses(self, session_factory, deterministic_clock, make_user, make_order):
        order_id = make_order(make_user())

        stale_session = session_factory()
        try:
            stale_service = OrderService(stale_session, clock=deterministic_clock)
            stale_order = stale_session.get(Order, order_id)
            assert stale_order.status == "pending"

            with session_factory() as winner:
                OrderService(winner, clock=deterministic_clock).approve(order_id, uuid4())
                winner.commit()

            with pytest.raises(AlreadyProcessedError):
                stale_service._claim(
                    stale_order, APPROVE_FROM, {"status": "processing"},
                )
            assert stale_order.status == "processing"
        finally:
            stale_session.rollback()
            stale_session.close()

    def test_stale_claim_respects_decision_stamps(
        self, session_factory, deterministic_clock, make_user, make_order,
    ):
        order_id = make_order(make_user())

        stale_session = session_factory()
        try:
            stale_service = OrderService(stale_session, clock=deterministic_clock)
            stale_order = stale_session.get(Order, order_id)

            with session_factory() as winner:
                service = OrderService(winner, clock=deterministic_clock)
                service.approve(order_id, uuid4())
                service.set_status(order_id, uuid4(), "pending", "Reopened")
                winner.commit()

            undecided = (Order.approved_at.is_(None), Order.rejected_at.is_(None))
            with pytest.raises(AlreadyProcessedError):
                stale_service._claim(
                    stale_order, REJECT_FROM,
                    {"status": "cancelled", "rejected_at": deterministic_clock.now()},
                    guards=undecided,
                )
            assert stale_order.status == "pending"
            assert stale_order.rejected_at is None
        finally:
            stale_session.rollback()
            stale_session.close()


class TestSingleDecision:

    def test_reopened_approved_order_cannot_be_rejected(self, service, make_user, make_order):
        order_id = make_order(make_user())
        service.approve(order_id, uuid4())
        service.set_status(order_id, uuid4(), "pending", "Reopened")

        with pytest.raises(AlreadyProcessedError) as exc_info:
            service.reject(order_id, uuid4(), "Target account is private")

        assert exc_info.value.current_status == "pending"
        order = service.session.get(Order, order_id)
        assert order.approved_at is not None
        assert order.rejected_at is None
        assert order.status == "pending"

    def test_reopened_rejected_order_cannot_be_approved(self, service, make_user, make_order):
        order_id = make_order(make_user())
        service.reject(order_id, uuid4(), "Target account is private")
        service.set_status(order_id, uuid4(), "pending", "Reopened")

        with pytest.raises(AlreadyProcessedError):
            service.approve(order_id, uuid4())

        order = service.session.get(Order, order_id)
        assert order.rejected_at is not None
        assert order.approved_at is None

    def test_stamped_pending_order_is_already_decided(self, service, make_user, make_order):
        order_id = make_order(
            make_user(), approved_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        )
        with pytest.raises(AlreadyProcessedError):
            service.approve(order_id, uuid4())
