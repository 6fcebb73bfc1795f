"""Pure tests for order lifecycle tables and manual-override stamps."""

from datetime import datetime, timezone

import pytest

from market_kernel.domain.order import (
    APPROVE_FROM,
    CANCEL_FROM,
    ORDER_TRANSITIONS,
    REFUND_FROM,
    REJECT_FROM,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    override_stamps,
    parse_order_status,
    sources_for,
)

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestOrderTransitions:

    def test_every_status_is_in_the_table(self):
        assert set(ORDER_TRANSITIONS) == set(OrderStatus)

    @pytest.mark.parametrize("status", sorted(TERMINAL_ORDER_STATUSES))
    def test_terminal_statuses_have_no_exits(self, status):
        assert ORDER_TRANSITIONS[status] == frozenset()

    def test_review_only_acts_on_pending(self):
        assert APPROVE_FROM == {OrderStatus.PENDING}
        assert REJECT_FROM == {OrderStatus.PENDING}

    def test_refund_sources(self):
        assert REFUND_FROM == {OrderStatus.PROCESSING, OrderStatus.COMPLETED}

    def test_cancel_sources(self):
        assert CANCEL_FROM == {OrderStatus.PENDING, OrderStatus.PROCESSING}

    def test_sources_for_processing(self):
        assert sources_for(OrderStatus.PROCESSING) == {OrderStatus.PENDING}


class TestParseOrderStatus:

    def test_accepts_string(self):
        assert parse_order_status("completed") is OrderStatus.COMPLETED

    def test_passes_enum_through(self):
        assert parse_order_status(OrderStatus.FAILED) is OrderStatus.FAILED

    def test_unknown_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_order_status("shipped")


class TestOverrideStamps:

    def test_completed_fills_counts(self):
        stamps = override_stamps(
            OrderStatus.COMPLETED, quantity=500, started_at=None, now=NOW,
        )
        assert stamps == {
            "completed_at": NOW,
            "completed_count": 500,
            "remaining_count": 0,
        }

    def test_processing_sets_started_at_once(self):
        assert override_stamps(
            OrderStatus.PROCESSING, quantity=10, started_at=None, now=NOW,
        ) == {"started_at": NOW}
        assert override_stamps(
            OrderStatus.PROCESSING, quantity=10, started_at=NOW, now=NOW,
        ) == {}

    @pytest.mark.parametrize("status", [
        OrderStatus.PENDING,
        OrderStatus.FAILED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    ])
    def test_other_statuses_stamp_nothing(self, status):
        assert override_stamps(status, quantity=10, started_at=None, now=NOW) == {}
