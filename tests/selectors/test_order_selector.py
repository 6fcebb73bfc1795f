"""
Tests for OrderSelector -- order lists, the approval queue and statistics.

Rows that a test orders by time get explicit created_at values: SQLite's
CURRENT_TIMESTAMP only has one-second resolution.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from market_kernel.domain.order import OrderStatus
from market_kernel.domain.settings import ApprovalSettings
from market_kernel.exceptions import OrderNotFoundError, ValidationError
from market_kernel.selectors.order_selector import OrderSelector

T0 = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def selector(session):
    return OrderSelector(session)


class TestGet:

    def test_get_returns_dto(self, selector, make_user, make_order):
        order_id = make_order(make_user(), amount="12.25")
        dto = selector.get(order_id)
        assert dto.id == order_id
        assert dto.amount == Decimal("12.25")
        assert dto.status is OrderStatus.PENDING

    def test_get_unknown(self, selector):
        with pytest.raises(OrderNotFoundError):
            selector.get(uuid4())


class TestListOrders:

    def test_filters(self, selector, make_user, make_order):
        user_id = make_user()
        wanted = make_order(user_id, platform="TIKTOK", service_type="VIEWS")
        make_order(user_id, platform="TIKTOK", service_type="LIKES")
        make_order(user_id, platform="YOUTUBE", service_type="VIEWS")

        page = selector.list_orders(platform="TIKTOK", service_type="VIEWS")

        assert page.total == 1
        assert page.items[0].id == wanted

    def test_status_filter(self, selector, make_user, make_order):
        user_id = make_user()
        make_order(user_id, status="completed")
        make_order(user_id)

        page = selector.list_orders(status=OrderStatus.COMPLETED)

        assert [o.status for o in page.items] == [OrderStatus.COMPLETED]

    def test_search_matches_user_and_url(self, selector, make_user, make_order):
        alice = make_user(email="alice@shop.example", username="alice")
        bob = make_user(email="bob@other.example", username="bob")
        by_alice = make_order(alice)
        by_url = make_order(bob, target_url="https://tiktok.com/@ALICE_fans")
        make_order(bob)

        page = selector.list_orders(search="alice")

        assert {o.id for o in page.items} == {by_alice, by_url}

    def test_sort_by_amount(self, selector, make_user, make_order):
        user_id = make_user()
        make_order(user_id, amount="5")
        make_order(user_id, amount="50")
        make_order(user_id, amount="0.50")

        ascending = selector.list_orders(sort_by="amount", sort_order="asc")
        descending = selector.list_orders(sort_by="amount", sort_order="desc")

        assert [o.amount for o in ascending.items] == [
            Decimal("0.50"), Decimal("5.00"), Decimal("50.00"),
        ]
        assert [o.amount for o in descending.items] == [
            Decimal("50.00"), Decimal("5.00"), Decimal("0.50"),
        ]

    def test_default_sort_newest_first(self, selector, make_user, make_order):
        user_id = make_user()
        old = make_order(user_id, created_at=at(0))
        new = make_order(user_id, created_at=at(5))

        page = selector.list_orders()

        assert [o.id for o in page.items] == [new, old]

    @pytest.mark.parametrize("kwargs", [
        {"sort_by": "target_url"},
        {"sort_order": "sideways"},
        {"status": "shipped"},
        {"platform": "MYSPACE"},
        {"service_type": "RETWEETS"},
    ])
    def test_invalid_arguments(self, selector, kwargs):
        with pytest.raises(ValidationError):
            selector.list_orders(**kwargs)


class TestPagination:

    def test_pages(self, session, make_user, make_order):
        user_id = make_user()
        for i in range(5):
            make_order(user_id, created_at=at(i))
        selector = OrderSelector(session)

        first = selector.list_orders(page=1, limit=2)
        last = selector.list_orders(page=3, limit=2)

        assert first.total == 5
        assert first.total_pages == 3
        assert first.has_next and not first.has_prev
        assert len(last.items) == 1
        assert last.has_prev and not last.has_next

    def test_default_limit_from_settings(self, session, make_user, make_order):
        user_id = make_user()
        for _ in range(3):
            make_order(user_id)
        selector = OrderSelector(session, ApprovalSettings(default_limit=2, max_limit=10))

        page = selector.list_orders()

        assert page.limit == 2
        assert len(page.items) == 2

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
    def test_bounds(self, selector, page, limit):
        with pytest.raises(ValidationError):
            selector.list_orders(page=page, limit=limit)

    def test_empty(self, selector):
        page = selector.list_orders()
        assert page.total == 0
        assert page.total_pages == 0
        assert not page.has_next


class TestPendingApproval:

    def test_oldest_first_and_pending_only(self, selector, make_user, make_order):
        user_id = make_user()
        newer = make_order(user_id, created_at=at(10))
        older = make_order(user_id, created_at=at(1))
        make_order(user_id, status="processing", created_at=at(0))

        page = selector.pending_approval()

        assert [o.id for o in page.items] == [older, newer]


class TestStatistics:

    def test_counts_and_revenue(self, selector, make_user, make_order):
        user_id = make_user()
        make_order(user_id, status="completed", amount="25.50", platform="INSTAGRAM")
        make_order(user_id, status="completed", amount="10.25", platform="TIKTOK",
                   service_type="VIEWS")
        make_order(user_id, status="pending", amount="99", platform="INSTAGRAM")
        make_order(user_id, status="refunded", amount="40", platform="YOUTUBE",
                   service_type="SUBSCRIBERS")

        stats = selector.statistics()

        assert stats.total_orders == 4
        assert stats.pending_orders == 1
        assert stats.by_status["completed"] == 2
        assert stats.by_status["failed"] == 0
        assert stats.by_platform["INSTAGRAM"] == 2
        assert stats.by_platform["FACEBOOK"] == 0
        assert stats.by_service_type["LIKES"] == 2
        assert stats.by_service_type["VIEWS"] == 1
        assert stats.completed_revenue == Decimal("35.75")
        assert stats.revenue_by_platform["INSTAGRAM"] == Decimal("25.50")
        assert stats.revenue_by_platform["YOUTUBE"] == 0

    def test_empty_store(self, selector):
        stats = selector.statistics()
        assert stats.total_orders == 0
        assert stats.completed_revenue == 0
        assert set(stats.by_status) == {s.value for s in OrderStatus}
