"""
OrderSelector -- read side of the order moderation screens.

Responsibility:
    List and page orders with filters, show the pending-approval queue
    (oldest first, the order admins work through it), and aggregate the
    dashboard statistics.

Architecture position:
    Kernel > Selectors.  Read-only; returns OrderRecord DTOs and
    OrderStatistics.

Invariants enforced:
    - Statistics are computed with GROUP BY queries against the store.
      Statuses, platforms and service types with no rows report zero.
    - Revenue counts ``completed`` orders only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select

from market_kernel.db.base import coerce_uuid
from market_kernel.db.types import round_money
from market_kernel.domain.order import OrderRecord, OrderStatus, Platform, ServiceType
from market_kernel.exceptions import OrderNotFoundError, ValidationError
from market_kernel.models.order import Order
from market_kernel.models.user import UserAccount
from market_kernel.selectors.base import BaseSelector, Page

SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "amount": Order.amount,
    "quantity": Order.quantity,
    "start_count": Order.start_count,
}


@dataclass(frozen=True)
class OrderStatistics:
    """Dashboard counters for the order book."""

    total_orders: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_platform: dict[str, int] = field(default_factory=dict)
    by_service_type: dict[str, int] = field(default_factory=dict)
    completed_revenue: Decimal = Decimal("0")
    revenue_by_platform: dict[str, Decimal] = field(default_factory=dict)

    @property
    def pending_orders(self) -> int:
        return self.by_status.get(OrderStatus.PENDING.value, 0)


class OrderSelector(BaseSelector[Order]):
    """Read-only queries over orders."""

    def get(self, order_id: UUID | str) -> OrderRecord:
        parsed = coerce_uuid(order_id)
        order = self.session.get(Order, parsed) if parsed is not None else None
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order.to_dto()

    def list_orders(
        self,
        status: str | OrderStatus | None = None,
        platform: str | Platform | None = None,
        service_type: str | ServiceType | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int | None = None,
    ) -> Page:
        """
        Filtered, sorted page of orders.

        ``search`` matches the target URL, the description, and the
        ordering user's email or username (case-insensitive substring).

        Raises:
            ValidationError: unknown filter value, sort column or direction,
                or out-of-range pagination.
        """
        column = SORTABLE_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(
                "sort_by", f"must be one of {', '.join(sorted(SORTABLE_COLUMNS))}",
            )
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order", "must be 'asc' or 'desc'")

        stmt = select(Order)
        if status is not None:
            stmt = stmt.where(
                Order.status == self._enum(OrderStatus, status, "status").value,
            )
        if platform is not None:
            stmt = stmt.where(
                Order.platform == self._enum(Platform, platform, "platform").value,
            )
        if service_type is not None:
            stmt = stmt.where(
                Order.service_type
                == self._enum(ServiceType, service_type, "service_type").value,
            )
        if search:
            pattern = f"%{search}%"
            stmt = stmt.join(Order.user).where(or_(
                Order.target_url.ilike(pattern),
                Order.description.ilike(pattern),
                UserAccount.email.ilike(pattern),
                UserAccount.username.ilike(pattern),
            ))

        ordering = column.asc() if sort_order == "asc" else column.desc()
        stmt = stmt.order_by(ordering, Order.id)
        return self._paginate(stmt, page, limit)

    def pending_approval(self, page: int = 1, limit: int | None = None) -> Page:
        """The approval queue: pending orders, oldest first."""
        stmt = (
            select(Order)
            .where(Order.status == OrderStatus.PENDING.value)
            .order_by(Order.created_at.asc(), Order.id)
        )
        return self._paginate(stmt, page, limit)

    def statistics(self) -> OrderStatistics:
        by_status = self._counts(Order.status, [s.value for s in OrderStatus])
        by_platform = self._counts(Order.platform, [p.value for p in Platform])
        by_service_type = self._counts(
            Order.service_type, [t.value for t in ServiceType],
        )

        completed = Order.status == OrderStatus.COMPLETED.value
        revenue_rows = self.session.execute(
            select(Order.platform, func.sum(Order.amount))
            .where(completed)
            .group_by(Order.platform)
        ).all()
        revenue_by_platform = {p.value: Decimal("0.00") for p in Platform}
        for platform, amount in revenue_rows:
            revenue_by_platform[platform] = round_money(amount)
        completed_revenue = round_money(
            sum(revenue_by_platform.values(), Decimal("0")),
        )

        return OrderStatistics(
            total_orders=sum(by_status.values()),
            by_status=by_status,
            by_platform=by_platform,
            by_service_type=by_service_type,
            completed_revenue=completed_revenue,
            revenue_by_platform=revenue_by_platform,
        )

    def _counts(self, column, keys: list[str]) -> dict[str, int]:
        counts = dict.fromkeys(keys, 0)
        rows = self.session.execute(
            select(column, func.count()).group_by(column)
        ).all()
        for key, count in rows:
            counts[key] = count
        return counts
