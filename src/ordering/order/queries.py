"""Read-only order queries for customers and the admin surface."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus
from shared.errors import OrderNotFound
from shared.money import ZERO, to_money
from shared.repository import load

# Orders whose money was handed back do not count as revenue
_NON_REVENUE_STATES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}


@dataclass(frozen=True)
class OrderStatistics:
    total_orders: int
    revenue: Decimal
    average_order_value: Decimal
    orders_by_status: dict[OrderStatus, int] = field(default_factory=dict)
    revenue_by_day: dict[date, Decimal] = field(default_factory=dict)


class OrderQueries:
    @staticmethod
    def _orders():
        return current_domain.repository_for(Order)

    def get(self, order_id) -> Order:
        return load(Order, order_id, OrderNotFound)

    def for_owner(self, owner_id) -> list[Order]:
        """The owner's orders, newest first."""
        orders = self._orders().for_owner(owner_id)
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def by_status(self, status) -> list[Order]:
        orders = self._orders().with_status(OrderStatus(status).value)
        return sorted(orders, key=lambda order: order.created_at)

    def by_tracking_number(self, tracking_number) -> Order:
        order = self._orders().with_tracking_number(tracking_number) if tracking_number else None
        if order is None:
            raise OrderNotFound(tracking_number)
        return order

    def statistics(self, date_from: datetime | None = None, date_to: datetime | None = None) -> OrderStatistics:
        """Order counts and revenue, optionally for orders created within ``[date_from, date_to]``.

        Cancelled and refunded orders are counted but earn no revenue; the
        average order value is taken over revenue-earning orders.
        """
        orders = [
            order
            for order in self._orders().every()
            if (date_from is None or order.created_at >= date_from)
            and (date_to is None or order.created_at <= date_to)
        ]

        orders_by_status = {status: 0 for status in OrderStatus}
        revenue_by_day: dict[date, Decimal] = {}
        earning = 0
        revenue = ZERO
        for order in orders:
            status = OrderStatus(order.status)
            orders_by_status[status] += 1
            if status in _NON_REVENUE_STATES:
                continue
            earning += 1
            total = to_money(order.pricing.total)
            revenue += total
            day = order.created_at.date()
            revenue_by_day[day] = revenue_by_day.get(day, ZERO) + total

        return OrderStatistics(
            total_orders=len(orders),
            revenue=to_money(revenue),
            average_order_value=to_money(revenue / earning) if earning else ZERO,
            orders_by_status=orders_by_status,
            revenue_by_day=dict(sorted(revenue_by_day.items())),
        )
