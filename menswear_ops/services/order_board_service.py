from __future__ import annotations

from typing import Any

from menswear_ops.models import ExceptionStatus, Order, OrderException
from menswear_ops.services.change_feed import ChangeFeed, LiveTable, Subscription
from menswear_ops.services.order_priority_service import rank_orders
from menswear_ops.services.repository import OrderRepository, row_snapshot

_OPEN_EXCEPTION_STATUSES = frozenset(
    {ExceptionStatus.OPEN.value, ExceptionStatus.IN_PROGRESS.value, ExceptionStatus.ESCALATED.value}
)


def _status_value(value: Any) -> Any:
    return getattr(value, 'value', value)


class OrderBoard:
    """Live view of orders and their exceptions, kept current from the change feed."""

    def __init__(self, feed: ChangeFeed) -> None:
        self.feed = feed
        self.orders = LiveTable(Order.__tablename__)
        self.exceptions = LiveTable(OrderException.__tablename__)
        self._subscriptions: list[Subscription] = []

    def load(self, repo: OrderRepository) -> None:
        self.orders.load(row_snapshot(row) for row in repo.list_orders())
        self.exceptions.load(row_snapshot(row) for row in repo.list_exceptions())

    def start(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [
            self.feed.subscribe(self.orders.table, self.orders.apply),
            self.feed.subscribe(self.exceptions.table, self.exceptions.apply),
        ]

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def queue(self) -> list[dict[str, Any]]:
        return rank_orders(self.orders.values())

    def open_exceptions(self, *, order_id: int | None = None) -> list[dict[str, Any]]:
        rows = [
            row
            for row in self.exceptions.values()
            if _status_value(row.get('status')) in _OPEN_EXCEPTION_STATUSES
            and (order_id is None or row.get('order_id') == order_id)
        ]
        return sorted(rows, key=lambda row: row['id'])
