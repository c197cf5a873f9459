from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import inspect

from menswear_ops.models import (
    ColorDefinition,
    CommunicationLog,
    ExceptionStatus,
    InventoryMovement,
    InventoryProduct,
    InventoryVariant,
    Order,
    OrderException,
    OrderPriorityQueue,
    OrderStatus,
    ProcessingAnalytics,
    ProductImage,
    SizeDefinition,
)
from menswear_ops.services.change_feed import ChangeEvent, ChangeFeed, ChangeType
from menswear_ops.services.repository import change_event, row_snapshot, utcnow

_TIMESTAMP_COLUMNS = ('created_at', 'updated_at', 'sent_at')


class MemoryUnitOfWork:
    """
    Dict-backed stand-in for the hosted store.

    Rows are ordinary model instances that never touch a session. `fail_on` lets a
    caller make writes to particular rows raise, to exercise partial failure paths.
    """

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self.feed = feed
        self.tables: dict[str, dict[int, Any]] = {}
        self.fail_on: set[tuple[str, int]] = set()
        self.commits = 0
        self._next_ids: dict[str, int] = {}
        self._pending: list[ChangeEvent] = []

    def _table(self, name: str) -> dict[int, Any]:
        return self.tables.setdefault(name, {})

    def _fill_defaults(self, row: Any) -> None:
        for column in inspect(row).mapper.columns:
            key = column.key
            if getattr(row, key) is not None:
                continue
            if key in _TIMESTAMP_COLUMNS:
                setattr(row, key, utcnow())
            elif column.default is not None and column.default.is_scalar:
                setattr(row, key, column.default.arg)

    def _check_writable(self, row: Any) -> None:
        if (row.__tablename__, row.id) in self.fail_on:
            raise RuntimeError(f'Write rejected for {row.__tablename__} {row.id}')

    def add(self, row: Any) -> Any:
        table = row.__tablename__
        if row.id is None:
            next_id = self._next_ids.get(table, 1)
            row.id = next_id
            self._next_ids[table] = next_id + 1
        else:
            self._next_ids[table] = max(self._next_ids.get(table, 1), row.id + 1)
        self._fill_defaults(row)
        self._check_writable(row)
        self._table(table)[row.id] = row
        self._pending.append(change_event(row, ChangeType.INSERT))
        return row

    def save(self, row: Any) -> Any:
        self._check_writable(row)
        self._table(row.__tablename__)[row.id] = row
        self._pending.append(change_event(row, ChangeType.UPDATE))
        return row

    def delete(self, row: Any) -> None:
        self._check_writable(row)
        old = row_snapshot(row)
        self._table(row.__tablename__).pop(row.id, None)
        self._pending.append(change_event(row, ChangeType.DELETE, old=old))

    def _capture(self) -> dict[str, dict[int, tuple[Any, dict[str, Any]]]]:
        return {
            name: {row_id: (row, row_snapshot(row)) for row_id, row in rows.items()}
            for name, rows in self.tables.items()
        }

    def _restore(self, captured: dict[str, dict[int, tuple[Any, dict[str, Any]]]]) -> None:
        restored: dict[str, dict[int, Any]] = {}
        for name, rows in captured.items():
            restored[name] = {}
            for row_id, (row, values) in rows.items():
                for key, value in values.items():
                    setattr(row, key, value)
                restored[name][row_id] = row
        self.tables = restored

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        captured = self._capture()
        mark = len(self._pending)
        try:
            yield
        except Exception:
            self._restore(captured)
            del self._pending[mark:]
            raise

    def commit(self) -> None:
        self.commits += 1
        events, self._pending = self._pending, []
        if self.feed is not None:
            self.feed.publish_all(events)

    def rollback(self) -> None:
        self._pending = []

    def _rows(self, model: type) -> list[Any]:
        return list(self._table(model.__tablename__).values())


class MemoryInventoryRepository(MemoryUnitOfWork):
    def list_products(self, *, include_inactive: bool = False) -> list[InventoryProduct]:
        rows = [row for row in self._rows(InventoryProduct) if include_inactive or row.is_active]
        return sorted(rows, key=lambda row: (row.name, row.id))

    def get_product(self, product_id: int) -> InventoryProduct | None:
        return self._table(InventoryProduct.__tablename__).get(product_id)

    def list_variants(
        self, *, product_ids: Iterable[int] | None = None, include_inactive: bool = False
    ) -> list[InventoryVariant]:
        wanted = set(product_ids) if product_ids is not None else None
        rows = [
            row
            for row in self._rows(InventoryVariant)
            if (include_inactive or row.is_active) and (wanted is None or row.product_id in wanted)
        ]
        return sorted(rows, key=lambda row: (row.product_id, row.id))

    def get_variant(self, variant_id: int) -> InventoryVariant | None:
        return self._table(InventoryVariant.__tablename__).get(variant_id)

    def list_movements(self, *, variant_id: int) -> list[InventoryMovement]:
        rows = [row for row in self._rows(InventoryMovement) if row.variant_id == variant_id]
        return sorted(rows, key=lambda row: row.id, reverse=True)

    def list_sizes(self, *, category: str | None = None) -> list[SizeDefinition]:
        rows = [row for row in self._rows(SizeDefinition) if not category or row.category == category]
        return sorted(rows, key=lambda row: (row.sort_order, row.id))

    def list_colors(self) -> list[ColorDefinition]:
        return sorted(self._rows(ColorDefinition), key=lambda row: row.color_name)

    def list_images(self, *, product_id: int) -> list[ProductImage]:
        rows = [row for row in self._rows(ProductImage) if row.product_id == product_id]
        return sorted(rows, key=lambda row: (row.position, row.id))

    def get_image(self, image_id: int) -> ProductImage | None:
        return self._table(ProductImage.__tablename__).get(image_id)


class MemoryOrderRepository(MemoryUnitOfWork):
    def list_orders(
        self, *, limit: int | None = None, statuses: Iterable[OrderStatus] | None = None
    ) -> list[Order]:
        wanted = set(statuses) if statuses is not None else None
        rows = [row for row in self._rows(Order) if wanted is None or row.status in wanted]
        rows.sort(key=lambda row: (row.created_at, row.id), reverse=True)
        return rows[:limit] if limit is not None else rows

    def get_order(self, order_id: int) -> Order | None:
        return self._table(Order.__tablename__).get(order_id)

    def list_exceptions(
        self, *, order_id: int | None = None, statuses: Iterable[ExceptionStatus] | None = None
    ) -> list[OrderException]:
        wanted = set(statuses) if statuses is not None else None
        rows = [
            row
            for row in self._rows(OrderException)
            if (order_id is None or row.order_id == order_id) and (wanted is None or row.status in wanted)
        ]
        rows = sorted(rows, key=lambda row: (row.created_at, row.id), reverse=True)
        return rows

    def get_exception(self, exception_id: int) -> OrderException | None:
        return self._table(OrderException.__tablename__).get(exception_id)

    def list_communications(
        self, *, order_id: int | None = None, customer_id: int | None = None
    ) -> list[CommunicationLog]:
        rows = [
            row
            for row in self._rows(CommunicationLog)
            if (order_id is None or row.order_id == order_id) and (customer_id is None or row.customer_id == customer_id)
        ]
        return sorted(rows, key=lambda row: (row.sent_at, row.id), reverse=True)

    def get_communication(self, log_id: int) -> CommunicationLog | None:
        return self._table(CommunicationLog.__tablename__).get(log_id)

    def list_priority_queue(self) -> list[OrderPriorityQueue]:
        return sorted(self._rows(OrderPriorityQueue), key=lambda row: row.queue_position)

    def list_processing_analytics(
        self, *, order_id: int | None = None, limit: int | None = None
    ) -> list[ProcessingAnalytics]:
        rows = [row for row in self._rows(ProcessingAnalytics) if order_id is None or row.order_id == order_id]
        rows = sorted(rows, key=lambda row: (row.created_at, row.id), reverse=True)
        return rows if limit is None else rows[:limit]
