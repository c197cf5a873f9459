from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Protocol

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


class NotFoundError(LookupError):
    pass


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def row_snapshot(row: Any) -> dict[str, Any]:
    mapper = inspect(row).mapper
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


def change_event(row: Any, event: ChangeType, old: dict[str, Any] | None = None) -> ChangeEvent:
    snapshot = row_snapshot(row)
    return ChangeEvent(
        table=row.__tablename__,
        event=event,
        row_id=int(snapshot['id']),
        new=None if event == ChangeType.DELETE else snapshot,
        old=old if old is not None else (snapshot if event == ChangeType.DELETE else None),
    )


class UnitOfWork(Protocol):
    feed: ChangeFeed | None

    def add(self, row: Any) -> Any: ...

    def save(self, row: Any) -> Any: ...

    def delete(self, row: Any) -> None: ...

    def savepoint(self) -> AbstractContextManager[None]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class InventoryRepository(UnitOfWork, Protocol):
    def list_products(self, *, include_inactive: bool = False) -> list[InventoryProduct]: ...

    def get_product(self, product_id: int) -> InventoryProduct | None: ...

    def list_variants(
        self, *, product_ids: Iterable[int] | None = None, include_inactive: bool = False
    ) -> list[InventoryVariant]: ...

    def get_variant(self, variant_id: int) -> InventoryVariant | None: ...

    def list_movements(self, *, variant_id: int) -> list[InventoryMovement]: ...

    def list_sizes(self, *, category: str | None = None) -> list[SizeDefinition]: ...

    def list_colors(self) -> list[ColorDefinition]: ...

    def list_images(self, *, product_id: int) -> list[ProductImage]: ...

    def get_image(self, image_id: int) -> ProductImage | None: ...


class OrderRepository(UnitOfWork, Protocol):
    def list_orders(
        self, *, limit: int | None = None, statuses: Iterable[OrderStatus] | None = None
    ) -> list[Order]: ...

    def get_order(self, order_id: int) -> Order | None: ...

    def list_exceptions(
        self, *, order_id: int | None = None, statuses: Iterable[ExceptionStatus] | None = None
    ) -> list[OrderException]: ...

    def get_exception(self, exception_id: int) -> OrderException | None: ...

    def list_communications(
        self, *, order_id: int | None = None, customer_id: int | None = None
    ) -> list[CommunicationLog]: ...

    def get_communication(self, log_id: int) -> CommunicationLog | None: ...

    def list_priority_queue(self) -> list[OrderPriorityQueue]: ...

    def list_processing_analytics(
        self, *, order_id: int | None = None, limit: int | None = None
    ) -> list[ProcessingAnalytics]: ...
