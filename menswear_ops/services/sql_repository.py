from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

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
from menswear_ops.services.repository import change_event, row_snapshot


class SqlUnitOfWork:
    """
    Session-backed unit of work.

    Change events are queued while the transaction is open and published only after
    a successful commit; a rolled-back savepoint drops whatever it queued.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed
        self._pending: list[ChangeEvent] = []

    def add(self, row: Any) -> Any:
        self.db.add(row)
        self.db.flush()
        self._pending.append(change_event(row, ChangeType.INSERT))
        return row

    def save(self, row: Any) -> Any:
        self.db.flush()
        self._pending.append(change_event(row, ChangeType.UPDATE))
        return row

    def delete(self, row: Any) -> None:
        old = row_snapshot(row)
        self.db.delete(row)
        self.db.flush()
        self._pending.append(change_event(row, ChangeType.DELETE, old=old))

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        mark = len(self._pending)
        try:
            with self.db.begin_nested():
                yield
        except Exception:
            del self._pending[mark:]
            raise

    def commit(self) -> None:
        self.db.commit()
        events, self._pending = self._pending, []
        if self.feed is not None:
            self.feed.publish_all(events)

    def rollback(self) -> None:
        self.db.rollback()
        self._pending = []


class SqlInventoryRepository(SqlUnitOfWork):
    def list_products(self, *, include_inactive: bool = False) -> list[InventoryProduct]:
        query = select(InventoryProduct).order_by(InventoryProduct.name.asc(), InventoryProduct.id.asc())
        if not include_inactive:
            query = query.where(InventoryProduct.is_active.is_(True))
        return list(self.db.execute(query).scalars().all())

    def get_product(self, product_id: int) -> InventoryProduct | None:
        return self.db.get(InventoryProduct, product_id)

    def list_variants(
        self, *, product_ids: Iterable[int] | None = None, include_inactive: bool = False
    ) -> list[InventoryVariant]:
        query = select(InventoryVariant).order_by(InventoryVariant.product_id.asc(), InventoryVariant.id.asc())
        if product_ids is not None:
            query = query.where(InventoryVariant.product_id.in_(list(product_ids)))
        if not include_inactive:
            query = query.where(InventoryVariant.is_active.is_(True))
        return list(self.db.execute(query).scalars().all())

    def get_variant(self, variant_id: int) -> InventoryVariant | None:
        return self.db.get(InventoryVariant, variant_id)

    def list_movements(self, *, variant_id: int) -> list[InventoryMovement]:
        return list(
            self.db.execute(
                select(InventoryMovement)
                .where(InventoryMovement.variant_id == variant_id)
                .order_by(InventoryMovement.id.desc())
            ).scalars().all()
        )

    def list_sizes(self, *, category: str | None = None) -> list[SizeDefinition]:
        query = select(SizeDefinition).order_by(SizeDefinition.sort_order.asc(), SizeDefinition.id.asc())
        if category:
            query = query.where(SizeDefinition.category == category)
        return list(self.db.execute(query).scalars().all())

    def list_colors(self) -> list[ColorDefinition]:
        return list(self.db.execute(select(ColorDefinition).order_by(ColorDefinition.color_name.asc())).scalars().all())

    def list_images(self, *, product_id: int) -> list[ProductImage]:
        return list(
            self.db.execute(
                select(ProductImage)
                .where(ProductImage.product_id == product_id)
                .order_by(ProductImage.position.asc(), ProductImage.id.asc())
            ).scalars().all()
        )

    def get_image(self, image_id: int) -> ProductImage | None:
        return self.db.get(ProductImage, image_id)


class SqlOrderRepository(SqlUnitOfWork):
    def list_orders(
        self, *, limit: int | None = None, statuses: Iterable[OrderStatus] | None = None
    ) -> list[Order]:
        query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if statuses is not None:
            query = query.where(Order.status.in_(list(statuses)))
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

    def get_order(self, order_id: int) -> Order | None:
        return self.db.get(Order, order_id)

    def list_exceptions(
        self, *, order_id: int | None = None, statuses: Iterable[ExceptionStatus] | None = None
    ) -> list[OrderException]:
        query = select(OrderException).order_by(OrderException.created_at.desc(), OrderException.id.desc())
        if order_id is not None:
            query = query.where(OrderException.order_id == order_id)
        if statuses is not None:
            query = query.where(OrderException.status.in_(list(statuses)))
        return list(self.db.execute(query).scalars().all())

    def get_exception(self, exception_id: int) -> OrderException | None:
        return self.db.get(OrderException, exception_id)

    def list_communications(
        self, *, order_id: int | None = None, customer_id: int | None = None
    ) -> list[CommunicationLog]:
        query = select(CommunicationLog).order_by(CommunicationLog.sent_at.desc(), CommunicationLog.id.desc())
        if order_id is not None:
            query = query.where(CommunicationLog.order_id == order_id)
        if customer_id is not None:
            query = query.where(CommunicationLog.customer_id == customer_id)
        return list(self.db.execute(query).scalars().all())

    def get_communication(self, log_id: int) -> CommunicationLog | None:
        return self.db.get(CommunicationLog, log_id)

    def list_priority_queue(self) -> list[OrderPriorityQueue]:
        return list(
            self.db.execute(select(OrderPriorityQueue).order_by(OrderPriorityQueue.queue_position.asc())).scalars().all()
        )

    def list_processing_analytics(
        self, *, order_id: int | None = None, limit: int | None = None
    ) -> list[ProcessingAnalytics]:
        query = select(ProcessingAnalytics).order_by(ProcessingAnalytics.created_at.desc(), ProcessingAnalytics.id.desc())
        if order_id is not None:
            query = query.where(ProcessingAnalytics.order_id == order_id)
        if limit is not None:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())
