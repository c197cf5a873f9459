from __future__ import annotations

import logging

from menswear_ops.config import settings
from menswear_ops.models import Order, OrderPriorityQueue, OrderStatus, PriorityLevel, ProcessingAnalytics, WorkflowStatus
from menswear_ops.services.order_priority_service import ACTIONABLE_STATUSES, high_priority_orders, rank_orders
from menswear_ops.services.repository import NotFoundError, OrderRepository, utcnow

logger = logging.getLogger(__name__)


def _require_order(repo: OrderRepository, order_id: int) -> Order:
    order = repo.get_order(order_id)
    if order is None:
        raise NotFoundError(f'Order {order_id} not found')
    return order


def _parse_enum(enum_cls, raw, label: str):
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise ValueError(f'Unknown {label}: {raw}') from exc


def list_recent_orders(repo: OrderRepository, *, limit: int | None = None) -> list[Order]:
    return repo.list_orders(limit=limit or settings.max_recent_orders)


def get_order(repo: OrderRepository, *, order_id: int) -> Order:
    return _require_order(repo, order_id)


def orders_by_status(repo: OrderRepository, *, status: OrderStatus | str) -> list[Order]:
    return repo.list_orders(statuses=[_parse_enum(OrderStatus, status, 'order status')])


def order_queue(repo: OrderRepository) -> list[Order]:
    return rank_orders(repo.list_orders(statuses=[OrderStatus(value) for value in ACTIONABLE_STATUSES]))


def high_priority_queue(repo: OrderRepository) -> list[Order]:
    return high_priority_orders(order_queue(repo))


def update_order_status(repo: OrderRepository, *, order_id: int, status: OrderStatus | str) -> Order:
    new_status = _parse_enum(OrderStatus, status, 'order status')
    order = _require_order(repo, order_id)
    previous = order.status
    order.status = new_status
    order.updated_at = utcnow()
    repo.save(order)
    repo.commit()
    logger.info('Order %s status %s -> %s', order_id, getattr(previous, 'value', previous), new_status.value)
    return order


def update_priority(repo: OrderRepository, *, order_id: int, priority: PriorityLevel | str | None) -> Order:
    # Tiers are operator labels: any tier may replace any other, and None clears it.
    level = None if priority in (None, '') else _parse_enum(PriorityLevel, priority, 'priority level')
    order = _require_order(repo, order_id)
    order.priority_level = level
    order.updated_at = utcnow()
    repo.save(order)
    repo.commit()
    return order


def priority_queue(repo: OrderRepository) -> list[OrderPriorityQueue]:
    return repo.list_priority_queue()


def record_processing_stage(
    repo: OrderRepository,
    *,
    order_id: int,
    stage: WorkflowStatus | str,
    duration_minutes: int,
    automated: bool = False,
) -> ProcessingAnalytics:
    workflow_stage = _parse_enum(WorkflowStatus, stage, 'processing stage')
    if duration_minutes < 0:
        raise ValueError('Stage duration cannot be negative')
    _require_order(repo, order_id)
    row = repo.add(
        ProcessingAnalytics(
            order_id=order_id,
            processing_stage=workflow_stage,
            stage_duration_minutes=duration_minutes,
            automated=automated,
            created_at=utcnow(),
        )
    )
    repo.commit()
    return row


def recent_processing_analytics(repo: OrderRepository, *, limit: int = 10) -> list[ProcessingAnalytics]:
    if limit < 1:
        raise ValueError('limit must be at least 1')
    return repo.list_processing_analytics(limit=limit)
