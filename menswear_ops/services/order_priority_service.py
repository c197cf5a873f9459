from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, TypeVar

from menswear_ops.models import OrderStatus, PriorityLevel

PRIORITY_RANK: dict[str, int] = {
    PriorityLevel.URGENT.value: 1,
    PriorityLevel.WEDDING.value: 2,
    PriorityLevel.RUSH.value: 3,
    PriorityLevel.HIGH.value: 4,
    PriorityLevel.MEDIUM.value: 5,
    PriorityLevel.LOW.value: 6,
}
DEFAULT_RANK = PRIORITY_RANK[PriorityLevel.MEDIUM.value]
ACTIONABLE_STATUSES = frozenset({OrderStatus.PENDING.value, OrderStatus.PROCESSING.value})
HIGH_PRIORITY_LEVELS = frozenset(
    {PriorityLevel.HIGH.value, PriorityLevel.URGENT.value, PriorityLevel.WEDDING.value, PriorityLevel.RUSH.value}
)

T = TypeVar('T')


def _field(order: Any, name: str) -> Any:
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def _value(raw: Any) -> str | None:
    if raw is None:
        return None
    return raw.value if hasattr(raw, 'value') else str(raw)


def _timestamp(raw: Any) -> float:
    if raw is None:
        return float('inf')
    if isinstance(raw, str):
        raw = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            raw = raw.replace(tzinfo=timezone.utc)
        return raw.timestamp()
    return float(raw)


def priority_rank(priority_level: PriorityLevel | str | None) -> int:
    return PRIORITY_RANK.get(_value(priority_level) or '', DEFAULT_RANK)


def queue_sort_key(order: Any) -> tuple[int, float]:
    return (priority_rank(_field(order, 'priority_level')), _timestamp(_field(order, 'created_at')))


def is_actionable(order: Any) -> bool:
    return _value(_field(order, 'status')) in ACTIONABLE_STATUSES


def rank_orders(orders: Iterable[T]) -> list[T]:
    """
    Queue view over orders: pending/processing only, best tier first, oldest first within a tier.

    Works on model instances or plain row dicts. Derived on every call and never stored.
    """
    return sorted((order for order in orders if is_actionable(order)), key=queue_sort_key)


def high_priority_orders(orders: Iterable[T]) -> list[T]:
    return [order for order in orders if _value(_field(order, 'priority_level')) in HIGH_PRIORITY_LEVELS]
