from __future__ import annotations

import logging

from menswear_ops.models import ExceptionStatus, OrderException, PriorityLevel
from menswear_ops.services.repository import NotFoundError, OrderRepository, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ExceptionStatus, frozenset[ExceptionStatus]] = {
    ExceptionStatus.OPEN: frozenset({ExceptionStatus.IN_PROGRESS, ExceptionStatus.ESCALATED, ExceptionStatus.RESOLVED}),
    ExceptionStatus.IN_PROGRESS: frozenset({ExceptionStatus.ESCALATED, ExceptionStatus.RESOLVED}),
    ExceptionStatus.ESCALATED: frozenset({ExceptionStatus.RESOLVED}),
    ExceptionStatus.RESOLVED: frozenset(),
}


class InvalidTransitionError(ValueError):
    def __init__(self, current: ExceptionStatus, target: ExceptionStatus) -> None:
        super().__init__(f'Cannot move exception from {current.value} to {target.value}')
        self.current = current
        self.target = target


def can_transition(current: ExceptionStatus, target: ExceptionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _require_exception(repo: OrderRepository, exception_id: int) -> OrderException:
    row = repo.get_exception(exception_id)
    if row is None:
        raise NotFoundError(f'Exception {exception_id} not found')
    return row


def _transition(repo: OrderRepository, row: OrderException, target: ExceptionStatus) -> OrderException:
    current = ExceptionStatus(row.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    now = utcnow()
    row.status = target
    row.updated_at = now
    if target == ExceptionStatus.RESOLVED:
        row.resolved_at = now
    elif target == ExceptionStatus.ESCALATED:
        row.escalated_at = now
    repo.save(row)
    repo.commit()
    logger.info('Exception %s moved %s -> %s', row.id, current.value, target.value)
    return row


def create_exception(
    repo: OrderRepository,
    *,
    order_id: int,
    exception_type: str,
    description: str,
    assigned_to: str | None = None,
) -> OrderException:
    if repo.get_order(order_id) is None:
        raise NotFoundError(f'Order {order_id} not found')
    if not exception_type or not exception_type.strip():
        raise ValueError('Exception type is required')
    if not description or not description.strip():
        raise ValueError('Description is required')
    now = utcnow()
    row = repo.add(
        OrderException(
            order_id=order_id,
            exception_type=exception_type.strip(),
            description=description.strip(),
            status=ExceptionStatus.OPEN,
            priority_level=PriorityLevel.MEDIUM,
            assigned_to=assigned_to,
            created_at=now,
            updated_at=now,
        )
    )
    repo.commit()
    return row


def start_exception(repo: OrderRepository, *, exception_id: int) -> OrderException:
    return _transition(repo, _require_exception(repo, exception_id), ExceptionStatus.IN_PROGRESS)


def resolve_exception(repo: OrderRepository, *, exception_id: int, notes: str | None) -> OrderException:
    cleaned = (notes or '').strip()
    if not cleaned:
        raise ValueError('Resolution notes are required')
    row = _require_exception(repo, exception_id)
    current = ExceptionStatus(row.status)
    if not can_transition(current, ExceptionStatus.RESOLVED):
        raise InvalidTransitionError(current, ExceptionStatus.RESOLVED)
    row.resolution_notes = cleaned
    return _transition(repo, row, ExceptionStatus.RESOLVED)


def escalate_exception(repo: OrderRepository, *, exception_id: int, reason: str | None = None) -> OrderException:
    row = _require_exception(repo, exception_id)
    current = ExceptionStatus(row.status)
    if not can_transition(current, ExceptionStatus.ESCALATED):
        raise InvalidTransitionError(current, ExceptionStatus.ESCALATED)
    row.escalation_reason = (reason or '').strip() or None
    return _transition(repo, row, ExceptionStatus.ESCALATED)


def list_open_exceptions(repo: OrderRepository, *, order_id: int | None = None) -> list[OrderException]:
    return repo.list_exceptions(
        order_id=order_id,
        statuses=[ExceptionStatus.OPEN, ExceptionStatus.IN_PROGRESS, ExceptionStatus.ESCALATED],
    )
