from __future__ import annotations

import logging

from menswear_ops.models import CommunicationDirection, CommunicationLog, CommunicationType
from menswear_ops.services.function_client import FunctionClient, FunctionName
from menswear_ops.services.repository import NotFoundError, OrderRepository, utcnow

logger = logging.getLogger(__name__)


def _parse(enum_cls, raw, label: str):
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise ValueError(f'Unknown {label}: {raw}') from exc


def _latest_outbound(
    repo: OrderRepository, *, order_id: int, customer_id: int | None, before: CommunicationLog
) -> CommunicationLog | None:
    # Ids are assigned in insertion order, so the highest earlier id is the latest message.
    candidates = [
        row
        for row in repo.list_communications(order_id=order_id, customer_id=customer_id)
        if row.id < before.id and row.direction == CommunicationDirection.OUTBOUND and row.customer_id == customer_id
    ]
    return max(candidates, key=lambda row: row.id, default=None)


def add_communication(
    repo: OrderRepository,
    *,
    order_id: int,
    customer_id: int | None,
    communication_type: CommunicationType | str,
    direction: CommunicationDirection | str,
    subject: str | None,
    content: str,
) -> CommunicationLog:
    comm_type = _parse(CommunicationType, communication_type, 'communication type')
    comm_direction = _parse(CommunicationDirection, direction, 'communication direction')
    if not content or not content.strip():
        raise ValueError('Message content is required')
    if repo.get_order(order_id) is None:
        raise NotFoundError(f'Order {order_id} not found')

    row = repo.add(
        CommunicationLog(
            order_id=order_id,
            customer_id=customer_id,
            communication_type=comm_type,
            direction=comm_direction,
            subject=(subject or '').strip(),
            content=content.strip(),
            sent_at=utcnow(),
            response_received=False,
        )
    )
    if comm_direction == CommunicationDirection.INBOUND:
        answered = _latest_outbound(repo, order_id=order_id, customer_id=customer_id, before=row)
        if answered is not None and not answered.response_received:
            answered.response_received = True
            repo.save(answered)
            logger.info('Communication %s answered by %s', answered.id, row.id)
    repo.commit()
    return row


def mark_response_received(repo: OrderRepository, *, log_id: int) -> CommunicationLog:
    row = repo.get_communication(log_id)
    if row is None:
        raise NotFoundError(f'Communication {log_id} not found')
    if not row.response_received:
        row.response_received = True
        repo.save(row)
        repo.commit()
    return row


def list_communications(repo: OrderRepository, *, order_id: int) -> list[CommunicationLog]:
    return repo.list_communications(order_id=order_id)


def dispatch_customer_communication(
    client: FunctionClient,
    repo: OrderRepository,
    *,
    order_id: int,
    communication_type: str,
    message: str | None = None,
) -> CommunicationLog:
    order = repo.get_order(order_id)
    if order is None:
        raise NotFoundError(f'Order {order_id} not found')
    if not communication_type or not communication_type.strip():
        raise ValueError('Communication type is required')

    result = client.invoke(
        FunctionName.CUSTOMER_COMMUNICATION,
        {
            'orderId': order_id,
            'communicationType': communication_type,
            'customMessage': message,
            'triggerReason': 'Manual communication',
        },
    )
    if not result.ok:
        logger.error('Customer communication for order %s failed: %s', order_id, result.error)
    result.unwrap()

    row = repo.add(
        CommunicationLog(
            order_id=order_id,
            customer_id=order.customer_id,
            communication_type=CommunicationType.SYSTEM,
            direction=CommunicationDirection.OUTBOUND,
            subject=communication_type.replace('_', ' ').strip().capitalize(),
            content=message or f'Automated {communication_type} notification',
            sent_at=utcnow(),
            response_received=False,
        )
    )
    repo.commit()
    return row
