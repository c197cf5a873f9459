from __future__ import annotations

import logging
from typing import Any

from menswear_ops.services.function_client import FunctionClient, FunctionName
from menswear_ops.services.repository import NotFoundError, OrderRepository

logger = logging.getLogger(__name__)

WORKFLOW_ACTIONS = frozenset(
    {
        'process_payment_confirmation',
        'intelligent_order_routing',
        'bundle_order_processing',
        'wedding_party_coordination',
        'exception_handling',
        'quality_assurance_workflow',
    }
)

EXCEPTION_AUTOMATION_ACTIONS = frozenset({'auto_resolve_attempt', 'notify_customer'})

WEDDING_ACTIONS = frozenset(
    {
        'create_wedding',
        'get_all_weddings',
        'get_wedding',
        'get_wedding_by_code',
        'update_wedding',
        'get_wedding_dashboard',
        'get_wedding_analytics',
        'assign_coordinator',
        'invite_party_member',
        'get_party_member',
        'update_party_member',
        'get_tasks',
        'update_task',
        'get_messages',
        'send_message',
    }
)


def _require_action(action: str, allowed: frozenset[str], label: str) -> str:
    normalized = (action or '').strip().lower()
    if normalized not in allowed:
        raise ValueError(f'Unknown {label} action: {action}')
    return normalized


def run_workflow_action(
    client: FunctionClient,
    repo: OrderRepository,
    *,
    order_id: int,
    action: str,
    parameters: dict[str, Any] | None = None,
) -> Any:
    workflow_action = _require_action(action, WORKFLOW_ACTIONS, 'workflow')
    if repo.get_order(order_id) is None:
        raise NotFoundError(f'Order {order_id} not found')

    body: dict[str, Any] = {'action': workflow_action, 'orderId': order_id}
    if parameters:
        body['parameters'] = parameters
    result = client.invoke(FunctionName.ORDER_WORKFLOW_AUTOMATION, body)
    if not result.ok:
        logger.error('Workflow action %s failed for order %s: %s', workflow_action, order_id, result.error)
    return result.unwrap()


def request_exception_automation(
    client: FunctionClient,
    repo: OrderRepository,
    *,
    exception_id: int,
    action: str,
) -> Any:
    """Ask the exception-handling function to act on an exception.

    The local lifecycle row is left alone; changes made remotely arrive through the
    normal order exception endpoints.
    """
    automation_action = _require_action(action, EXCEPTION_AUTOMATION_ACTIONS, 'exception automation')
    row = repo.get_exception(exception_id)
    if row is None:
        raise NotFoundError(f'Exception {exception_id} not found')

    result = client.invoke(
        FunctionName.EXCEPTION_HANDLING,
        {'action': automation_action, 'exceptionId': exception_id, 'orderId': row.order_id},
    )
    if not result.ok:
        logger.error('Exception automation %s failed for %s: %s', automation_action, exception_id, result.error)
    return result.unwrap()


def wedding_request(client: FunctionClient, *, action: str, params: dict[str, Any] | None = None) -> Any:
    wedding_action = _require_action(action, WEDDING_ACTIONS, 'wedding')
    body = dict(params or {})
    body['action'] = wedding_action
    return client.invoke(FunctionName.WEDDING_MANAGEMENT, body).unwrap()
