from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from menswear_ops.dependencies import get_functions, get_order_board, get_order_repository
from menswear_ops.schemas import (
    AnalyticsRunRequest,
    CommunicationCreate,
    CommunicationOut,
    DispatchRequest,
    EscalateRequest,
    ExceptionAutomationRequest,
    ExceptionCreate,
    ExceptionOut,
    FunctionDataOut,
    OrderBoardOut,
    OrderOut,
    OrderStatusUpdate,
    PriorityQueueOut,
    PriorityUpdate,
    ProcessingAnalyticsOut,
    ProcessingStageCreate,
    ResolveRequest,
    WorkflowActionRequest,
)
from menswear_ops.services.automation_service import request_exception_automation, run_workflow_action
from menswear_ops.services.communication_service import (
    add_communication,
    dispatch_customer_communication,
    list_communications,
    mark_response_received,
)
from menswear_ops.services.exception_service import (
    create_exception,
    escalate_exception,
    list_open_exceptions,
    resolve_exception,
    start_exception,
)
from menswear_ops.services.function_client import FunctionClient, RemoteFunctionError, run_analytics
from menswear_ops.services.order_board_service import OrderBoard
from menswear_ops.services.order_service import (
    get_order,
    high_priority_queue,
    list_recent_orders,
    order_queue,
    orders_by_status,
    priority_queue,
    record_processing_stage,
    recent_processing_analytics,
    update_order_status,
    update_priority,
)
from menswear_ops.services.repository import NotFoundError, OrderRepository

router = APIRouter(prefix='/orders', tags=['orders'])


@router.get('', response_model=list[OrderOut])
def recent_orders(
    status: str | None = None,
    limit: int | None = None,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        if status:
            return orders_by_status(repo, status=status)
        return list_recent_orders(repo, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/queue', response_model=list[OrderOut])
def queue(high_priority_only: bool = False, repo: OrderRepository = Depends(get_order_repository)):
    if high_priority_only:
        return high_priority_queue(repo)
    return order_queue(repo)


@router.get('/board', response_model=OrderBoardOut)
def live_board(order_id: int | None = None, board: OrderBoard = Depends(get_order_board)):
    return {'queue': board.queue(), 'open_exceptions': board.open_exceptions(order_id=order_id)}


@router.get('/priority-queue', response_model=list[PriorityQueueOut])
def explicit_priority_queue(repo: OrderRepository = Depends(get_order_repository)):
    return priority_queue(repo)


@router.get('/exceptions/open', response_model=list[ExceptionOut])
def open_exceptions(repo: OrderRepository = Depends(get_order_repository)):
    return list_open_exceptions(repo)


@router.get('/processing-analytics', response_model=list[ProcessingAnalyticsOut])
def processing_analytics(limit: int = 10, repo: OrderRepository = Depends(get_order_repository)):
    try:
        return recent_processing_analytics(repo, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/analytics/{function_name}')
def analytics_proxy(
    function_name: str,
    payload: AnalyticsRunRequest,
    client: FunctionClient = Depends(get_functions),
) -> Any:
    try:
        return {'data': run_analytics(client, name=function_name, body=payload.body)}
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get('/{order_id}', response_model=OrderOut)
def order_detail(order_id: int, repo: OrderRepository = Depends(get_order_repository)):
    try:
        return get_order(repo, order_id=order_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put('/{order_id}/status', response_model=OrderOut)
def change_status(
    order_id: int,
    payload: OrderStatusUpdate,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return update_order_status(repo, order_id=order_id, status=payload.status)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put('/{order_id}/priority', response_model=OrderOut)
def change_priority(
    order_id: int,
    payload: PriorityUpdate,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return update_priority(repo, order_id=order_id, priority=payload.priority_level)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post('/{order_id}/processing-stages', response_model=ProcessingAnalyticsOut, status_code=201)
def add_processing_stage(
    order_id: int,
    payload: ProcessingStageCreate,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return record_processing_stage(
            repo,
            order_id=order_id,
            stage=payload.stage,
            duration_minutes=payload.duration_minutes,
            automated=payload.automated,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/{order_id}/workflow', response_model=FunctionDataOut)
def workflow_action(
    order_id: int,
    payload: WorkflowActionRequest,
    repo: OrderRepository = Depends(get_order_repository),
    client: FunctionClient = Depends(get_functions),
):
    try:
        data = run_workflow_action(
            client, repo, order_id=order_id, action=payload.action, parameters=payload.parameters
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {'data': data}


@router.get('/{order_id}/exceptions', response_model=list[ExceptionOut])
def order_exceptions(order_id: int, repo: OrderRepository = Depends(get_order_repository)):
    return repo.list_exceptions(order_id=order_id)


@router.post('/{order_id}/exceptions', response_model=ExceptionOut, status_code=201)
def open_exception(
    order_id: int,
    payload: ExceptionCreate,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return create_exception(
            repo,
            order_id=order_id,
            exception_type=payload.exception_type,
            description=payload.description,
            assigned_to=payload.assigned_to,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/exceptions/{exception_id}/start', response_model=ExceptionOut)
def begin_exception(exception_id: int, repo: OrderRepository = Depends(get_order_repository)):
    try:
        return start_exception(repo, exception_id=exception_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/exceptions/{exception_id}/resolve', response_model=ExceptionOut)
def close_exception(
    exception_id: int,
    payload: ResolveRequest,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return resolve_exception(repo, exception_id=exception_id, notes=payload.notes)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/exceptions/{exception_id}/escalate', response_model=ExceptionOut)
def raise_exception_level(
    exception_id: int,
    payload: EscalateRequest,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return escalate_exception(repo, exception_id=exception_id, reason=payload.reason)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/exceptions/{exception_id}/automation', response_model=FunctionDataOut)
def automate_exception(
    exception_id: int,
    payload: ExceptionAutomationRequest,
    repo: OrderRepository = Depends(get_order_repository),
    client: FunctionClient = Depends(get_functions),
):
    try:
        data = request_exception_automation(client, repo, exception_id=exception_id, action=payload.action)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {'data': data}


@router.get('/{order_id}/communications', response_model=list[CommunicationOut])
def communications(order_id: int, repo: OrderRepository = Depends(get_order_repository)):
    return list_communications(repo, order_id=order_id)


@router.post('/{order_id}/communications', response_model=CommunicationOut, status_code=201)
def log_communication(
    order_id: int,
    payload: CommunicationCreate,
    repo: OrderRepository = Depends(get_order_repository),
):
    try:
        return add_communication(
            repo,
            order_id=order_id,
            customer_id=payload.customer_id,
            communication_type=payload.communication_type,
            direction=payload.direction,
            subject=payload.subject,
            content=payload.content,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/{order_id}/communications/dispatch', response_model=CommunicationOut, status_code=201)
def send_communication(
    order_id: int,
    payload: DispatchRequest,
    repo: OrderRepository = Depends(get_order_repository),
    client: FunctionClient = Depends(get_functions),
):
    try:
        return dispatch_customer_communication(
            client,
            repo,
            order_id=order_id,
            communication_type=payload.communication_type,
            message=payload.message,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFunctionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/communications/{log_id}/response-received', response_model=CommunicationOut)
def response_received(log_id: int, repo: OrderRepository = Depends(get_order_repository)):
    try:
        return mark_response_received(repo, log_id=log_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
