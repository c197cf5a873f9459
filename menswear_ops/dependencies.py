from fastapi import Depends, Request
from sqlalchemy.orm import Session

from menswear_ops.context import RequestContext
from menswear_ops.db import get_db
from menswear_ops.services.change_feed import ChangeFeed
from menswear_ops.services.function_client import FunctionClient
from menswear_ops.services.order_board_service import OrderBoard
from menswear_ops.services.provider_factory import get_function_client
from menswear_ops.services.sql_repository import SqlInventoryRepository, SqlOrderRepository


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        actor_id=(request.headers.get('x-actor-id') or '').strip() or None,
        analytics_session_id=(request.headers.get('x-analytics-session') or '').strip() or None,
        ip=get_client_ip(request),
        user_agent=request.headers.get('user-agent'),
    )


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


def get_inventory_repository(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SqlInventoryRepository:
    return SqlInventoryRepository(db, feed)


def get_order_repository(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SqlOrderRepository:
    return SqlOrderRepository(db, feed)


def get_functions() -> FunctionClient:
    return get_function_client()


def get_order_board(request: Request) -> OrderBoard:
    return request.app.state.order_board
