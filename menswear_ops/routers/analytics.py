from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from menswear_ops.context import RequestContext
from menswear_ops.db import get_db
from menswear_ops.dependencies import get_request_context
from menswear_ops.schemas import SessionOut, SessionStartRequest, TrackOut, TrackRequest
from menswear_ops.services.analytics_service import AnalyticsEventType, AnalyticsRecorder, start_session

router = APIRouter(prefix='/analytics', tags=['analytics'])


@router.post('/sessions', response_model=SessionOut)
def begin_session(
    payload: SessionStartRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    started = start_session(db, ctx, **payload.model_dump())
    return SessionOut(session_id=started.analytics_session_id)


@router.post('/events', response_model=TrackOut)
def track(
    payload: TrackRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    if not ctx.analytics_session_id:
        raise HTTPException(status_code=400, detail='X-Analytics-Session header is required')
    try:
        kinds = [AnalyticsEventType(item.event_type) for item in payload.items]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if any(kind == AnalyticsEventType.PAGE_VIEW and not item.page_path for kind, item in zip(kinds, payload.items)):
        raise HTTPException(status_code=400, detail='Page views need a page_path')

    with AnalyticsRecorder.for_context(db, ctx) as recorder:
        for kind, item in zip(kinds, payload.items):
            if kind == AnalyticsEventType.PAGE_VIEW:
                recorder.page_view(item.page_path, title=item.page_title, referrer=item.referrer)
            else:
                recorder.track(kind, item.properties)
    return TrackOut(session_id=recorder.session_id, written=recorder.written, dropped=recorder.dropped)
