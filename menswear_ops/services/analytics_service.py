from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from menswear_ops.config import settings
from menswear_ops.context import RequestContext
from menswear_ops.models import AnalyticsEvent, AnalyticsPageView, AnalyticsSession

logger = logging.getLogger(__name__)

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


class AnalyticsEventType(str, Enum):
    PAGE_VIEW = 'page_view'
    PRODUCT_VIEW = 'product_view'
    PRODUCT_CLICK = 'product_click'
    SEARCH = 'search'
    FILTER_APPLIED = 'filter_applied'
    ADD_TO_CART = 'add_to_cart'
    VARIANT_SELECTED = 'variant_selected'
    IMAGE_VIEWED = 'image_viewed'
    NAVIGATION_CLICK = 'navigation_click'
    CONVERSION = 'conversion'


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def generate_session_id(now: datetime | None = None) -> str:
    millis = int((now or _now()).timestamp() * 1000)
    suffix = ''.join(secrets.choice(_SESSION_ALPHABET) for _ in range(9))
    return f'session_{millis}_{suffix}'


def start_session(
    db: Session,
    ctx: RequestContext,
    *,
    referrer: str | None = None,
    utm_source: str | None = None,
    utm_medium: str | None = None,
    utm_campaign: str | None = None,
) -> RequestContext:
    """
    Make sure an `analytics_sessions` row exists for the context's session.

    Returns the context carrying the session id, generating one when the caller had none.
    Starting the same session twice leaves the first row untouched.
    """
    session_id = ctx.analytics_session_id or generate_session_id()
    existing = db.execute(
        select(AnalyticsSession.id).where(AnalyticsSession.session_id == session_id)
    ).scalar_one_or_none()
    if existing is None:
        db.add(
            AnalyticsSession(
                session_id=session_id,
                user_id=ctx.actor_id,
                started_at=_now(),
                user_agent=ctx.user_agent,
                referrer=referrer,
                utm_source=utm_source,
                utm_medium=utm_medium,
                utm_campaign=utm_campaign,
            )
        )
        db.commit()
        logger.info('Started analytics session %s', session_id)
    return ctx.with_session(session_id)


class AnalyticsRecorder:
    """Buffers page views and events for one session and writes them in batches."""

    def __init__(
        self,
        db: Session,
        *,
        session_id: str,
        user_id: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        if not session_id:
            raise ValueError('Analytics session id is required')
        self.db = db
        self.session_id = session_id
        self.user_id = user_id
        self.batch_size = max(1, batch_size or settings.analytics_batch_size)
        self._buffer: list[AnalyticsPageView | AnalyticsEvent] = []
        self.written = 0
        self.dropped = 0

    @classmethod
    def for_context(cls, db: Session, ctx: RequestContext, *, batch_size: int | None = None) -> AnalyticsRecorder:
        return cls(db, session_id=ctx.analytics_session_id or '', user_id=ctx.actor_id, batch_size=batch_size)

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def page_view(self, page_path: str, *, title: str | None = None, referrer: str | None = None) -> None:
        if not page_path:
            raise ValueError('Page path is required')
        self._push(
            AnalyticsPageView(
                session_id=self.session_id,
                user_id=self.user_id,
                page_path=page_path,
                page_title=title,
                referrer=referrer,
                created_at=_now(),
            )
        )

    def track(self, event_type: AnalyticsEventType | str, properties: dict[str, Any] | None = None) -> None:
        kind = AnalyticsEventType(event_type)
        self._push(
            AnalyticsEvent(
                session_id=self.session_id,
                user_id=self.user_id,
                event_type=kind.value,
                properties=dict(properties or {}),
                created_at=_now(),
            )
        )

    def _push(self, row: AnalyticsPageView | AnalyticsEvent) -> None:
        self._buffer.append(row)
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> int:
        if not self._buffer:
            return 0
        batch, self._buffer = self._buffer, []
        try:
            self.db.add_all(batch)
            self.db.commit()
        except SQLAlchemyError:
            # Tracking never breaks the page that emitted it.
            self.db.rollback()
            self.dropped += len(batch)
            logger.exception('Dropped %s analytics rows for session %s', len(batch), self.session_id)
            return 0
        self.written += len(batch)
        return len(batch)

    def __enter__(self) -> AnalyticsRecorder:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.flush()
