from __future__ import annotations

import re
import unittest
from unittest.mock import MagicMock

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from menswear_ops.context import RequestContext
from menswear_ops.models import AnalyticsEvent, AnalyticsPageView, AnalyticsSession, Base
from menswear_ops.services.analytics_service import (
    AnalyticsEventType,
    AnalyticsRecorder,
    generate_session_id,
    start_session,
)


class AnalyticsServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, expire_on_commit=False)()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _count(self, model) -> int:
        return self.db.execute(select(func.count()).select_from(model)).scalar_one()

    def test_session_id_format(self) -> None:
        self.assertRegex(generate_session_id(), re.compile(r'^session_\d{13}_[a-z0-9]{9}$'))

    def test_start_session_generates_id_and_is_idempotent(self) -> None:
        ctx = start_session(self.db, RequestContext(actor_id='u-1', user_agent='pytest'), utm_source='newsletter')
        self.assertTrue(ctx.analytics_session_id.startswith('session_'))
        again = start_session(self.db, ctx)
        self.assertEqual(again.analytics_session_id, ctx.analytics_session_id)
        self.assertEqual(self._count(AnalyticsSession), 1)
        row = self.db.execute(select(AnalyticsSession)).scalar_one()
        self.assertEqual(row.user_id, 'u-1')
        self.assertEqual(row.utm_source, 'newsletter')

    def test_recorder_writes_in_batches(self) -> None:
        recorder = AnalyticsRecorder(self.db, session_id='session_1_abcdefghi', batch_size=3)
        recorder.page_view('/inventory', title='Inventory')
        recorder.track(AnalyticsEventType.SEARCH, {'search_query': 'navy'})
        self.assertEqual(self._count(AnalyticsEvent), 0)
        self.assertEqual(recorder.pending, 2)

        recorder.track('product_view', {'product_id': '12'})
        self.assertEqual(recorder.pending, 0)
        self.assertEqual(self._count(AnalyticsPageView), 1)
        self.assertEqual(self._count(AnalyticsEvent), 2)

        event = self.db.execute(select(AnalyticsEvent).where(AnalyticsEvent.event_type == 'search')).scalar_one()
        self.assertEqual(event.properties, {'search_query': 'navy'})

    def test_context_exit_flushes_remainder(self) -> None:
        ctx = RequestContext(actor_id='u-2', analytics_session_id='session_2_abcdefghi')
        with AnalyticsRecorder.for_context(self.db, ctx, batch_size=50) as recorder:
            recorder.track('add_to_cart')
        self.assertEqual(recorder.written, 1)
        self.assertEqual(self.db.execute(select(AnalyticsEvent.user_id)).scalar_one(), 'u-2')

    def test_unknown_event_type_and_missing_session(self) -> None:
        recorder = AnalyticsRecorder(self.db, session_id='session_3_abcdefghi')
        with self.assertRaises(ValueError):
            recorder.track('teleport')
        with self.assertRaises(ValueError):
            AnalyticsRecorder(self.db, session_id='')

    def test_write_failures_are_logged_not_raised(self) -> None:
        db = MagicMock()
        db.commit.side_effect = OperationalError('INSERT', {}, Exception('database is locked'))
        recorder = AnalyticsRecorder(db, session_id='session_4_abcdefghi', batch_size=10)
        recorder.page_view('/orders')
        with self.assertLogs('menswear_ops.services.analytics_service', level='ERROR'):
            self.assertEqual(recorder.flush(), 0)
        self.assertEqual(recorder.dropped, 1)
        db.rollback.assert_called_once()


if __name__ == '__main__':
    unittest.main()
