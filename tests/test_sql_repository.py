from __future__ import annotations

import unittest
from decimal import Decimal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from menswear_ops.context import RequestContext
from menswear_ops.models import (
    Base,
    ExceptionStatus,
    InventoryProduct,
    InventoryVariant,
    Order,
    OrderStatus,
    PriorityLevel,
    ProductCategory,
    WorkflowStatus,
)
from menswear_ops.services.change_feed import ChangeFeed, ChangeType
from menswear_ops.services.exception_service import create_exception, start_exception
from menswear_ops.services.inventory_service import apply_bulk_update, variant_stock_rows
from menswear_ops.services.order_service import order_queue, recent_processing_analytics, record_processing_stage
from menswear_ops.services.sql_repository import SqlInventoryRepository, SqlOrderRepository
from menswear_ops.services.stock_adjustment_service import build_bulk_preview


def _sqlite_engine():
    engine = create_engine('sqlite://')

    # pysqlite needs explicit BEGIN for SAVEPOINT to behave.
    @event.listens_for(engine, 'connect')
    def _connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin(conn):
        conn.exec_driver_sql('BEGIN')

    Base.metadata.create_all(engine)
    return engine


class SqlRepositoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = _sqlite_engine()
        self.db = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)()
        self.feed = ChangeFeed()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _seed_variants(self) -> list[InventoryVariant]:
        product = InventoryProduct(
            name='Oxford Shirt',
            category=ProductCategory.SHIRTS,
            sku_prefix='SHIRT',
            base_price=Decimal('79.00'),
        )
        self.db.add(product)
        self.db.flush()
        variants = [
            InventoryVariant(product_id=product.id, sku=f'SHIRT-SLIM-1-{size}', price=Decimal('79.00'), stock_quantity=qty)
            for size, qty in (('15', 2), ('15.5', 8), ('16', 0))
        ]
        self.db.add_all(variants)
        self.db.commit()
        return variants

    def test_bulk_update_reports_failed_line_and_keeps_the_rest(self) -> None:
        variants = self._seed_variants()
        repo = SqlInventoryRepository(self.db, self.feed)
        events = []
        self.feed.subscribe('inventory_variants', events.append, events=[ChangeType.UPDATE])

        preview = build_bulk_preview(
            variant_stock_rows(repo), selected_ids=[v.id for v in variants], operation='add', operand='3'
        )
        variants[1].is_active = False
        self.db.commit()

        report = apply_bulk_update(repo, preview=preview, operation='add', operand='3', ctx=RequestContext(actor_id='ops'))

        self.assertEqual(report.failed_variant_ids, [variants[1].id])
        self.db.expire_all()
        self.assertEqual([repo.get_variant(v.id).stock_quantity for v in variants], [5, 8, 3])
        self.assertEqual(len(repo.list_movements(variant_id=variants[0].id)), 1)
        self.assertEqual(sorted(event.row_id for event in events), [variants[0].id, variants[2].id])
        self.assertEqual(events[0].new['stock_quantity'], 5)

    def test_order_queue_and_exception_lifecycle_round_trip(self) -> None:
        repo = SqlOrderRepository(self.db, self.feed)
        rush = repo.add(Order(order_number='R', priority_level=PriorityLevel.RUSH))
        low = repo.add(Order(order_number='L', priority_level=PriorityLevel.LOW))
        repo.add(Order(order_number='X', priority_level=PriorityLevel.URGENT, status=OrderStatus.CANCELLED))
        repo.commit()

        self.assertEqual([order.order_number for order in order_queue(repo)], ['R', 'L'])

        row = create_exception(repo, order_id=low.id, exception_type='delay', description='Fabric late')
        start_exception(repo, exception_id=row.id)
        self.db.expire_all()
        stored = repo.get_exception(row.id)
        self.assertEqual(stored.status, ExceptionStatus.IN_PROGRESS)
        self.assertEqual([item.id for item in repo.list_exceptions(order_id=low.id)], [row.id])
        self.assertEqual(repo.list_exceptions(order_id=rush.id), [])

    def test_processing_analytics_limit_is_applied_in_query(self) -> None:
        repo = SqlOrderRepository(self.db, self.feed)
        order = repo.add(Order(order_number='P'))
        repo.commit()
        for stage in ('processing', 'in_production', 'quality_check'):
            record_processing_stage(repo, order_id=order.id, stage=stage, duration_minutes=10)

        statements = []

        def listener(conn, cursor, statement, params, context, executemany):
            statements.append(statement)

        event.listen(self.engine, 'before_cursor_execute', listener)
        try:
            rows = recent_processing_analytics(repo, limit=2)
        finally:
            event.remove(self.engine, 'before_cursor_execute', listener)

        self.assertEqual([row.processing_stage for row in rows], [WorkflowStatus.QUALITY_CHECK, WorkflowStatus.IN_PRODUCTION])
        self.assertIn('LIMIT', statements[-1].upper())

    def test_rollback_discards_queued_events(self) -> None:
        repo = SqlOrderRepository(self.db, self.feed)
        seen = []
        self.feed.subscribe('orders', seen.append)
        repo.add(Order(order_number='TMP'))
        repo.rollback()
        self.assertEqual(seen, [])
        self.assertEqual(repo.list_orders(), [])


if __name__ == '__main__':
    unittest.main()
