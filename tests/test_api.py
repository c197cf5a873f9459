from __future__ import annotations

import base64
import unittest
from decimal import Decimal
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from menswear_ops.db import get_db
from menswear_ops.dependencies import get_functions, get_inventory_repository, get_order_repository
from menswear_ops.main import app
from menswear_ops.models import (
    Base,
    InventoryProduct,
    InventoryVariant,
    Order,
    OrderStatus,
    PriorityLevel,
    ProductCategory,
)
from menswear_ops.services.memory_repository import MemoryInventoryRepository, MemoryOrderRepository
from menswear_ops.services.mock_function_client import MockFunctionClient


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.inventory = MemoryInventoryRepository(app.state.change_feed)
        self.orders = MemoryOrderRepository(app.state.change_feed)
        self.functions = MockFunctionClient()

        self.engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
        Base.metadata.create_all(self.engine)
        session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.session_factory = session_factory

        def _db():
            db = session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_inventory_repository] = lambda: self.inventory
        app.dependency_overrides[get_order_repository] = lambda: self.orders
        app.dependency_overrides[get_functions] = lambda: self.functions
        app.dependency_overrides[get_db] = _db
        self.client = TestClient(app)

        product = self.inventory.add(
            InventoryProduct(name='Classic Suit', category=ProductCategory.SUITS, sku_prefix='SUIT', base_price=Decimal('299.99'))
        )
        self.variants = [
            self.inventory.add(
                InventoryVariant(product_id=product.id, sku=f'SUIT-1-{idx}', price=Decimal('299.99'), stock_quantity=qty)
            )
            for idx, qty in enumerate([0, 3, 10, 4, 100])
        ]
        self.product = product
        self.inventory.commit()

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()

    def test_bulk_preview_then_apply(self) -> None:
        payload = {'variant_ids': [v.id for v in self.variants], 'operation': 'subtract', 'operand': '5'}
        preview = self.client.post('/inventory/bulk/preview', json=payload)
        self.assertEqual(preview.status_code, 200)
        self.assertEqual([line['new_quantity'] for line in preview.json()], [0, 0, 5, 0, 95])
        self.assertEqual(self.variants[4].stock_quantity, 100)

        applied = self.client.post('/inventory/bulk/apply', json=payload)
        self.assertEqual(applied.status_code, 200)
        body = applied.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['failed_variant_ids'], [])
        self.assertEqual([v.stock_quantity for v in self.variants], [0, 0, 5, 0, 95])

    def test_bulk_apply_reports_failed_variants(self) -> None:
        self.inventory.fail_on.add(('inventory_variants', self.variants[1].id))
        response = self.client.post(
            '/inventory/bulk/apply',
            json={'variant_ids': [self.variants[0].id, self.variants[1].id], 'operation': 'set', 'operand': '9'},
        )
        body = response.json()
        self.assertFalse(body['success'])
        self.assertEqual(body['failed_variant_ids'], [self.variants[1].id])
        self.assertEqual(body['updated'], 1)

    def test_stock_edit_validation_and_movement(self) -> None:
        bad = self.client.put(
            f'/inventory/variants/{self.variants[1].id}/stock', json={'value': '-2'}, headers={'X-Actor-Id': 'ops-7'}
        )
        self.assertEqual(bad.status_code, 400)

        ok = self.client.put(
            f'/inventory/variants/{self.variants[1].id}/stock', json={'value': '6'}, headers={'X-Actor-Id': 'ops-7'}
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()['stock_quantity'], 6)

        movements = self.client.get(f'/inventory/variants/{self.variants[1].id}/movements').json()
        self.assertEqual(movements[0]['created_by'], 'ops-7')
        self.assertEqual(self.client.put('/inventory/variants/999/stock', json={'value': '1'}).status_code, 404)

    def test_low_stock_alerts(self) -> None:
        alerts = self.client.get('/inventory/alerts/low-stock').json()
        self.assertEqual([alert['stock_quantity'] for alert in alerts], [0, 3, 4])
        self.assertEqual(alerts[0]['status'], 'out_of_stock')

    def test_image_upload_and_listing(self) -> None:
        encoded = base64.b64encode(b'\x89PNG\r\n').decode()
        created = self.client.post(
            f'/inventory/products/{self.product.id}/images',
            json={'file_name': 'front.png', 'content_type': 'image/png', 'data_base64': encoded},
        )
        self.assertEqual(created.status_code, 201)
        self.assertTrue(created.json()['public_url'].startswith('https://cdn.kctmenswear.com/products/'))

        self.functions.fail('image-upload', 'storage offline')
        failed = self.client.post(
            f'/inventory/products/{self.product.id}/images',
            json={'file_name': 'back.png', 'content_type': 'image/png', 'data_base64': encoded},
        )
        self.assertEqual(failed.status_code, 502)
        self.assertEqual(len(self.client.get(f'/inventory/products/{self.product.id}/images').json()), 1)

    def test_order_queue_and_exception_flow(self) -> None:
        medium = self.orders.add(Order(order_number='A', priority_level=PriorityLevel.MEDIUM))
        urgent = self.orders.add(Order(order_number='B', priority_level=PriorityLevel.URGENT))
        self.orders.commit()

        queue = self.client.get('/orders/queue').json()
        self.assertEqual([order['order_number'] for order in queue], ['B', 'A'])

        created = self.client.post(
            f'/orders/{medium.id}/exceptions', json={'exception_type': 'fit', 'description': 'Jacket too long'}
        )
        self.assertEqual(created.status_code, 201)
        exception_id = created.json()['id']
        self.assertEqual(created.json()['status'], 'open')

        blank = self.client.post(f'/orders/exceptions/{exception_id}/resolve', json={'notes': '  '})
        self.assertEqual(blank.status_code, 400)

        resolved = self.client.post(f'/orders/exceptions/{exception_id}/resolve', json={'notes': 'Hemmed'})
        self.assertEqual(resolved.json()['status'], 'resolved')

        again = self.client.post(f'/orders/exceptions/{exception_id}/escalate', json={'reason': 'late'})
        self.assertEqual(again.status_code, 400)

        self.assertEqual(self.client.get('/orders/999').status_code, 404)
        self.assertEqual(self.client.put(f'/orders/{urgent.id}/priority', json={'priority_level': 'low'}).status_code, 200)
        queue = self.client.get('/orders/queue').json()
        self.assertEqual([order['order_number'] for order in queue], ['A', 'B'])

    def test_analytics_proxy(self) -> None:
        ok = self.client.post('/orders/analytics/customer-analytics', json={'body': {'range': '7d'}})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self.client.post('/orders/analytics/image-delete', json={}).status_code, 404)

    def test_analytics_session_and_events(self) -> None:
        started = self.client.post('/analytics/sessions', json={}, headers={'X-Actor-Id': 'u-1'})
        session_id = started.json()['session_id']
        self.assertTrue(session_id.startswith('session_'))

        tracked = self.client.post(
            '/analytics/events',
            json={'items': [{'event_type': 'page_view', 'page_path': '/inventory'}, {'event_type': 'search'}]},
            headers={'X-Analytics-Session': session_id},
        )
        self.assertEqual(tracked.json()['written'], 2)

        missing = self.client.post('/analytics/events', json={'items': []})
        self.assertEqual(missing.status_code, 400)


    def test_live_board_follows_commits_without_refetch(self) -> None:
        with self.session_factory() as db:
            db.add(Order(id=50, order_number='SEED', priority_level=PriorityLevel.HIGH))
            db.commit()

        board = app.state.order_board
        with patch('menswear_ops.main.SessionLocal', self.session_factory), TestClient(app) as client:
            self.assertEqual([row['order_number'] for row in client.get('/orders/board').json()['queue']], ['SEED'])

            rush = self.orders.add(Order(order_number='RUSH', priority_level=PriorityLevel.URGENT))
            self.orders.commit()
            self.assertEqual(
                [row['order_number'] for row in client.get('/orders/board').json()['queue']], ['RUSH', 'SEED']
            )

            self.assertEqual(client.put(f'/orders/{rush.id}/status', json={'status': 'cancelled'}).status_code, 200)
            client.post(f'/orders/{rush.id}/exceptions', json={'exception_type': 'payment', 'description': 'Card declined'})
            body = client.get('/orders/board').json()
            self.assertEqual([row['order_number'] for row in body['queue']], ['SEED'])
            self.assertEqual([row['order_id'] for row in body['open_exceptions']], [rush.id])
            self.assertEqual(board.orders.rows[rush.id]['status'], OrderStatus.CANCELLED)

        self.orders.add(Order(order_number='AFTER'))
        self.orders.commit()
        self.assertEqual(len(board.orders.rows), 2)

    def test_workflow_and_wedding_actions(self) -> None:
        order = self.orders.add(Order(order_number='W-1', priority_level=PriorityLevel.WEDDING))
        self.orders.commit()

        ok = self.client.post(f'/orders/{order.id}/workflow', json={'action': 'wedding_party_coordination'})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self.functions.calls[-1], ('order-workflow-automation', {'action': 'wedding_party_coordination', 'orderId': order.id}))
        self.assertEqual(self.client.post(f'/orders/{order.id}/workflow', json={'action': 'drop_tables'}).status_code, 400)
        self.assertEqual(self.client.post('/orders/999/workflow', json={'action': 'exception_handling'}).status_code, 404)

        self.functions.fail('order-workflow-automation', 'Order not found')
        failed = self.client.post(f'/orders/{order.id}/workflow', json={'action': 'exception_handling'})
        self.assertEqual(failed.status_code, 502)

        wedding = self.client.post('/weddings/actions', json={'action': 'get_wedding', 'params': {'wedding_id': 'w-9'}})
        self.assertEqual(wedding.status_code, 200)
        self.assertEqual(self.functions.calls[-1][1], {'wedding_id': 'w-9', 'action': 'get_wedding'})
        self.assertEqual(self.client.post('/weddings/actions', json={'action': 'delete_everything'}).status_code, 400)


if __name__ == '__main__':
    unittest.main()
