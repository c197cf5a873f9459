from __future__ import annotations

import unittest

from menswear_ops.models import Order, OrderException
from menswear_ops.services.automation_service import (
    request_exception_automation,
    run_workflow_action,
    wedding_request,
)
from menswear_ops.services.function_client import FunctionName, RemoteFunctionError
from menswear_ops.services.memory_repository import MemoryOrderRepository
from menswear_ops.services.mock_function_client import MockFunctionClient
from menswear_ops.services.repository import NotFoundError


class WorkflowActionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = MemoryOrderRepository()
        self.client = MockFunctionClient()
        self.order = self.repo.add(Order(order_number='KCT-1001'))
        self.repo.commit()

    def test_sends_action_and_returns_data(self) -> None:
        self.client.register(FunctionName.ORDER_WORKFLOW_AUTOMATION, lambda body: {'nextSteps': ['routed']})
        data = run_workflow_action(
            self.client,
            self.repo,
            order_id=self.order.id,
            action=' Intelligent_Order_Routing ',
            parameters={'warehouse': 'main'},
        )
        self.assertEqual(data, {'nextSteps': ['routed']})
        self.assertEqual(
            self.client.calls[0],
            (
                FunctionName.ORDER_WORKFLOW_AUTOMATION,
                {'action': 'intelligent_order_routing', 'orderId': self.order.id, 'parameters': {'warehouse': 'main'}},
            ),
        )

    def test_rejects_unknown_action_and_missing_order_before_calling(self) -> None:
        with self.assertRaises(ValueError):
            run_workflow_action(self.client, self.repo, order_id=self.order.id, action='refund_everything')
        with self.assertRaises(NotFoundError):
            run_workflow_action(self.client, self.repo, order_id=404, action='bundle_order_processing')
        self.assertEqual(len(self.client.calls), 0)

    def test_remote_failure_raises(self) -> None:
        self.client.fail(FunctionName.ORDER_WORKFLOW_AUTOMATION, 'Order not found')
        with self.assertLogs('menswear_ops.services.automation_service', level='ERROR'):
            with self.assertRaises(RemoteFunctionError):
                run_workflow_action(
                    self.client, self.repo, order_id=self.order.id, action='process_payment_confirmation'
                )


class ExceptionAutomationTests(unittest.TestCase):
    def test_passes_exception_and_order_ids(self) -> None:
        repo = MemoryOrderRepository()
        client = MockFunctionClient()
        order = repo.add(Order(order_number='KCT-2001'))
        row = repo.add(OrderException(order_id=order.id, exception_type='payment', description='Declined'))
        repo.commit()

        request_exception_automation(client, repo, exception_id=row.id, action='auto_resolve_attempt')
        self.assertEqual(
            client.calls[-1],
            (FunctionName.EXCEPTION_HANDLING, {'action': 'auto_resolve_attempt', 'exceptionId': row.id, 'orderId': order.id}),
        )
        with self.assertRaises(ValueError):
            request_exception_automation(client, repo, exception_id=row.id, action='resolve_exception')
        with self.assertRaises(NotFoundError):
            request_exception_automation(client, repo, exception_id=999, action='notify_customer')


class WeddingRequestTests(unittest.TestCase):
    def test_action_is_allow_listed_and_merged_into_body(self) -> None:
        client = MockFunctionClient()
        client.register(FunctionName.WEDDING_MANAGEMENT, lambda body: {'wedding': {'id': body['wedding_id']}})
        data = wedding_request(client, action='get_wedding', params={'wedding_id': 'w-1', 'action': 'ignored'})
        self.assertEqual(data, {'wedding': {'id': 'w-1'}})
        self.assertEqual(client.calls[0][1], {'wedding_id': 'w-1', 'action': 'get_wedding'})

        with self.assertRaises(ValueError):
            wedding_request(client, action='drop_weddings')

    def test_function_error_surfaces(self) -> None:
        client = MockFunctionClient()
        client.fail(FunctionName.WEDDING_MANAGEMENT, 'Wedding not found')
        with self.assertRaises(RemoteFunctionError):
            wedding_request(client, action='get_wedding_dashboard', params={'wedding_id': 'missing'})


if __name__ == '__main__':
    unittest.main()
