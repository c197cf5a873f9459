from __future__ import annotations

import io
import json
import unittest
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

from menswear_ops.services.function_client import (
    FunctionName,
    RemoteFunctionError,
    build_http_client,
    run_analytics,
)
from menswear_ops.services.mock_function_client import MockFunctionClient


def _response(payload) -> MagicMock:
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode('utf-8')
    response.__enter__.return_value = response
    return response


class HttpFunctionClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = build_http_client(base_url='https://project.example.co/', api_key='anon-key', timeout_seconds=5)

    @patch('menswear_ops.services.function_client.urlopen')
    def test_posts_json_to_function_url(self, urlopen_mock) -> None:
        urlopen_mock.return_value = _response({'data': {'total_customers': 12}})

        result = self.client.invoke(FunctionName.CUSTOMER_ANALYTICS, {'range': '30d'})

        self.assertTrue(result.ok)
        self.assertEqual(result.unwrap(), {'total_customers': 12})
        request = urlopen_mock.call_args.args[0]
        self.assertEqual(request.full_url, 'https://project.example.co/functions/v1/customer-analytics')
        self.assertEqual(request.get_method(), 'POST')
        self.assertEqual(json.loads(request.data), {'range': '30d'})
        self.assertEqual(request.get_header('Authorization'), 'Bearer anon-key')
        self.assertEqual(urlopen_mock.call_args.kwargs['timeout'], 5)

    @patch('menswear_ops.services.function_client.urlopen')
    def test_bare_body_is_returned_as_data(self, urlopen_mock) -> None:
        urlopen_mock.return_value = _response({'forecast': [1, 2, 3]})
        self.assertEqual(self.client.invoke('predictive-analytics').unwrap(), {'forecast': [1, 2, 3]})

    @patch('menswear_ops.services.function_client.urlopen')
    def test_success_false_and_error_member_are_errors(self, urlopen_mock) -> None:
        urlopen_mock.return_value = _response({'success': False, 'error': {'message': 'Upload failed'}})
        result = self.client.invoke(FunctionName.IMAGE_UPLOAD, {})
        self.assertFalse(result.ok)
        self.assertEqual(result.error, 'Upload failed')
        with self.assertRaises(RemoteFunctionError) as ctx:
            result.unwrap()
        self.assertEqual(ctx.exception.function_name, 'image-upload')

        urlopen_mock.return_value = _response({'success': False})
        self.assertEqual(self.client.invoke(FunctionName.IMAGE_UPLOAD, {}).error, 'Function reported failure')

    @patch('menswear_ops.services.function_client.urlopen')
    def test_http_and_network_errors_become_results(self, urlopen_mock) -> None:
        body = io.BytesIO(json.dumps({'error': {'code': 'FUNCTION_ERROR', 'message': 'Order not found'}}).encode())
        urlopen_mock.side_effect = HTTPError('https://x', 500, 'Server Error', {}, body)
        self.assertEqual(self.client.invoke(FunctionName.ORDER_WORKFLOW_AUTOMATION, {}).error, 'Order not found')

        urlopen_mock.side_effect = URLError('connection refused')
        result = self.client.invoke(FunctionName.ORDER_WORKFLOW_AUTOMATION, {})
        self.assertIn('connection refused', result.error)


class RunAnalyticsTests(unittest.TestCase):
    def test_proxies_known_aggregations(self) -> None:
        client = MockFunctionClient()
        client.register(FunctionName.SALES_OPTIMIZATION, lambda body: {'recommendations': [], 'echo': body})
        data = run_analytics(client, name='sales-optimization', body={'window': 7})
        self.assertEqual(data['echo'], {'window': 7})

    def test_rejects_non_analytics_functions(self) -> None:
        with self.assertRaises(ValueError):
            run_analytics(MockFunctionClient(), name='image-delete')

    def test_function_errors_surface(self) -> None:
        client = MockFunctionClient()
        client.fail(FunctionName.MARKET_INTELLIGENCE, 'quota exceeded')
        with self.assertRaises(RemoteFunctionError):
            run_analytics(client, name='market-intelligence')


class MockFunctionClientTests(unittest.TestCase):
    def test_call_log_keeps_only_recent_calls(self) -> None:
        client = MockFunctionClient(max_calls=3)
        for idx in range(10):
            client.invoke(FunctionName.CUSTOMER_ANALYTICS, {'page': idx})
        self.assertEqual([body['page'] for _, body in client.calls], [7, 8, 9])

    def test_upload_paths_stay_unique_after_log_is_full(self) -> None:
        client = MockFunctionClient(max_calls=1)
        paths = {
            client.invoke(FunctionName.IMAGE_UPLOAD, {'productId': 4, 'fileName': 'a.jpg'}).data['filePath']
            for _ in range(3)
        }
        self.assertEqual(len(paths), 3)


if __name__ == '__main__':
    unittest.main()
