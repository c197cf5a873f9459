from __future__ import annotations

from collections import deque
from collections.abc import Callable
from itertools import count
from typing import Any

from menswear_ops.services.function_client import FunctionName, FunctionResult

Handler = Callable[[dict], FunctionResult | Any]


class MockFunctionClient:
    def __init__(self, *, max_calls: int = 100) -> None:
        # Only the most recent calls are kept so a long-running mock stays bounded.
        self.calls: deque[tuple[str, dict]] = deque(maxlen=max_calls)
        self._upload_ids = count(1)
        self.handlers: dict[str, Handler] = {
            FunctionName.IMAGE_UPLOAD: self._image_upload,
            FunctionName.IMAGE_DELETE: lambda body: {'deleted': True},
            FunctionName.CUSTOMER_COMMUNICATION: self._customer_communication,
        }

    def register(self, name: str, handler: Handler) -> None:
        self.handlers[name] = handler

    def fail(self, name: str, message: str) -> None:
        self.handlers[name] = lambda body: FunctionResult(name=name, error=message)

    def invoke(self, name: str, body: dict | None = None) -> FunctionResult:
        payload = dict(body or {})
        self.calls.append((name, payload))
        handler = self.handlers.get(name)
        if handler is None:
            return FunctionResult(name=name, data={'function': name, 'status': 'MOCK_OK'})
        result = handler(payload)
        if isinstance(result, FunctionResult):
            return result
        return FunctionResult(name=name, data=result)

    def _image_upload(self, body: dict) -> dict:
        file_name = str(body.get('fileName') or 'image.jpg')
        product_id = body.get('productId')
        unique = f'{next(self._upload_ids)}-{file_name}'
        file_path = f'products/{product_id}/{unique}' if product_id else f'temp/{unique}'
        return {'filePath': file_path, 'fileName': unique}

    def _customer_communication(self, body: dict) -> dict:
        return {'recipient': f"customer-of-order-{body.get('orderId')}", 'status': 'MOCK_SENT'}
