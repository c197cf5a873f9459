from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)


class FunctionName:
    IMAGE_UPLOAD = 'image-upload'
    IMAGE_DELETE = 'image-delete'
    CUSTOMER_ANALYTICS = 'customer-analytics'
    SALES_OPTIMIZATION = 'sales-optimization'
    PREDICTIVE_ANALYTICS = 'predictive-analytics'
    INVENTORY_OPTIMIZATION = 'inventory-optimization'
    MARKET_INTELLIGENCE = 'market-intelligence'
    PROCESSING_ANALYTICS = 'processing-analytics'
    ORDER_WORKFLOW_AUTOMATION = 'order-workflow-automation'
    EXCEPTION_HANDLING = 'exception-handling'
    CUSTOMER_COMMUNICATION = 'customer-communication'
    WEDDING_MANAGEMENT = 'wedding-management'


ANALYTICS_FUNCTIONS = frozenset(
    {
        FunctionName.CUSTOMER_ANALYTICS,
        FunctionName.SALES_OPTIMIZATION,
        FunctionName.PREDICTIVE_ANALYTICS,
        FunctionName.INVENTORY_OPTIMIZATION,
        FunctionName.MARKET_INTELLIGENCE,
        FunctionName.PROCESSING_ANALYTICS,
    }
)


class RemoteFunctionError(RuntimeError):
    def __init__(self, function_name: str, message: str) -> None:
        super().__init__(f'{function_name}: {message}')
        self.function_name = function_name


@dataclass(frozen=True)
class FunctionResult:
    name: str
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise RemoteFunctionError(self.name, self.error)
        return self.data


class FunctionClient(Protocol):
    def invoke(self, name: str, body: dict | None = None) -> FunctionResult: ...


def _error_message(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    error = payload.get('error')
    if error:
        if isinstance(error, dict):
            return str(error.get('message') or error.get('code') or error)
        return str(error)
    if payload.get('success') is False:
        return 'Function reported failure'
    return None


def _unwrap_payload(payload: Any) -> Any:
    # Functions answer either {"data": ...} / {"success": true, "data": ...} or a bare body.
    if isinstance(payload, dict) and 'data' in payload:
        return payload['data']
    return payload


@dataclass
class HttpFunctionClient:
    base_url: str
    headers: dict[str, str]
    timeout_seconds: int

    def invoke(self, name: str, body: dict | None = None) -> FunctionResult:
        req = Request(
            url=f"{self.base_url.rstrip('/')}/functions/v1/{name}",
            data=json.dumps(body or {}, default=str).encode('utf-8'),
            headers=self.headers,
            method='POST',
        )
        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                raw = response.read().decode('utf-8')
        except HTTPError as exc:
            detail = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            message = None
            try:
                message = _error_message(json.loads(detail)) if detail else None
            except json.JSONDecodeError:
                pass
            logger.warning('Function %s failed with HTTP %s', name, exc.code)
            return FunctionResult(name=name, error=message or f'HTTP {exc.code}: {detail}'.strip())
        except URLError as exc:
            logger.warning('Function %s unreachable: %s', name, exc.reason)
            return FunctionResult(name=name, error=f'Network error: {exc.reason}')

        try:
            payload = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            return FunctionResult(name=name, error='Function returned invalid JSON')

        message = _error_message(payload)
        if message:
            logger.warning('Function %s returned error: %s', name, message)
            return FunctionResult(name=name, error=message)
        return FunctionResult(name=name, data=_unwrap_payload(payload))


def build_http_client(*, base_url: str, api_key: str | None, timeout_seconds: int) -> HttpFunctionClient:
    headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
    if api_key:
        headers['Authorization'] = f'Bearer {api_key}'
        headers['apikey'] = api_key
    return HttpFunctionClient(base_url=base_url, headers=headers, timeout_seconds=timeout_seconds)


def run_analytics(client: FunctionClient, *, name: str, body: dict | None = None) -> Any:
    if name not in ANALYTICS_FUNCTIONS:
        raise ValueError(f'Unknown analytics function: {name}')
    return client.invoke(name, body or {}).unwrap()
