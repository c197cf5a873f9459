from __future__ import annotations

from functools import lru_cache

from menswear_ops.config import settings
from menswear_ops.services.function_client import FunctionClient, build_http_client
from menswear_ops.services.mock_function_client import MockFunctionClient


@lru_cache(maxsize=1)
def get_function_client() -> FunctionClient:
    provider = settings.function_provider.strip().lower()
    if provider == 'http':
        return build_http_client(
            base_url=settings.function_base_url,
            api_key=settings.function_api_key,
            timeout_seconds=settings.function_timeout_seconds,
        )
    return MockFunctionClient()
