"""
Base Service Client for upstream API communication

Base class for HTTP clients of external services.
"""

import httpx
import logging
from typing import Optional, Dict, Any
from abc import ABC
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Upstream client base class

    Handles:
    1. Base URL handling
    2. Bearer token forwarding
    3. HTTP client lifecycle
    4. Timeouts and retry of idempotent reads

    Example:
        class OrdersClient(BaseServiceClient):
            service_name = "icona_api"

            async def get_order(self, order_id: str):
                response = await self.get(f"/orders/{order_id}")
                return response.json()
    """

    # Subclasses define this
    service_name: str = None  # e.g. "icona_api"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        read_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the service client

        Args:
            base_url: Service base URL
            timeout: Per-request timeout (seconds)
            read_retries: Attempts for GET requests on transport errors
            http_client: Pre-built client (tests inject one with a mock transport)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        self.base_url = base_url.rstrip('/')
        self.read_retries = max(1, read_retries)

        self.client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers=self._build_default_headers()
        )

        logger.debug(f"Initialized {self.service_name} client: {self.base_url}")

    def _build_default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": f"seller-console/{self.service_name}"
        }

    @staticmethod
    def auth_headers(access_token: Optional[str]) -> Optional[Dict[str, str]]:
        """Authorization header for a caller's access token, if any"""
        if not access_token:
            return None
        return {"Authorization": f"Bearer {access_token}"}

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================
    # HTTP method wrappers
    # ========================================

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None
    ) -> httpx.Response:
        """GET request, retried on transport errors"""
        url = f"{self.base_url}{path}"
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.read_retries),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True
        ):
            with attempt:
                if json is None:
                    return await self.client.get(url, params=params, headers=headers)
                # Some upstream endpoints read a JSON body on GET
                return await self.client.request("GET", url, params=params, headers=headers, json=json)

    async def post(
        self,
        path: str,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """POST request"""
        url = f"{self.base_url}{path}"
        return await self.client.post(url, json=json, headers=headers)

    async def put(
        self,
        path: str,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """PUT request"""
        url = f"{self.base_url}{path}"
        return await self.client.put(url, json=json, headers=headers)

    async def patch(
        self,
        path: str,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """PATCH request"""
        url = f"{self.base_url}{path}"
        return await self.client.patch(url, json=json, headers=headers)

    async def delete(
        self,
        path: str,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """DELETE request"""
        url = f"{self.base_url}{path}"
        return await self.client.delete(url, headers=headers)


__all__ = ["BaseServiceClient"]
