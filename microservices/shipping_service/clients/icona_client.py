"""
Icona API Client for Shipping Service

HTTP client for the upstream marketplace API (orders and shipping).
"""

import httpx
import logging
from typing import Optional, Dict, Any, List

from pydantic import ValidationError

from core.service_client_base import BaseServiceClient
from core.config.service_config import UpstreamConfig

from ..models import Order
from ..protocols import UpstreamError, UpstreamDataError, OrderNotFoundError

logger = logging.getLogger(__name__)


def parse_orders(payload: Any) -> List[Order]:
    """
    Validate an upstream orders listing.

    Records that fail validation are dropped and logged, never defaulted.
    """
    if isinstance(payload, dict):
        records = payload.get("orders")
        if records is None and isinstance(payload.get("data"), dict):
            records = payload["data"].get("orders")
    elif isinstance(payload, list):
        records = payload
    else:
        records = None

    if records is None:
        return []
    if not isinstance(records, list):
        raise UpstreamDataError("Orders listing is not a list")

    orders = []
    for record in records:
        try:
            orders.append(Order.model_validate(record))
        except ValidationError as e:
            record_id = record.get("_id") if isinstance(record, dict) else None
            logger.warning(f"Dropping malformed upstream order {record_id!r}: {e.errors()}")
    return orders


class IconaClient(BaseServiceClient):
    """Client for the Icona marketplace API"""

    service_name = "icona_api"

    def __init__(self, config: Optional[UpstreamConfig] = None, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize Icona API client

        Args:
            config: Upstream endpoint and call policy
            http_client: Pre-built httpx client (tests use a mock transport)
        """
        self.config = config or UpstreamConfig.from_env()
        super().__init__(
            base_url=self.config.api_base,
            timeout=self.config.timeout,
            read_retries=self.config.read_retries,
            http_client=http_client,
        )
        logger.info(f"IconaClient initialized with base_url: {self.base_url}")

    # =============================================================================
    # Helpers
    # =============================================================================

    @staticmethod
    def _check(response: httpx.Response, action: str):
        if response.is_success:
            return
        logger.error(f"Failed to {action}: {response.status_code} {response.text[:500]}")
        raise UpstreamError(
            f"Icona API returned {response.status_code}: {response.reason_phrase}",
            status_code=response.status_code,
            details=response.text,
        )

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamDataError(f"Invalid JSON while trying to {action}", details=str(e))

    async def _send(self, action: str, call):
        try:
            return await call
        except httpx.HTTPError as e:
            logger.error(f"Error trying to {action}: {e}")
            raise UpstreamError(f"Failed to {action}: {e.__class__.__name__}", details=str(e))

    # =============================================================================
    # Orders
    # =============================================================================

    async def list_orders_raw(
        self,
        params: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Orders listing exactly as upstream returns it"""
        response = await self._send(
            "fetch orders",
            self.get("/orders", params=params, headers=self.auth_headers(access_token)),
        )
        self._check(response, "fetch orders")
        return self._json(response, "fetch orders")

    async def list_orders(
        self,
        params: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> List[Order]:
        """
        Orders for a user or customer

        Args:
            params: Upstream query, e.g. {"userId": "..."} or {"customer": "..."}
            access_token: Caller's token, forwarded as a bearer token

        Returns:
            Validated orders
        """
        payload = await self.list_orders_raw(params, access_token=access_token)
        return parse_orders(payload)

    async def get_order(
        self,
        order_id: str,
        access_token: Optional[str] = None
    ) -> Order:
        """Single order by id; raises OrderNotFoundError on 404"""
        action = f"fetch order {order_id}"
        response = await self._send(
            action,
            self.get(f"/orders/{order_id}", headers=self.auth_headers(access_token)),
        )
        if response.status_code == 404:
            raise OrderNotFoundError(f"Order {order_id} not found")
        self._check(response, action)

        payload = self._json(response, action)
        if isinstance(payload, dict) and "_id" not in payload and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        try:
            return Order.model_validate(payload)
        except ValidationError as e:
            raise UpstreamDataError(f"Order {order_id} failed validation", details=str(e))

    async def find_order_raw(
        self,
        order_id: str,
        access_token: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Single order through the listing endpoint (?_id=)

        Returns:
            The upstream record, or None when not found
        """
        action = f"fetch order {order_id}"
        response = await self._send(
            action,
            self.get("/orders/", params={"_id": order_id}, headers=self.auth_headers(access_token)),
        )
        if response.status_code == 404:
            return None
        self._check(response, action)

        payload = self._json(response, action)
        orders = payload.get("orders") if isinstance(payload, dict) else None
        if not orders and isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            orders = payload["data"].get("orders")
        return orders[0] if orders else None

    async def update_order(
        self,
        order_id: str,
        changes: Dict[str, Any],
        method: str = "PATCH",
        access_token: Optional[str] = None
    ) -> Any:
        """
        Update an order

        Args:
            order_id: Order ID
            changes: Fields to change
            method: "PATCH" (partial) or "PUT"
            access_token: Caller's token

        Returns:
            Updated upstream record
        """
        action = f"update order {order_id}"
        send = self.put if method.upper() == "PUT" else self.patch
        response = await self._send(
            action,
            send(f"/orders/{order_id}", json=changes, headers=self.auth_headers(access_token)),
        )
        self._check(response, action)
        return self._json(response, action)

    async def assign_bundle(
        self,
        order_ids: List[str],
        access_token: Optional[str] = None
    ) -> Any:
        """Assign one bundle id to every order in a single call"""
        response = await self._send(
            "create bundle",
            self.post("/orders/bundle/orders", json={"orderIds": order_ids}, headers=self.auth_headers(access_token)),
        )
        self._check(response, "create bundle")
        return self._json(response, "create bundle")

    # =============================================================================
    # Shipping
    # =============================================================================

    async def estimate_rates(
        self,
        payload: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Any:
        """Rate estimates; upstream reads the parcel from a GET body"""
        response = await self._send(
            "estimate shipping rates",
            self.get("/shipping/profiles/estimate/rates", json=payload, headers=self.auth_headers(access_token)),
        )
        self._check(response, "estimate shipping rates")
        return self._json(response, "estimate shipping rates")

    async def purchase_label(
        self,
        payload: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Buy a shipping label; never retried"""
        response = await self._send(
            "purchase label",
            self.post("/shipping/profiles/buy/label", json=payload, headers=self.auth_headers(access_token)),
        )
        self._check(response, "purchase label")
        result = self._json(response, "purchase label")
        if not isinstance(result, dict):
            raise UpstreamDataError("Label purchase response is not an object")
        return result

    async def health_check(self) -> bool:
        """Check if the upstream API answers"""
        try:
            response = await self.get("/")
            return response.status_code < 500
        except httpx.HTTPError:
            return False
