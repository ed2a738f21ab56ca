"""
Shipping Service - Mock Dependencies

Mock upstream client for component testing.
Stores raw upstream records and returns Order models as the real client does.
"""
import asyncio
from typing import Optional, Dict, Any, List

from microservices.shipping_service.clients.icona_client import parse_orders
from microservices.shipping_service.models import Order
from microservices.shipping_service.protocols import OrderNotFoundError, UpstreamError


class MockIconaClient:
    """Mock Icona API client for component testing

    Implements IconaClientProtocol interface.
    """

    def __init__(self):
        self._orders: Dict[str, Dict[str, Any]] = {}
        self._error: Optional[Exception] = None
        self._method_errors: Dict[str, Exception] = {}
        self._update_errors: Dict[str, Exception] = {}
        self._label_response: Dict[str, Any] = {
            "status": "SUCCESS",
            "trackingNumber": "9400100000000000000001",
            "labelUrl": "https://labels.example.com/l1.pdf",
        }
        self._assign_response: Any = {"success": True}
        self._estimates: Any = []
        self._call_log: List[Dict] = []
        self.update_delay: float = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self.upstream_healthy = True

    # =========================================================================
    # Setup
    # =========================================================================

    def set_order(self, record: Dict[str, Any]):
        """Add an upstream order record"""
        self._orders[record["_id"]] = dict(record)

    def set_orders(self, records: List[Dict[str, Any]]):
        for record in records:
            self.set_order(record)

    def set_error(self, error: Exception):
        """Set an error to be raised on every operation"""
        self._error = error

    def set_method_error(self, method: str, error: Exception):
        """Set an error to be raised by one operation"""
        self._method_errors[method] = error

    def fail_update(self, order_id: str, error: Optional[Exception] = None):
        """Make updates of one order fail"""
        self._update_errors[order_id] = error or UpstreamError(
            "Icona API returned 502: Bad Gateway", status_code=502, details="upstream down"
        )

    def set_label_response(self, response: Dict[str, Any]):
        self._label_response = response

    def set_assign_response(self, response: Any):
        self._assign_response = response

    def set_estimates(self, estimates: Any):
        self._estimates = estimates

    def get_record(self, order_id: str) -> Dict[str, Any]:
        return self._orders[order_id]

    # =========================================================================
    # Assertions
    # =========================================================================

    def _log_call(self, _method: str, **kwargs):
        """Log method calls for assertions"""
        self._call_log.append({"method": _method, "kwargs": kwargs})

    def _raise_if_set(self, method: str):
        if self._error:
            raise self._error
        if method in self._method_errors:
            raise self._method_errors[method]

    def assert_called(self, method: str):
        """Assert that a method was called"""
        called_methods = [c["method"] for c in self._call_log]
        assert method in called_methods, f"Expected {method} to be called, but got {called_methods}"

    def assert_not_called(self, method: str):
        called_methods = [c["method"] for c in self._call_log]
        assert method not in called_methods, f"Expected {method} not to be called"

    def get_call_count(self, method: str) -> int:
        """Get number of times a method was called"""
        return sum(1 for c in self._call_log if c["method"] == method)

    def get_calls(self, method: str) -> List[Dict[str, Any]]:
        return [c["kwargs"] for c in self._call_log if c["method"] == method]

    # =========================================================================
    # IconaClientProtocol
    # =========================================================================

    async def list_orders_raw(self, params: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        self._log_call("list_orders_raw", params=params, access_token=access_token)
        self._raise_if_set("list_orders_raw")
        return {"orders": list(self._orders.values()), "total": len(self._orders)}

    async def list_orders(self, params: Dict[str, Any], access_token: Optional[str] = None) -> List[Order]:
        self._log_call("list_orders", params=params, access_token=access_token)
        self._raise_if_set("list_orders")
        return parse_orders({"orders": list(self._orders.values())})

    async def get_order(self, order_id: str, access_token: Optional[str] = None) -> Order:
        self._log_call("get_order", order_id=order_id, access_token=access_token)
        self._raise_if_set("get_order")
        if order_id not in self._orders:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return Order.model_validate(self._orders[order_id])

    async def find_order_raw(self, order_id: str, access_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
        self._log_call("find_order_raw", order_id=order_id, access_token=access_token)
        self._raise_if_set("find_order_raw")
        return self._orders.get(order_id)

    async def update_order(
        self,
        order_id: str,
        changes: Dict[str, Any],
        method: str = "PATCH",
        access_token: Optional[str] = None
    ) -> Any:
        self._log_call("update_order", order_id=order_id, changes=changes, method=method, access_token=access_token)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.update_delay)
            self._raise_if_set("update_order")
            if order_id in self._update_errors:
                raise self._update_errors[order_id]

            record = self._orders.setdefault(order_id, {"_id": order_id})
            for key, value in changes.items():
                if value is None:
                    record.pop(key, None)
                else:
                    record[key] = value
            return dict(record)
        finally:
            self.in_flight -= 1

    async def assign_bundle(self, order_ids: List[str], access_token: Optional[str] = None) -> Any:
        self._log_call("assign_bundle", order_ids=order_ids, access_token=access_token)
        self._raise_if_set("assign_bundle")
        bundle_id = None
        if isinstance(self._assign_response, dict):
            bundle_id = self._assign_response.get("bundleId")
        for order_id in order_ids:
            if order_id in self._orders:
                self._orders[order_id]["bundleId"] = bundle_id or "bundle_assigned"
        return self._assign_response

    async def estimate_rates(self, payload: Dict[str, Any], access_token: Optional[str] = None) -> Any:
        self._log_call("estimate_rates", payload=payload, access_token=access_token)
        self._raise_if_set("estimate_rates")
        return self._estimates

    async def purchase_label(self, payload: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        self._log_call("purchase_label", payload=payload, access_token=access_token)
        self._raise_if_set("purchase_label")
        return self._label_response

    async def close(self):
        self.closed = True

    async def health_check(self) -> bool:
        self._log_call("health_check")
        return self.upstream_healthy
