"""
Shipping Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import Order


# ============================================================================
# Custom Exceptions - defined here to avoid importing the HTTP client
# ============================================================================

class ShippingServiceError(Exception):
    """Base exception for shipping service errors"""
    pass


class ShippingValidationError(ShippingServiceError):
    """Request rejected: bad shape, ineligible status, heterogeneous bundle"""
    pass


class BundleNotFoundError(ShippingServiceError):
    """No orders carry the requested bundle id"""
    pass


class OrderNotFoundError(ShippingServiceError):
    """Order not found upstream"""
    pass


class UpstreamError(ShippingServiceError):
    """Upstream API unreachable or returned a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class UpstreamDataError(UpstreamError):
    """Upstream returned a payload that failed validation"""
    pass


# ============================================================================
# Upstream Client Protocol
# ============================================================================

@runtime_checkable
class IconaClientProtocol(Protocol):
    """
    Interface for the Icona API client.

    Read methods return validated Order records; pass-through methods return
    the upstream JSON. Every method raises UpstreamError on a non-2xx status.
    """

    async def list_orders(
        self,
        params: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> List[Order]:
        """Orders matching the query (userId, customer, ...); malformed records dropped"""
        ...

    async def list_orders_raw(
        self,
        params: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Orders listing exactly as upstream returns it"""
        ...

    async def get_order(
        self,
        order_id: str,
        access_token: Optional[str] = None
    ) -> Order:
        """Single order; OrderNotFoundError on 404"""
        ...

    async def find_order_raw(
        self,
        order_id: str,
        access_token: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Single order looked up through the listing endpoint"""
        ...

    async def update_order(
        self,
        order_id: str,
        changes: Dict[str, Any],
        method: str = "PATCH",
        access_token: Optional[str] = None
    ) -> Any:
        """PATCH or PUT an order, returns the updated upstream record"""
        ...

    async def assign_bundle(
        self,
        order_ids: List[str],
        access_token: Optional[str] = None
    ) -> Any:
        """Assign one bundle id to all orders in a single call"""
        ...

    async def estimate_rates(
        self,
        payload: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Any:
        """Rate estimate(s) for a parcel"""
        ...

    async def purchase_label(
        self,
        payload: Dict[str, Any],
        access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Buy a label for a previously estimated rate"""
        ...

    async def health_check(self) -> bool:
        """True when the upstream API answers"""
        ...
