"""
Shipping Service Business Logic

Bundle lifecycle, shipment metrics and label purchase orchestration over the
upstream Icona API. Holds no state between requests; the upstream API is the
system of record.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from pydantic import ValidationError

from .aggregation import aggregate_parcel
from .bundling import (
    compute_bundles_from_orders,
    generate_bundle_id,
    get_bundle_members,
    get_bundle_status,
    group_bundled_orders,
)
from .metrics import compute_shipment_metrics
from .models import (
    Bundle, BundleCreateRequest, BundleCreateResponse,
    BundleLabelPurchaseData, BundleLabelPurchaseRequest, BundleLabelPurchaseResponse,
    BundleStatusResponse, LabelPurchaseData, LabelPurchaseRequest, LabelPurchaseResponse,
    Order, OrderStatus, Parcel, ShipmentMetrics, ShippingEstimate, ShippingEstimateRequest,
    UnbundleData, UnbundleResponse, UpdateResult,
)
from .protocols import (
    BundleNotFoundError,
    IconaClientProtocol,
    OrderNotFoundError,
    ShippingServiceError,
    ShippingValidationError,
    UpstreamDataError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Statuses a bundle label may be bought for
SHIPPABLE_STATUSES = {
    OrderStatus.PENDING.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.UNFULFILLED.value,
    OrderStatus.READY_TO_SHIP.value,
}

ADDRESS_FIELDS = ("address1", "city", "state", "zipcode")

DEFAULT_CARRIER = "USPS"
MIN_LABEL_COST = 5.99
COST_PER_OZ = 0.15


def estimate_label_cost(parcel: Parcel) -> float:
    """Rough cost until the rate id is priced upstream"""
    return round(max(MIN_LABEL_COST, parcel.weight_oz * COST_PER_OZ), 2)


def bundle_label_status_code(results: List[UpdateResult]) -> int:
    """200 all updated, 207 some updated, 500 none updated"""
    succeeded = sum(1 for r in results if r.success)
    if succeeded == len(results):
        return 200
    if succeeded == 0:
        return 500
    return 207


class ShippingService:
    """
    Shipping console business logic service

    Aggregates upstream orders into bundles and metrics and orchestrates
    multi-order mutations with bounded fan-out.
    """

    def __init__(self, icona_client: IconaClientProtocol, fanout_concurrency: int = 8):
        """
        Initialize Shipping Service

        Args:
            icona_client: Upstream API client (dependency injection)
            fanout_concurrency: Max in-flight upstream calls per fan-out stage
        """
        self.icona_client = icona_client
        self.fanout_concurrency = max(1, fanout_concurrency)
        logger.info("ShippingService initialized")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _owner_query(
        user_id: Optional[str],
        customer: Optional[str],
        prefer: str = "userId"
    ) -> Dict[str, str]:
        if not user_id and not customer:
            raise ShippingValidationError("userId or customer parameter is required")
        if prefer == "customer" and customer:
            return {"customer": customer}
        if user_id:
            return {"userId": user_id}
        return {"customer": customer}

    async def _gather_bounded(
        self,
        items: Iterable[T],
        func: Callable[[T], Awaitable[R]]
    ) -> List[R]:
        """Run func over items with at most fanout_concurrency in flight"""
        semaphore = asyncio.Semaphore(self.fanout_concurrency)

        async def run(item: T) -> R:
            async with semaphore:
                return await func(item)

        return await asyncio.gather(*(run(item) for item in items))

    async def _update_each(
        self,
        order_ids: List[str],
        changes: Dict[str, Any],
        method: str,
        access_token: Optional[str]
    ) -> List[UpdateResult]:
        """Apply the same change to every order; failures are reported per order"""

        async def update(order_id: str) -> UpdateResult:
            try:
                data = await self.icona_client.update_order(
                    order_id, changes, method=method, access_token=access_token
                )
                logger.info(f"Order {order_id} updated: {sorted(changes)}")
                return UpdateResult(order_id=order_id, success=True, data=data)
            except ShippingServiceError as e:
                status_code = getattr(e, "status_code", None)
                details = getattr(e, "details", None)
                error = f"HTTP {status_code}: {details or e}" if status_code else str(e)
                logger.error(f"Failed to update order {order_id}: {error}")
                return UpdateResult(order_id=order_id, success=False, error=error)

        return await self._gather_bounded(order_ids, update)

    async def health_check(self) -> Dict[str, Any]:
        """Service health including upstream reachability"""
        upstream_ok = await self.icona_client.health_check()
        if not upstream_ok:
            logger.warning("Upstream API health check failed")
        return {
            "status": "healthy" if upstream_ok else "degraded",
            "upstream_connected": upstream_ok,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # =========================================================================
    # Order proxy
    # =========================================================================

    async def list_orders(self, params: Dict[str, Any], access_token: Optional[str] = None) -> Dict[str, Any]:
        """Orders listing passed through from upstream"""
        return await self.icona_client.list_orders_raw(params, access_token=access_token)

    async def get_order(self, order_id: str, access_token: Optional[str] = None) -> Dict[str, Any]:
        order = await self.icona_client.find_order_raw(order_id, access_token=access_token)
        if not order:
            raise OrderNotFoundError("Order not found")
        return order

    async def update_order(
        self,
        order_id: str,
        changes: Dict[str, Any],
        method: str = "PATCH",
        access_token: Optional[str] = None
    ) -> Any:
        logger.info(f"{method} order {order_id}: {sorted(changes)}")
        return await self.icona_client.update_order(order_id, changes, method=method, access_token=access_token)

    # =========================================================================
    # Bundles
    # =========================================================================

    async def list_bundles(
        self,
        user_id: Optional[str] = None,
        customer: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> List[Bundle]:
        """Bundles formed by orders that carry a bundle id"""
        query = self._owner_query(user_id, customer)
        orders = await self.icona_client.list_orders(query, access_token=access_token)
        bundles = group_bundled_orders(orders)
        logger.info(f"Found {len(bundles)} bundles in {len(orders)} orders")
        return bundles

    async def suggest_bundles(
        self,
        user_id: Optional[str] = None,
        customer: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> List[Bundle]:
        """Candidate bundles: customers with 2+ processing, unlabelled orders"""
        query = self._owner_query(user_id, customer)
        orders = await self.icona_client.list_orders(query, access_token=access_token)
        return compute_bundles_from_orders(orders)

    async def get_bundle_status(
        self,
        bundle_id: str,
        user_id: Optional[str] = None,
        customer: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> BundleStatusResponse:
        """Status merged from every member, from the unfiltered order set"""
        query = self._owner_query(user_id, customer)
        orders = await self.icona_client.list_orders(query, access_token=access_token)
        members = get_bundle_members(orders, bundle_id)
        return BundleStatusResponse(
            bundle_id=bundle_id,
            status=get_bundle_status(orders, bundle_id),
            order_ids=[order.id for order in members],
        )

    async def _load_orders_by_id(
        self,
        order_ids: List[str],
        access_token: Optional[str]
    ) -> List[Order]:
        """Fetch each order; the first failure aborts the whole fetch"""
        return await self._gather_bounded(
            order_ids,
            lambda order_id: self.icona_client.get_order(order_id, access_token=access_token),
        )

    async def create_bundle(
        self,
        request: BundleCreateRequest,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> BundleCreateResponse:
        """
        Assign one bundle to the selected orders

        Every order must be processing and not already bundled. The upstream
        assignment is a single call covering all orders.

        Raises:
            ShippingValidationError: naming the offending order ids
        """
        order_ids = list(dict.fromkeys(request.order_ids))
        owner = user_id or request.user_id
        logger.info(f"Creating bundle for orders: {order_ids}")

        if owner:
            known = {
                order.id: order
                for order in await self.icona_client.list_orders({"userId": owner}, access_token=access_token)
            }
        else:
            async def lookup(order_id: str) -> Optional[Order]:
                try:
                    return await self.icona_client.get_order(order_id, access_token=access_token)
                except OrderNotFoundError:
                    return None

            found = await self._gather_bounded(order_ids, lookup)
            known = {order.id: order for order in found if order is not None}

        invalid = [
            order_id for order_id in order_ids
            if order_id not in known or known[order_id].status != OrderStatus.PROCESSING.value
        ]
        if invalid:
            raise ShippingValidationError(
                f"Only orders with 'processing' status can be bundled. Invalid orders: {', '.join(invalid)}"
            )

        already_bundled = [order_id for order_id in order_ids if known[order_id].is_bundled]
        if already_bundled:
            raise ShippingValidationError(
                f"Orders already belong to a bundle: {', '.join(already_bundled)}"
            )

        result = await self.icona_client.assign_bundle(order_ids, access_token=access_token)
        derived_id = generate_bundle_id(order_ids)
        if isinstance(result, dict):
            data = dict(result)
            data.setdefault("bundleId", derived_id)
        else:
            data = {"bundleId": derived_id, "result": result}

        logger.info(f"Bundle {data['bundleId']} created for {len(order_ids)} orders")
        return BundleCreateResponse(success=True, message="Bundle created successfully", data=data)

    async def unbundle(
        self,
        bundle_id: str,
        user_id: str,
        access_token: Optional[str] = None
    ) -> UnbundleResponse:
        """
        Clear the bundle id on every member order of the user

        Returns success when at least one order was unbundled; failures are
        counted and itemized, never dropped.

        Raises:
            BundleNotFoundError: no order of the user carries the bundle id
        """
        if not user_id:
            raise ShippingValidationError("userId parameter is required")

        orders = await self.icona_client.list_orders({"userId": user_id}, access_token=access_token)
        members = get_bundle_members(orders, bundle_id)
        if not members:
            raise BundleNotFoundError("No orders found with the specified bundle ID")

        logger.info(f"Unbundling {len(members)} orders from {bundle_id}")
        results = await self._update_each(
            [order.id for order in members], {"bundleId": None}, "PUT", access_token
        )

        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        data = UnbundleData(
            bundle_id=bundle_id,
            orders_unbundled=succeeded,
            orders_failed=failed,
            results=results,
        )

        if succeeded == 0:
            return UnbundleResponse(success=False, message="Failed to unbundle any orders", data=data)

        return UnbundleResponse(
            success=True,
            message=f"Bundle unbundled successfully. {succeeded} orders unbundled.",
            data=data,
        )

    # =========================================================================
    # Metrics
    # =========================================================================

    async def get_shipment_metrics(
        self,
        user_id: Optional[str] = None,
        customer: Optional[str] = None,
        access_token: Optional[str] = None
    ) -> ShipmentMetrics:
        query = self._owner_query(user_id, customer, prefer="customer")
        orders = await self.icona_client.list_orders(query, access_token=access_token)
        return compute_shipment_metrics(orders)

    # =========================================================================
    # Rates and labels
    # =========================================================================

    async def estimate_rates(
        self,
        request: ShippingEstimateRequest,
        access_token: Optional[str] = None
    ) -> List[ShippingEstimate]:
        """
        Rate estimates normalized for the console

        Estimates without a rate id (objectId) cannot be purchased and are dropped.
        """
        raw = await self.icona_client.estimate_rates(request.model_dump(), access_token=access_token)
        candidates = raw if isinstance(raw, list) else [raw]

        estimates = []
        for estimate in candidates:
            if not isinstance(estimate, dict):
                continue
            servicelevel = estimate.get("servicelevel")
            object_id = estimate.get("objectId")
            normalized = {
                **estimate,
                "carrier": estimate.get("provider") or "Unknown",
                "service": (servicelevel.get("name") if isinstance(servicelevel, dict) else None) or "Standard",
                "price": str(estimate.get("amount") or "0.00"),
                "deliveryTime": estimate.get("durationTerms") or "Standard delivery",
                "estimatedDays": estimate.get("estimatedDays") or 3,
                "objectId": object_id.strip() if isinstance(object_id, str) else "",
            }
            try:
                estimates.append(ShippingEstimate.model_validate(normalized))
            except ValidationError:
                logger.error(f"Invalid estimate response - missing objectId: {estimate}")

        if not estimates:
            raise UpstreamDataError(
                "No valid shipping estimates available",
                details="Unable to get valid shipping rates. Please check package details and try again.",
            )
        return estimates

    async def purchase_label(
        self,
        request: LabelPurchaseRequest,
        access_token: Optional[str] = None
    ) -> LabelPurchaseResponse:
        """Buy a label for one order (or for a bundle id when isBundle is set)"""
        payload: Dict[str, Any] = {
            "rate_id": request.rate_id,
            "order": request.order,
            "shipping_fee": request.shipping_fee,
            "servicelevel": request.servicelevel,
        }
        if request.is_bundle:
            payload["bundleId"] = request.order

        logger.info(f"Purchasing label for rate {request.rate_id}")
        result = await self.icona_client.purchase_label(payload, access_token=access_token)
        succeeded = result.get("status") == "SUCCESS"

        return LabelPurchaseResponse(
            success=succeeded,
            message="Label purchased successfully" if succeeded else "Label purchase failed",
            data=LabelPurchaseData(
                tracking_number=result.get("trackingNumber") or result.get("tracking_number") or "",
                label_url=result.get("labelUrl") or result.get("label_url") or "",
                carrier=request.carrier or "Unknown",
                service=request.servicelevel or "Standard",
                cost=f"{request.shipping_fee:g}",
                delivery_time="Standard delivery",
                purchased_at=datetime.now(timezone.utc).isoformat(),
            ),
        )

    @staticmethod
    def validate_bundle_orders(orders: List[Order]):
        """
        Every order must share the first order's customer and address and be shippable.

        Raises:
            ShippingValidationError: naming the offending order and field
        """
        first = orders[0]
        customer_id = first.customer_id
        address = first.customer.address if first.customer else None
        if not address:
            raise ShippingValidationError(
                f"First order has no shipping address: cannot bundle order {first.id}"
            )

        for order in orders:
            if order.customer_id != customer_id:
                raise ShippingValidationError(
                    f"All orders must belong to the same customer: order {order.id} belongs to different customer"
                )

            order_address = order.customer.address if order.customer else None
            if not order_address:
                raise ShippingValidationError(
                    f"All orders must have the same shipping address: order {order.id} has no shipping address"
                )
            for field in ADDRESS_FIELDS:
                if getattr(order_address, field) != getattr(address, field):
                    raise ShippingValidationError(
                        f"All orders must have the same shipping address: "
                        f"order {order.id} has different shipping address ({field})"
                    )

            if order.status and order.status not in SHIPPABLE_STATUSES:
                raise ShippingValidationError(
                    f"Order {order.id} has incompatible status: {order.status}"
                )

    async def purchase_bundle_label(
        self,
        request: BundleLabelPurchaseRequest,
        access_token: Optional[str] = None
    ) -> BundleLabelPurchaseResponse:
        """
        One label for a bundle of orders

        fetch all -> validate -> aggregate parcel -> purchase once -> update all.
        A purchased label is never rolled back; update_results lists which
        orders still need the tracking number.
        """
        order_ids = list(dict.fromkeys(request.order_ids))
        logger.info(f"Processing bundle label purchase for orders: {order_ids}")

        orders = await self._load_orders_by_id(order_ids, access_token)
        self.validate_bundle_orders(orders)

        parcel = aggregate_parcel(orders)
        cost = estimate_label_cost(parcel)
        logger.info(f"Aggregated parcel: {parcel.weight} oz, {parcel.dimensions}, {len(orders)} orders")

        first = orders[0]
        label_request: Dict[str, Any] = {
            "rate_id": request.rate_id,
            "order": {
                "_id": f"bundle_{'_'.join(order_ids)}",
                "customer": first.customer.model_dump(by_alias=True, exclude_none=True) if first.customer else None,
                "seller": first.seller.model_dump(by_alias=True, exclude_none=True) if first.seller else None,
                "items": [{"_id": order_id, "bundled": True} for order_id in order_ids],
            },
            "shipping_fee": cost,
            "servicelevel": request.service,
            "carrier": DEFAULT_CARRIER,
            "parcel": {
                "weight": parcel.weight_oz,
                "unit": "oz",
                "length": parcel.length,
                "width": parcel.width,
                "height": parcel.height,
            },
        }
        shared_bundle_ids = {order.bundle_id for order in orders}
        if len(shared_bundle_ids) == 1 and first.is_bundled:
            label_request["bundleId"] = first.bundle_id

        label = await self.icona_client.purchase_label(label_request, access_token=access_token)
        tracking_number = label.get("trackingNumber") or label.get("tracking_number")
        label_url = label.get("labelUrl") or label.get("label_url")

        if not tracking_number:
            logger.error(f"Bundle label response without tracking number: {label}")
            return BundleLabelPurchaseResponse(
                success=False,
                message="Label created but no tracking number received",
                error="Missing tracking number in API response",
                status_code=500,
            )

        logger.info(f"Updating {len(order_ids)} orders with tracking number: {tracking_number}")
        results = await self._update_each(
            order_ids,
            {
                "tracking_number": tracking_number,
                "label_url": label_url,
                "status": OrderStatus.READY_TO_SHIP.value,
            },
            "PATCH",
            access_token,
        )

        status_code = bundle_label_status_code(results)
        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Bundle label results: {succeeded} successful, {len(results) - succeeded} failed")

        if status_code == 200:
            message = f"Bundle label created successfully for {len(order_ids)} orders"
        elif status_code == 207:
            message = f"Label created with partial success: {succeeded}/{len(order_ids)} orders updated"
        else:
            message = "Label created but failed to update any orders"

        return BundleLabelPurchaseResponse(
            success=status_code == 200,
            message=message,
            data=BundleLabelPurchaseData(
                tracking_number=tracking_number,
                label_url=label_url,
                cost=cost,
                carrier=DEFAULT_CARRIER,
                service=request.service,
                affected_orders=order_ids,
                update_results=results,
                aggregated_weight=parcel.weight,
                aggregated_dimensions=parcel.dimensions,
            ),
            status_code=status_code,
        )
