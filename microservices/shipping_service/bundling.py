"""
Shipping Service Bundling

Bundle identity, grouping and status derivation. Pure functions over
validated orders; all upstream I/O lives in the service layer.
"""

import hashlib
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .aggregation import aggregate_orders
from .models import Bundle, Order, OrderStatus

BUNDLE_ID_PREFIX = "bundle_"

# Highest first. One cancelled member holds back the bundle; one shipped
# member surfaces before the bundle is labelled processing.
STATUS_PRIORITY = (
    OrderStatus.CANCELLED.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.READY_TO_SHIP.value,
    OrderStatus.PROCESSING.value,
)


def generate_bundle_id(order_ids: Iterable[str]) -> str:
    """Deterministic bundle id: same id set in any order gives the same id"""
    joined = ",".join(sorted(order_ids))
    digest = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    return f"{BUNDLE_ID_PREFIX}{digest[:12]}"


def is_bundle_eligible(order: Order) -> bool:
    """Processing and not labelled yet"""
    return order.status == OrderStatus.PROCESSING.value and not order.tracking_number


def derive_bundle_status(statuses: Iterable[Optional[str]]) -> str:
    """Merge member statuses into one bundle status"""
    resolved = [status or OrderStatus.PROCESSING.value for status in statuses]
    if not resolved:
        return OrderStatus.PROCESSING.value

    unique = set(resolved)
    if len(unique) == 1:
        return resolved[0]

    for status in STATUS_PRIORITY:
        if status in unique:
            return status
    return OrderStatus.PROCESSING.value


def get_bundle_members(orders: Iterable[Order], bundle_id: str) -> List[Order]:
    return [order for order in orders if order.bundle_id == bundle_id]


def get_bundle_status(orders: Iterable[Order], bundle_id: str) -> str:
    """
    Status of a bundle from its member orders.

    Pass the unfiltered order set; a status-filtered view would skew the result.
    """
    members = get_bundle_members(orders, bundle_id)
    return derive_bundle_status(order.status for order in members)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _earliest_created_at(orders: Iterable[Order]) -> str:
    stamps = [ts for ts in (_parse_timestamp(order.created_at) for order in orders) if ts]
    earliest = min(stamps) if stamps else datetime.now(timezone.utc)
    return earliest.isoformat()


def build_bundle(bundle_id: str, members: List[Order], status: str) -> Bundle:
    """Bundle view over its member orders; customer taken from the first member"""
    first = members[0]
    aggregated = aggregate_orders(members)
    return Bundle(
        id=bundle_id,
        customer_id=first.customer_id,
        customer_name=first.customer.full_name if first.customer else "Unknown Customer",
        order_ids=[order.id for order in members],
        count=len(members),
        weight=aggregated["weight"],
        dimensions=aggregated["dimensions"],
        total_value=aggregated["total_value"],
        status=status,
        created_at=_earliest_created_at(members),
    )


def _newest_first(bundles: List[Bundle]) -> List[Bundle]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        bundles,
        key=lambda bundle: _parse_timestamp(bundle.created_at) or epoch,
        reverse=True,
    )


def compute_bundles_from_orders(orders: Iterable[Order]) -> List[Bundle]:
    """
    Implicit grouping: customers with 2+ eligible orders become candidate bundles.

    Ids follow generate_bundle_id so a candidate and an explicitly created
    bundle over the same orders agree.
    """
    by_customer: Dict[str, List[Order]] = {}
    for order in orders:
        if is_bundle_eligible(order):
            by_customer.setdefault(order.customer_id, []).append(order)

    bundles = []
    for customer_orders in by_customer.values():
        if len(customer_orders) < 2:
            continue
        bundle_id = generate_bundle_id(order.id for order in customer_orders)
        status = derive_bundle_status(order.status for order in customer_orders)
        bundles.append(build_bundle(bundle_id, customer_orders, status))

    return _newest_first(bundles)


def group_bundled_orders(orders: Iterable[Order]) -> List[Bundle]:
    """Explicit grouping: orders sharing a non-blank bundle id"""
    orders = list(orders)
    groups: Dict[str, List[Order]] = {}
    for order in orders:
        if order.is_bundled:
            groups.setdefault(order.bundle_id, []).append(order)

    bundles = [
        build_bundle(bundle_id, members, get_bundle_status(orders, bundle_id))
        for bundle_id, members in groups.items()
    ]
    return _newest_first(bundles)
