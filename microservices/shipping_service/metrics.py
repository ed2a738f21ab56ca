"""
Shipping Service Metrics

Seller shipment KPIs derived from a raw order list. Recomputed on every
request, never stored.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from .models import Order, OrderStatus, ShipmentMetrics

TWO_PLACES = Decimal("0.01")

DELIVERED_STATUSES = {OrderStatus.DELIVERED.value, OrderStatus.ENDED.value}
IN_TRANSIT_STATUSES = {OrderStatus.SHIPPING.value, OrderStatus.SHIPPED.value}


def _dec(value: float) -> Decimal:
    return Decimal(str(value or 0))


def format_money(amount: Decimal) -> str:
    return str(amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def items_revenue(order: Order) -> Decimal:
    """Items subtotal plus tax; shipping and service fees are pass-through"""
    subtotal = sum(
        (_dec(item.quantity or 0) * _dec(item.price) for item in order.items or []),
        Decimal("0"),
    )
    return subtotal + _dec(order.tax)


def items_count(order: Order) -> int:
    """Units in an order; an order without broken-out items is one unit"""
    if order.items is None:
        return 1
    return int(sum(item.quantity or 1 for item in order.items))


def compute_shipment_metrics(orders: Iterable[Order]) -> ShipmentMetrics:
    orders = list(orders)

    total_sold = sum((items_revenue(order) for order in orders), Decimal("0"))
    total_service_fees = sum((_dec(order.servicefee) for order in orders), Decimal("0"))

    # Buyers pay shipping on paid orders; the seller absorbs it on giveaways
    total_shipping_spend = sum(
        (_dec(order.shipping_fee) for order in orders if order.is_giveaway),
        Decimal("0"),
    )

    # No coupon data upstream yet
    total_coupon_spend = Decimal("0")

    total_earned = total_sold - total_shipping_spend - total_service_fees - total_coupon_spend

    return ShipmentMetrics(
        total_sold=format_money(total_sold),
        total_earned=format_money(total_earned),
        total_shipping_spend=format_money(total_shipping_spend),
        total_coupon_spend=format_money(total_coupon_spend),
        items_sold=sum(items_count(order) for order in orders),
        total_delivered=sum(1 for order in orders if order.status in DELIVERED_STATUSES),
        pending_delivery=sum(1 for order in orders if order.status in IN_TRANSIT_STATUSES),
    )
