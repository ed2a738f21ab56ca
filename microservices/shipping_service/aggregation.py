"""
Shipping Service Aggregation

Weight, footprint and value rollups over a list of orders. Pure functions:
missing or unparsable numbers count as 0 and nothing here raises.

Footprint stacks boxes: max length, max width, summed height. It is a packing
heuristic, not bin packing.
"""

from typing import Iterable, List, Optional, Tuple

from .models import Order, OrderItem, Parcel, parse_numeric

# Display fallback so a bundle never shows empty dimensions
DEFAULT_FOOTPRINT: Tuple[float, float, float] = (12.0, 12.0, 12.0)

# Label purchase fallbacks, never buy a zero-size parcel
DEFAULT_PARCEL_LENGTH = 12.0
DEFAULT_PARCEL_WIDTH = 12.0
DEFAULT_PARCEL_HEIGHT = 4.0
DEFAULT_PARCEL_WEIGHT_OZ = 8.0

OZ_PER_LB = 16.0


def _item_dimensions(item: OrderItem) -> Optional[Tuple[float, float, float]]:
    if not (item.length and item.width and item.height):
        return None
    dims = (parse_numeric(item.length), parse_numeric(item.width), parse_numeric(item.height))
    if not any(dims):
        return None
    return dims


def _giveaway_dimensions(order: Order) -> Optional[Tuple[float, float, float]]:
    if not order.giveaway:
        return None
    g = order.giveaway
    dims = (parse_numeric(g.length), parse_numeric(g.width), parse_numeric(g.height))
    if not any(dims):
        return None
    return dims


def order_weight(order: Order) -> float:
    """Item weights summed; the giveaway shipping profile weight when no item has one"""
    item_weight = sum(parse_numeric(item.weight) for item in order.items or [])
    if item_weight > 0:
        return item_weight
    if order.giveaway and order.giveaway.shipping_profile:
        return order.giveaway.shipping_profile.weight
    return 0.0


def aggregate_weight(orders: Iterable[Order]) -> float:
    return sum(order_weight(order) for order in orders)


def aggregate_footprint(
    orders: Iterable[Order],
    default: Tuple[float, float, float] = DEFAULT_FOOTPRINT
) -> Tuple[float, float, float]:
    """
    Running max length, running max width, summed height.

    Item-level dimensions take precedence per order, then the giveaway's.
    When no order has any dimensions the default is returned.
    """
    max_length = 0.0
    max_width = 0.0
    total_height = 0.0
    found = False

    for order in orders:
        boxes = [d for d in (_item_dimensions(item) for item in order.items or []) if d]
        if not boxes:
            giveaway_box = _giveaway_dimensions(order)
            boxes = [giveaway_box] if giveaway_box else []

        for length, width, height in boxes:
            found = True
            max_length = max(max_length, length)
            max_width = max(max_width, width)
            total_height += height

    if not found:
        return default
    return max_length, max_width, total_height


def order_value(order: Order) -> float:
    """Everything the customer paid: total + service fee + tax + shipping"""
    return order.total + order.servicefee + order.tax + order.shipping_fee


def aggregate_value(orders: Iterable[Order]) -> float:
    return sum(order_value(order) for order in orders)


def _fmt(value: float) -> str:
    return f"{value:g}"


def aggregate_orders(orders: List[Order]) -> dict:
    """Display rollup for a bundle: weight, dimensions and total value"""
    weight = aggregate_weight(orders)
    length, width, height = aggregate_footprint(orders)
    return {
        "weight": f"{_fmt(weight)} oz" if weight > 0 else None,
        "dimensions": f"{_fmt(length)} x {_fmt(width)} x {_fmt(height)} in",
        "total_value": round(aggregate_value(orders), 2),
    }


def _to_oz(weight: float, scale: Optional[str]) -> float:
    return weight * OZ_PER_LB if (scale or "oz").lower() == "lb" else weight


def parcel_weight_oz(order: Order) -> float:
    """Order weight in ounces for a label; item weights count per unit"""
    if order.giveaway and order.giveaway.shipping_profile and order.giveaway.shipping_profile.weight:
        profile = order.giveaway.shipping_profile
        return _to_oz(profile.weight, profile.scale)

    weight = 0.0
    for item in order.items or []:
        if item.weight:
            weight += _to_oz(parse_numeric(item.weight), item.scale) * (item.quantity or 1)
    return weight


def parcel_dimensions(order: Order) -> Tuple[float, float, float]:
    """Giveaway dimensions, else the first item's as an approximation"""
    if order.giveaway:
        g = order.giveaway
        return parse_numeric(g.length), parse_numeric(g.width), parse_numeric(g.height)
    if order.items:
        first = order.items[0]
        return parse_numeric(first.length), parse_numeric(first.width), parse_numeric(first.height)
    return 0.0, 0.0, 0.0


def aggregate_parcel(orders: Iterable[Order]) -> Parcel:
    """Parcel for one label covering every order, with defaults for missing attributes"""
    total_weight = 0.0
    max_length = 0.0
    max_width = 0.0
    total_height = 0.0

    for order in orders:
        total_weight += parcel_weight_oz(order)
        length, width, height = parcel_dimensions(order)
        max_length = max(max_length, length)
        max_width = max(max_width, width)
        total_height += height

    return Parcel(
        weight_oz=total_weight or DEFAULT_PARCEL_WEIGHT_OZ,
        length=max_length or DEFAULT_PARCEL_LENGTH,
        width=max_width or DEFAULT_PARCEL_WIDTH,
        height=total_height or DEFAULT_PARCEL_HEIGHT,
    )
