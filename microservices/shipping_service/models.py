"""
Shipping Service Data Models

Pydantic models for upstream orders, computed bundles, shipment metrics,
and the request/response contracts of the shipping console API.
"""

from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator
from typing import Optional, List, Dict, Any, Union
from enum import Enum
import math
import re

_NON_NUMERIC = re.compile(r"[^\d.]")


def parse_numeric(value: Any) -> float:
    """
    Lenient number parsing for display aggregates

    Strips everything that is not a digit or a dot ("4oz" -> 4.0).
    Missing, unparsable or non-finite values give 0.0; never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, (int, float)):
            result = float(value)
        else:
            result = float(_NON_NUMERIC.sub("", str(value)))
    except (ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


class OrderStatus(str, Enum):
    """Order status values used by the shipping logic (upstream set is open)"""
    PENDING = "pending"
    PROCESSING = "processing"
    UNFULFILLED = "unfulfilled"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPING = "shipping"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    ENDED = "ended"


# ============================================================================
# Upstream (Icona) records - parse-and-validate boundary
# ============================================================================

class UpstreamModel(BaseModel):
    """Base for records parsed from upstream JSON"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _money(v: Any) -> float:
    return parse_numeric(v)


def _text(v: Any) -> Optional[str]:
    if v is None:
        return None
    return str(v)


class Address(UpstreamModel):
    """Shipping address"""
    id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = None
    # Upstream spells the street field "addrress1"
    address1: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("addrress1", "address1"),
        serialization_alias="addrress1",
    )
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("zipcode", "phone", mode="before")
    @classmethod
    def _stringify(cls, v):
        return _text(v)


class Customer(UpstreamModel):
    """Buyer reference"""
    id: str = Field("", alias="_id")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    address: Optional[Address] = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown Customer"


class Seller(UpstreamModel):
    """Seller reference"""
    id: str = Field("", alias="_id")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    user_name: Optional[str] = Field(None, alias="userName")
    email: Optional[str] = None


class ShippingProfile(UpstreamModel):
    """Giveaway shipping profile"""
    id: Optional[str] = Field(None, alias="_id")
    weight: float = 0.0
    name: Optional[str] = None
    scale: Optional[str] = None

    @field_validator("weight", mode="before")
    @classmethod
    def _weight(cls, v):
        return parse_numeric(v)


class Giveaway(UpstreamModel):
    """Giveaway listing attached to an order"""
    id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = None
    quantity: Optional[int] = None
    shipping_profile: Optional[ShippingProfile] = None
    length: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    status: Optional[str] = None

    @field_validator("length", "width", "height", mode="before")
    @classmethod
    def _dims(cls, v):
        return _text(v)


class OrderItem(UpstreamModel):
    """Order line item"""
    id: Optional[str] = Field(None, alias="_id")
    quantity: Optional[float] = None
    price: float = 0.0
    weight: Optional[str] = None
    length: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    scale: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return _money(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        if v is None or v == "":
            return None
        return parse_numeric(v)

    @field_validator("weight", "length", "width", "height", mode="before")
    @classmethod
    def _numeric_text(cls, v):
        return _text(v)


class Order(UpstreamModel):
    """Upstream order, validated before any aggregation runs"""
    id: str = Field(..., alias="_id", min_length=1)
    customer: Optional[Customer] = None
    seller: Optional[Seller] = None
    giveaway: Optional[Giveaway] = None
    ordertype: Optional[str] = None
    items: Optional[List[OrderItem]] = None

    # Financial fields
    total: float = 0.0
    servicefee: float = 0.0
    tax: float = 0.0
    shipping_fee: float = 0.0

    # Status and tracking
    status: Optional[str] = None
    tracking_number: Optional[str] = None
    label: Optional[str] = None
    label_url: Optional[str] = None

    bundle_id: Optional[str] = Field(None, alias="bundleId")
    created_at: Optional[str] = Field(None, alias="createdAt")

    @field_validator("customer", mode="before")
    @classmethod
    def _customer(cls, v):
        # Some listings send the buyer as a bare display name
        if isinstance(v, str):
            return {"_id": v, "firstName": v}
        return v

    @field_validator("total", "servicefee", "tax", "shipping_fee", mode="before")
    @classmethod
    def _money_fields(cls, v):
        return _money(v)

    @property
    def customer_id(self) -> str:
        return self.customer.id if self.customer else ""

    @property
    def is_giveaway(self) -> bool:
        return self.giveaway is not None or (self.ordertype or "").lower() == "giveaway"

    @property
    def is_bundled(self) -> bool:
        return bool(self.bundle_id and self.bundle_id.strip())


# ============================================================================
# Computed models
# ============================================================================

class ApiModel(BaseModel):
    """Response models serialized with the console's camelCase wire names"""
    model_config = ConfigDict(populate_by_name=True)


class Bundle(ApiModel):
    """Orders of one customer shipped together under one label"""
    id: str
    customer_id: str = Field(..., alias="customerId")
    customer_name: str = Field(..., alias="customerName")
    order_ids: List[str] = Field(..., alias="orderIds")
    count: int
    weight: Optional[str] = None
    dimensions: Optional[str] = None
    total_value: float = Field(..., alias="totalValue")
    status: str = OrderStatus.PROCESSING.value
    created_at: Optional[str] = Field(None, alias="createdAt")


class ShipmentMetrics(ApiModel):
    """Seller shipping KPIs; money fields are 2-decimal strings"""
    total_sold: str = Field(..., alias="totalSold")
    total_earned: str = Field(..., alias="totalEarned")
    total_shipping_spend: str = Field(..., alias="totalShippingSpend")
    total_coupon_spend: str = Field("0.00", alias="totalCouponSpend")
    items_sold: int = Field(..., alias="itemsSold")
    total_delivered: int = Field(..., alias="totalDelivered")
    pending_delivery: int = Field(..., alias="pendingDelivery")


class Parcel(BaseModel):
    """Aggregated physical parcel for a label purchase"""
    weight_oz: float
    length: float
    width: float
    height: float

    @property
    def weight(self) -> str:
        return _fmt(self.weight_oz)

    @property
    def dimensions(self) -> str:
        return f"{_fmt(self.length)}x{_fmt(self.width)}x{_fmt(self.height)}"


def _fmt(value: float) -> str:
    """12.0 -> '12', 6.5 -> '6.5'"""
    return f"{value:g}" if value == int(value) else f"{round(value, 4)}"


class UpdateResult(ApiModel):
    """Outcome of one per-order upstream mutation"""
    order_id: str = Field(..., alias="orderId")
    success: bool
    error: Optional[str] = None
    data: Optional[Any] = None


# ============================================================================
# Request Models
# ============================================================================

class BundleCreateRequest(ApiModel):
    """Assign one bundle to the selected orders"""
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1, description="Orders to bundle")
    user_id: Optional[str] = Field(None, alias="userId", description="Owner of the orders")

    @field_validator("order_ids")
    @classmethod
    def _non_empty_ids(cls, v):
        if any(not order_id or not order_id.strip() for order_id in v):
            raise ValueError("Order ID cannot be empty")
        return v


class BundleLabelPurchaseRequest(ApiModel):
    """Buy one label for a bundle of orders"""
    order_ids: List[str] = Field(..., alias="orderIds", min_length=1)
    service: str = Field("Ground Advantage", min_length=1, description="Service level")
    rate_id: str = Field(..., min_length=1, description="Rate id from a shipping estimate")

    @field_validator("order_ids")
    @classmethod
    def _non_empty_ids(cls, v):
        if any(not order_id or not order_id.strip() for order_id in v):
            raise ValueError("Order ID cannot be empty")
        return v


class ShippingEstimateRequest(ApiModel):
    """Rate estimate for a parcel"""
    weight: str
    unit: str = "oz"
    product: str
    update: bool = True
    owner: str
    customer: str
    length: float
    width: float
    height: float

    @field_validator("weight", mode="before")
    @classmethod
    def _weight(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class LabelPurchaseRequest(ApiModel):
    """Buy a label for a single order (or a bundle id with isBundle)"""
    rate_id: str = Field(..., min_length=1)
    order: Union[str, Dict[str, Any]]
    is_bundle: Optional[bool] = Field(None, alias="isBundle")
    shipping_fee: float
    servicelevel: str = Field(..., min_length=1)
    carrier: Optional[str] = None
    delivery_time: Optional[str] = Field(None, alias="deliveryTime")

    @field_validator("shipping_fee", mode="before")
    @classmethod
    def _fee(cls, v):
        if isinstance(v, str):
            return float(v)
        return v


# ============================================================================
# Response Models
# ============================================================================

class ShippingEstimate(ApiModel):
    """Normalized rate estimate; upstream fields are kept alongside"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    carrier: str
    service: str
    price: str
    delivery_time: str = Field(..., alias="deliveryTime")
    estimated_days: int = Field(3, alias="estimatedDays")
    object_id: str = Field(..., alias="objectId", min_length=1)


class BundleCreateResponse(ApiModel):
    success: bool
    message: str
    data: Optional[Any] = None


class UnbundleData(ApiModel):
    bundle_id: str = Field(..., alias="bundleId")
    orders_unbundled: int = Field(0, alias="ordersUnbundled")
    orders_failed: int = Field(0, alias="ordersFailed")
    results: List[UpdateResult] = []


class UnbundleResponse(ApiModel):
    success: bool
    message: str
    data: UnbundleData


class BundleStatusResponse(ApiModel):
    bundle_id: str = Field(..., alias="bundleId")
    status: str
    order_ids: List[str] = Field(..., alias="orderIds")


class LabelPurchaseData(BaseModel):
    tracking_number: str
    label_url: Optional[str] = None
    carrier: str
    service: str
    cost: str
    delivery_time: str
    purchased_at: str


class LabelPurchaseResponse(BaseModel):
    success: bool
    message: str
    data: Optional[LabelPurchaseData] = None
    error: Optional[str] = None


class BundleLabelPurchaseData(ApiModel):
    tracking_number: str
    label_url: Optional[str] = None
    cost: float
    carrier: str
    service: str
    affected_orders: List[str]
    update_results: List[UpdateResult]
    aggregated_weight: Optional[str] = None
    aggregated_dimensions: Optional[str] = None


class BundleLabelPurchaseResponse(ApiModel):
    """Bundle label outcome; status_code is the HTTP status, not serialized"""
    success: bool
    message: str
    data: Optional[BundleLabelPurchaseData] = None
    error: Optional[str] = None
    status_code: int = Field(200, exclude=True)
