"""
Shipping Models Unit Tests

Upstream parse boundary and request contracts.

Usage:
    pytest tests/unit/shipping_service/test_models.py -v
"""
import pytest
from pydantic import ValidationError

from microservices.shipping_service.models import (
    BundleCreateRequest,
    BundleLabelPurchaseRequest,
    BundleLabelPurchaseResponse,
    LabelPurchaseRequest,
    Order,
    ShippingEstimateRequest,
    UnbundleData,
    UpdateResult,
)

pytestmark = pytest.mark.unit


class TestOrderParsing:

    def test_upstream_record(self):
        o = Order.model_validate({
            "_id": "o1",
            "customer": {
                "_id": "c1",
                "firstName": "Jane",
                "address": {"addrress1": "12 Market St", "zipcode": 78701},
            },
            "bundleId": "b1",
            "createdAt": "2024-05-01T10:00:00Z",
            "total": "19.99",
            "unknownField": {"ignored": True},
        })
        assert o.id == "o1"
        assert o.customer_id == "c1"
        assert o.customer.address.address1 == "12 Market St"
        assert o.customer.address.zipcode == "78701"
        assert o.bundle_id == "b1"
        assert o.is_bundled
        assert o.total == 19.99

    def test_missing_id_fails_validation(self):
        with pytest.raises(ValidationError):
            Order.model_validate({"status": "processing"})
        with pytest.raises(ValidationError):
            Order.model_validate({"_id": ""})

    def test_customer_as_display_name(self):
        o = Order.model_validate({"_id": "o1", "customer": "Jane"})
        assert o.customer_id == "Jane"
        assert o.customer.full_name == "Jane"

    def test_customer_without_name(self):
        o = Order.model_validate({"_id": "o1", "customer": {"_id": "c1"}})
        assert o.customer.full_name == "Unknown Customer"

    def test_giveaway_flag(self):
        assert Order.model_validate({"_id": "o1", "ordertype": "Giveaway"}).is_giveaway
        assert Order.model_validate({"_id": "o2", "giveaway": {"name": "Box"}}).is_giveaway
        assert not Order.model_validate({"_id": "o3", "ordertype": "auction"}).is_giveaway

    def test_address_serializes_upstream_spelling(self):
        o = Order.model_validate({"_id": "o1", "customer": {"_id": "c1", "address": {"address1": "1 Main"}}})
        dumped = o.customer.model_dump(by_alias=True, exclude_none=True)
        assert dumped["address"]["addrress1"] == "1 Main"
        assert dumped["_id"] == "c1"


class TestRequests:

    def test_bundle_create_requires_ids(self):
        with pytest.raises(ValidationError):
            BundleCreateRequest.model_validate({"orderIds": []})
        with pytest.raises(ValidationError):
            BundleCreateRequest.model_validate({"orderIds": ["o1", " "]})
        request = BundleCreateRequest.model_validate({"orderIds": ["o1", "o2"], "userId": "u1"})
        assert request.order_ids == ["o1", "o2"]
        assert request.user_id == "u1"

    def test_bundle_label_defaults(self):
        request = BundleLabelPurchaseRequest.model_validate({"orderIds": ["o1"], "rate_id": "rate_1"})
        assert request.service == "Ground Advantage"
        with pytest.raises(ValidationError):
            BundleLabelPurchaseRequest.model_validate({"orderIds": ["o1"]})

    def test_estimate_request_defaults(self):
        request = ShippingEstimateRequest.model_validate({
            "weight": 6.5, "product": "p1", "owner": "u1", "customer": "c1",
            "length": 10, "width": 8, "height": "4",
        })
        assert request.weight == "6.5"
        assert request.unit == "oz"
        assert request.update is True
        assert request.height == 4.0

    def test_label_request_accepts_string_fee(self):
        request = LabelPurchaseRequest.model_validate({
            "rate_id": "r1", "order": "o1", "shipping_fee": "7.25", "servicelevel": "Priority",
        })
        assert request.shipping_fee == 7.25
        assert request.is_bundle is None


class TestResponses:

    def test_unbundle_wire_names(self):
        data = UnbundleData(
            bundle_id="b1",
            orders_unbundled=2,
            orders_failed=1,
            results=[UpdateResult(order_id="o2", success=False, error="HTTP 502: down")],
        )
        body = data.model_dump(by_alias=True)
        assert body["bundleId"] == "b1"
        assert body["ordersUnbundled"] == 2
        assert body["ordersFailed"] == 1
        assert body["results"][0]["orderId"] == "o2"

    def test_status_code_not_serialized(self):
        response = BundleLabelPurchaseResponse(success=False, message="m", status_code=500)
        assert "status_code" not in response.model_dump(by_alias=True)
        assert response.status_code == 500
