"""
Icona Client Component Tests

IconaClient against an httpx mock transport: URLs, headers, retries and
error mapping.

Usage:
    pytest tests/component/shipping_service/test_icona_client.py -v
"""
import json

import httpx
import pytest

from core.config.service_config import UpstreamConfig
from microservices.shipping_service.clients import IconaClient, parse_orders
from microservices.shipping_service.protocols import (
    OrderNotFoundError,
    UpstreamDataError,
    UpstreamError,
)

pytestmark = pytest.mark.component

API_BASE = "https://icona.test/api/"


def make_client(handler, read_retries=3):
    config = UpstreamConfig(api_base=API_BASE, timeout=2, read_retries=read_retries)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IconaClient(config=config, http_client=http_client)


class TestParseOrders:

    def test_accepts_upstream_shapes(self):
        assert [o.id for o in parse_orders({"orders": [{"_id": "o1"}]})] == ["o1"]
        assert [o.id for o in parse_orders({"data": {"orders": [{"_id": "o2"}]}})] == ["o2"]
        assert [o.id for o in parse_orders([{"_id": "o3"}])] == ["o3"]
        assert parse_orders({}) == []

    def test_drops_malformed_records(self, caplog):
        orders = parse_orders({"orders": [{"_id": "o1"}, {"status": "processing"}, "junk"]})

        assert [o.id for o in orders] == ["o1"]
        assert "Dropping malformed upstream order" in caplog.text

    def test_rejects_non_list(self):
        with pytest.raises(UpstreamDataError):
            parse_orders({"orders": "nope"})


@pytest.mark.asyncio
class TestIconaClient:

    async def test_list_orders_forwards_query_and_token(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"orders": [{"_id": "o1", "status": "processing"}]})

        async with make_client(handler) as client:
            orders = await client.list_orders({"userId": "u1"}, access_token="tok")

        assert seen["url"] == "https://icona.test/api/orders?userId=u1"
        assert seen["auth"] == "Bearer tok"
        assert orders[0].status == "processing"

    async def test_no_token_no_authorization_header(self):
        def handler(request: httpx.Request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"orders": []})

        async with make_client(handler) as client:
            assert await client.list_orders({"userId": "u1"}) == []

    async def test_non_2xx_raises_with_status(self):
        def handler(request: httpx.Request):
            return httpx.Response(403, text="forbidden")

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.list_orders({"userId": "u1"})

        assert exc_info.value.status_code == 403
        assert exc_info.value.details == "forbidden"

    async def test_get_order_unwraps_data(self):
        def handler(request: httpx.Request):
            assert request.url.path == "/api/orders/o1"
            return httpx.Response(200, json={"success": True, "data": {"_id": "o1", "bundleId": "b1"}})

        async with make_client(handler) as client:
            order = await client.get_order("o1")

        assert order.bundle_id == "b1"

    async def test_get_order_not_found(self):
        async with make_client(lambda request: httpx.Response(404, json={})) as client:
            with pytest.raises(OrderNotFoundError):
                await client.get_order("o404")

    async def test_get_order_malformed(self):
        async with make_client(lambda request: httpx.Response(200, json={"status": "x"})) as client:
            with pytest.raises(UpstreamDataError):
                await client.get_order("o1")

    async def test_invalid_json(self):
        async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(UpstreamDataError):
                await client.list_orders_raw({})

    async def test_reads_are_retried_on_transport_errors(self):
        attempts = []

        def handler(request: httpx.Request):
            attempts.append(request)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"orders": []})

        async with make_client(handler) as client:
            await client.list_orders({"userId": "u1"})

        assert len(attempts) == 2

    async def test_reads_give_up_after_retries(self):
        attempts = []

        def handler(request: httpx.Request):
            attempts.append(request)
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler, read_retries=2) as client:
            with pytest.raises(UpstreamError):
                await client.list_orders({"userId": "u1"})

        assert len(attempts) == 2

    async def test_mutations_are_not_retried(self):
        attempts = []

        def handler(request: httpx.Request):
            attempts.append(request)
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError):
                await client.purchase_label({"rate_id": "r1"})

        assert len(attempts) == 1

    async def test_update_order_methods(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"_id": "o1"})

        async with make_client(handler) as client:
            await client.update_order("o1", {"bundleId": None}, method="PUT")
            await client.update_order("o1", {"status": "ready_to_ship"})

        assert seen == [
            ("PUT", "/api/orders/o1", {"bundleId": None}),
            ("PATCH", "/api/orders/o1", {"status": "ready_to_ship"}),
        ]

    async def test_assign_bundle(self):
        def handler(request: httpx.Request):
            assert request.method == "POST"
            assert request.url.path == "/api/orders/bundle/orders"
            assert json.loads(request.content) == {"orderIds": ["o1", "o2"]}
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            assert await client.assign_bundle(["o1", "o2"]) == {"success": True}

    async def test_estimate_rates_sends_body_on_get(self):
        def handler(request: httpx.Request):
            assert request.method == "GET"
            assert json.loads(request.content)["weight"] == "8"
            return httpx.Response(200, json=[{"objectId": "rate_1"}])

        async with make_client(handler) as client:
            assert await client.estimate_rates({"weight": "8"}) == [{"objectId": "rate_1"}]

    async def test_purchase_label_requires_object(self):
        async with make_client(lambda request: httpx.Response(200, json=["x"])) as client:
            with pytest.raises(UpstreamDataError):
                await client.purchase_label({"rate_id": "r1"})

    async def test_find_order_raw(self):
        def handler(request: httpx.Request):
            assert request.url.params["_id"] == "o1"
            return httpx.Response(200, json={"orders": [{"_id": "o1", "total": 5}]})

        async with make_client(handler) as client:
            assert await client.find_order_raw("o1") == {"_id": "o1", "total": 5}

    async def test_health_check_reachable(self):
        async with make_client(lambda request: httpx.Response(200, json={"ok": True})) as client:
            assert await client.health_check() is True

    async def test_health_check_server_error(self):
        async with make_client(lambda request: httpx.Response(503, text="down")) as client:
            assert await client.health_check() is False

    async def test_health_check_unreachable(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler, read_retries=1) as client:
            assert await client.health_check() is False
