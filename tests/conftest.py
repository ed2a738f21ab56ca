"""
Root conftest.py - Global configuration for all test layers.

Test Layers:
    - component/  : Component tests (mocked upstream client, FastAPI TestClient)
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")


# =============================================================================
# Test Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "component: marks tests as component tests")


# =============================================================================
# Order factories
# =============================================================================

DEFAULT_ADDRESS = {
    "name": "Jane Buyer",
    "addrress1": "12 Market St",
    "city": "Austin",
    "state": "TX",
    "zipcode": "78701",
}


def make_order_dict(
    order_id: str,
    customer_id: str = "cus_1",
    status: Optional[str] = "processing",
    bundle_id: Optional[str] = None,
    items: Optional[List[Dict[str, Any]]] = None,
    address: Optional[Dict[str, Any]] = None,
    **extra
) -> Dict[str, Any]:
    """Upstream order record as the Icona API returns it"""
    record = {
        "_id": order_id,
        "customer": {
            "_id": customer_id,
            "firstName": "Jane",
            "lastName": "Buyer",
            "address": dict(DEFAULT_ADDRESS if address is None else address),
        },
        "seller": {"_id": "sel_1", "firstName": "Sam", "userName": "samsells"},
        "status": status,
        "items": items if items is not None else [{"quantity": 1, "price": 10, "weight": "4"}],
        "total": 10,
        "createdAt": "2024-05-01T10:00:00Z",
    }
    if bundle_id is not None:
        record["bundleId"] = bundle_id
    record.update(extra)
    return record


def make_order(order_id: str, **kwargs):
    """Validated Order model"""
    from microservices.shipping_service.models import Order
    return Order.model_validate(make_order_dict(order_id, **kwargs))


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def order_dict_factory():
    return make_order_dict
