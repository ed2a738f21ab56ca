"""
Shipping Service Routes Registry
Defines all API routes served by the shipping console backend
"""

from typing import List, Dict, Any

SERVICE_ROUTES = [
    {
        "path": "/health",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": False,
        "description": "Service health check"
    },
    {
        "path": "/health/detailed",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": False,
        "description": "Health check including upstream reachability"
    },
    {
        "path": "/api/shipping/info",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": False,
        "description": "Service information"
    },
    # Order proxy
    {
        "path": "/api/orders",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": True,
        "description": "List orders"
    },
    {
        "path": "/api/orders/{order_id}",
        "methods": ["GET", "PATCH", "PUT"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Get/update order"
    },
    # Bundles
    {
        "path": "/api/bundles",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": True,
        "description": "List bundles"
    },
    {
        "path": "/api/bundles/suggestions",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Suggested bundles by customer"
    },
    {
        "path": "/api/bundles/{bundle_id}/status",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Bundle status"
    },
    {
        "path": "/api/bundles/{bundle_id}",
        "methods": ["DELETE"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Unbundle orders"
    },
    {
        "path": "/api/orders/bundle/orders",
        "methods": ["POST"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Create bundle"
    },
    # Shipping
    {
        "path": "/api/shipping/metrics",
        "methods": ["GET"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Shipment metrics"
    },
    {
        "path": "/api/shipping/profiles/estimate/rates",
        "methods": ["POST"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Shipping rate estimates"
    },
    {
        "path": "/api/shipping/profiles/buy/label",
        "methods": ["POST"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Buy label for one order"
    },
    {
        "path": "/api/shipping/labels/bundle",
        "methods": ["POST"],
        "auth_required": False,
        "forwards_token": True,
        "description": "Buy one label for a bundle"
    },
]


def get_routes_summary() -> Dict[str, Any]:
    """Compact route metadata for the info endpoint"""
    groups: Dict[str, List[str]] = {"health": [], "orders": [], "bundles": [], "shipping": []}

    for route in SERVICE_ROUTES:
        path = route["path"]
        if "health" in path or path.endswith("/info"):
            groups["health"].append(path)
        elif "/bundle" in path:
            groups["bundles"].append(path)
        elif path.startswith("/api/orders"):
            groups["orders"].append(path)
        else:
            groups["shipping"].append(path)

    return {
        "route_count": len(SERVICE_ROUTES),
        "base_path": "/api",
        "health": groups["health"],
        "orders": len(groups["orders"]),
        "bundles": len(groups["bundles"]),
        "shipping": len(groups["shipping"]),
        "public_count": sum(1 for r in SERVICE_ROUTES if not r["auth_required"]),
        "protected_count": sum(1 for r in SERVICE_ROUTES if r["auth_required"]),
        "token_forwarding_count": sum(1 for r in SERVICE_ROUTES if r["forwards_token"]),
    }


SERVICE_METADATA = {
    "service_name": "shipping_service",
    "version": "1.0.0",
    "tags": ["shipping", "bundling", "live-shopping"],
    "capabilities": [
        "order_bundling",
        "bundle_status",
        "shipment_metrics",
        "rate_estimates",
        "label_purchase",
        "bundle_label_purchase"
    ]
}
