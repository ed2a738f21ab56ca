"""
Shipping Microservice

Responsibilities:
- Order proxy to the upstream Icona API
- Bundle creation, listing, status and unbundling
- Seller shipment metrics
- Rate estimates and label purchase, single order and bundle
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone

from core.config import get_settings
from core.logger import setup_service_logger

from .factory import create_shipping_service
from .shipping_service import ShippingService
from .protocols import (
    ShippingServiceError,
    ShippingValidationError,
    BundleNotFoundError,
    OrderNotFoundError,
    UpstreamError,
)
from .models import (
    Bundle, BundleCreateRequest, BundleCreateResponse, BundleLabelPurchaseRequest,
    BundleStatusResponse, LabelPurchaseRequest, LabelPurchaseResponse,
    ShipmentMetrics, ShippingEstimate, ShippingEstimateRequest,
)
from .routes_registry import SERVICE_METADATA, get_routes_summary

# Initialize configuration
config = get_settings()

# Setup loggers (use actual service name)
logger = setup_service_logger(config.service_name, config=config.logging)

# Order listing filters forwarded upstream as-is
ORDER_FILTERS = ("userId", "status", "page", "limit", "invoice", "customer", "customerId", "day", "tokshow")


class ShippingMicroservice:
    """Shipping microservice core class"""

    def __init__(self):
        self.shipping_service: Optional[ShippingService] = None

    async def initialize(self):
        """Initialize the microservice"""
        self.shipping_service = create_shipping_service(config)
        logger.info(f"Shipping microservice initialized, upstream: {config.upstream.api_base}")

    async def shutdown(self):
        """Shutdown the microservice"""
        if self.shipping_service:
            await self.shipping_service.icona_client.close()
        logger.info("Shipping microservice shutdown completed")


# Global microservice instance
shipping_microservice = ShippingMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    await shipping_microservice.initialize()
    yield
    await shipping_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Shipping Service",
    description="Shipment bundling, metrics and label purchase for live-shopping sellers",
    version="1.0.0",
    lifespan=lifespan
)


# Dependency injection
def get_shipping_service() -> ShippingService:
    """Get shipping service instance"""
    if not shipping_microservice.shipping_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Shipping service not initialized"
        )
    return shipping_microservice.shipping_service


def get_access_token(x_access_token: Optional[str] = Header(None, alias="X-Access-Token")) -> Optional[str]:
    """Caller's upstream token, forwarded as a bearer token"""
    return x_access_token or None


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "port": config.service_port,
        "version": SERVICE_METADATA["version"],
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health/detailed")
async def detailed_health_check(
    shipping_service: ShippingService = Depends(get_shipping_service)
):
    """Detailed health check with upstream connectivity"""
    health = await shipping_service.health_check()
    return JSONResponse(
        status_code=status.HTTP_200_OK if health["upstream_connected"] else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"service": config.service_name, **health}
    )


@app.get("/api/shipping/info")
async def get_service_info():
    """Get shipping service information"""
    return {
        "service": SERVICE_METADATA["service_name"],
        "version": SERVICE_METADATA["version"],
        "port": config.service_port,
        "status": "operational",
        "capabilities": SERVICE_METADATA["capabilities"],
        "routes": get_routes_summary(),
        "upstream": config.upstream.api_base,
    }


# Order proxy endpoints

@app.get("/api/orders")
async def list_orders(
    request: Request,
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """List orders with the upstream filters"""
    params = {
        key: request.query_params[key]
        for key in ORDER_FILTERS
        if request.query_params.get(key)
    }
    if params.get("status") == "all":
        del params["status"]
    return await shipping_service.list_orders(params, access_token=access_token)


@app.get("/api/orders/{order_id}")
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Get order details"""
    order = await shipping_service.get_order(order_id, access_token=access_token)
    return {"success": True, "data": order}


@app.patch("/api/orders/{order_id}")
async def patch_order(
    order_id: str = Path(..., description="Order ID"),
    changes: Dict[str, Any] = Body(...),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Partially update an order"""
    return await shipping_service.update_order(order_id, changes, method="PATCH", access_token=access_token)


@app.put("/api/orders/{order_id}")
async def put_order(
    order_id: str = Path(..., description="Order ID"),
    changes: Dict[str, Any] = Body(...),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Update an order"""
    return await shipping_service.update_order(order_id, changes, method="PUT", access_token=access_token)


# Bundle endpoints

@app.get("/api/bundles", response_model=List[Bundle])
async def list_bundles(
    user_id: Optional[str] = Query(None, alias="userId"),
    customer: Optional[str] = Query(None),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Bundles formed by orders sharing a bundle id"""
    return await shipping_service.list_bundles(user_id, customer, access_token=access_token)


@app.get("/api/bundles/suggestions", response_model=List[Bundle])
async def suggest_bundles(
    user_id: Optional[str] = Query(None, alias="userId"),
    customer: Optional[str] = Query(None),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Customers with several processing orders that could ship together"""
    return await shipping_service.suggest_bundles(user_id, customer, access_token=access_token)


@app.get("/api/bundles/{bundle_id}/status", response_model=BundleStatusResponse)
async def get_bundle_status(
    bundle_id: str = Path(..., description="Bundle ID"),
    user_id: Optional[str] = Query(None, alias="userId"),
    customer: Optional[str] = Query(None),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Bundle status merged from its member orders"""
    return await shipping_service.get_bundle_status(bundle_id, user_id, customer, access_token=access_token)


@app.delete("/api/bundles/{bundle_id}")
async def unbundle(
    bundle_id: str = Path(..., description="Bundle ID"),
    user_id: Optional[str] = Query(None, alias="userId"),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Dissolve a bundle; per-order results are always reported"""
    result = await shipping_service.unbundle(bundle_id, user_id, access_token=access_token)
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_dump(result)
    )


@app.post("/api/orders/bundle/orders", response_model=BundleCreateResponse)
async def create_bundle(
    request: BundleCreateRequest,
    user_id: Optional[str] = Query(None, alias="userId"),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Bundle processing orders of one customer"""
    return await shipping_service.create_bundle(request, user_id=user_id, access_token=access_token)


# Shipping endpoints

@app.get("/api/shipping/metrics", response_model=ShipmentMetrics)
async def get_shipment_metrics(
    user_id: Optional[str] = Query(None, alias="userId"),
    customer: Optional[str] = Query(None),
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Seller shipping KPIs"""
    return await shipping_service.get_shipment_metrics(user_id, customer, access_token=access_token)


@app.post("/api/shipping/profiles/estimate/rates", response_model=List[ShippingEstimate])
async def estimate_rates(
    request: ShippingEstimateRequest,
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Purchasable rate estimates for a parcel"""
    return await shipping_service.estimate_rates(request, access_token=access_token)


@app.post("/api/shipping/profiles/buy/label", response_model=LabelPurchaseResponse)
async def purchase_label(
    request: LabelPurchaseRequest,
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """Buy a label for one order"""
    return await shipping_service.purchase_label(request, access_token=access_token)


@app.post("/api/shipping/labels/bundle")
async def purchase_bundle_label(
    request: BundleLabelPurchaseRequest,
    shipping_service: ShippingService = Depends(get_shipping_service),
    access_token: Optional[str] = Depends(get_access_token)
):
    """One label for a bundle; 200 all updated, 207 some, 500 none"""
    result = await shipping_service.purchase_bundle_label(request, access_token=access_token)
    return JSONResponse(status_code=result.status_code, content=_dump(result))


# Error handlers

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Invalid request data",
            "details": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
                for error in exc.errors()
            ]
        }
    )


@app.exception_handler(ShippingValidationError)
async def validation_error_handler(request: Request, exc: ShippingValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": str(exc)}
    )


@app.exception_handler(BundleNotFoundError)
@app.exception_handler(OrderNotFoundError)
async def not_found_error_handler(request: Request, exc: ShippingServiceError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "error": str(exc)}
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 500
    logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc} ({status_code})")
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc), "details": exc.details}
    )


@app.exception_handler(ShippingServiceError)
async def service_error_handler(request: Request, exc: ShippingServiceError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc)}
    )


if __name__ == "__main__":
    uvicorn.run(
        "microservices.shipping_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.logging.log_level.lower()
    )
