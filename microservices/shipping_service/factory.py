"""
Shipping Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_shipping_service
    service = create_shipping_service(config)
"""
from typing import Optional

from core.config import ShippingConfig, get_settings

from .shipping_service import ShippingService


def create_shipping_service(
    config: Optional[ShippingConfig] = None,
    icona_client=None,
) -> ShippingService:
    """
    Create ShippingService with real dependencies.

    Use this in production, NOT in tests.

    Args:
        config: Shipping configuration (loaded from env when omitted)
        icona_client: Pre-built upstream client

    Returns:
        Configured ShippingService instance
    """
    config = config or get_settings()

    if icona_client is None:
        # Import real client here (not at module level)
        from .clients.icona_client import IconaClient
        icona_client = IconaClient(config=config.upstream)

    return ShippingService(
        icona_client=icona_client,
        fanout_concurrency=config.upstream.fanout_concurrency,
    )
