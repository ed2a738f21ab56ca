"""
Shipping Service Clients Module

HTTP clients for the upstream marketplace API
"""

from .icona_client import IconaClient, parse_orders

__all__ = [
    "IconaClient",
    "parse_orders",
]
