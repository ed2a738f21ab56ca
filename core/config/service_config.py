#!/usr/bin/env python3
"""Upstream service configuration

The Icona marketplace API is the system of record for orders, products and
shipping. Every seller console service talks to it through one base URL.
"""
import os
from dataclasses import dataclass

DEFAULT_ICONA_API_BASE = "https://api.huloo.live"


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class UpstreamConfig:
    """Icona API endpoint and call policy"""

    # Base URL, trailing slash stripped so paths can be appended as-is
    api_base: str = DEFAULT_ICONA_API_BASE

    # Per-call timeout (seconds)
    timeout: float = 15.0

    # Attempts for idempotent reads; mutations are never retried
    read_retries: int = 3

    # Max in-flight upstream calls in one fan-out stage
    fanout_concurrency: int = 8

    def __post_init__(self):
        self.api_base = (self.api_base or DEFAULT_ICONA_API_BASE).rstrip("/")
        if self.fanout_concurrency < 1:
            self.fanout_concurrency = 1
        if self.read_retries < 1:
            self.read_retries = 1

    @classmethod
    def from_env(cls) -> 'UpstreamConfig':
        """Load upstream configuration from environment variables"""
        return cls(
            api_base=os.getenv("ICONA_API_BASE", DEFAULT_ICONA_API_BASE),
            timeout=_float(os.getenv("ICONA_API_TIMEOUT", "15"), 15.0),
            read_retries=_int(os.getenv("ICONA_API_RETRIES", "3"), 3),
            fanout_concurrency=_int(os.getenv("SHIPPING_FANOUT_CONCURRENCY", "8"), 8),
        )
