#!/usr/bin/env python3
"""Shipping service main configuration

Combines the sub-configs into the single value handed to the service factory.
"""
import os
from dataclasses import dataclass, field

from .logging_config import LoggingConfig
from .service_config import UpstreamConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ShippingConfig:
    """Main shipping console configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Service settings
    service_name: str = "shipping_service"
    service_host: str = "0.0.0.0"
    service_port: int = 8260

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)

    @classmethod
    def from_env(cls) -> 'ShippingConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),

            service_name=os.getenv("SERVICE_NAME", "shipping_service"),
            service_host=os.getenv("SERVICE_HOST") or os.getenv("HOST", "0.0.0.0"),
            service_port=_int(os.getenv("SERVICE_PORT") or os.getenv("PORT", "8260"), 8260),

            logging=LoggingConfig.from_env(),
            upstream=UpstreamConfig.from_env(),
        )
