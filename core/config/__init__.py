#!/usr/bin/env python3
"""Modular configuration system for the seller console services

Configuration hierarchy:
- service_config: Upstream Icona API endpoint and call policy
- logging_config: Logging configuration
- shipping_config: Shipping service settings combining the above
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .service_config import UpstreamConfig
from .shipping_config import ShippingConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)


def get_settings() -> ShippingConfig:
    """Build settings from the current environment"""
    return ShippingConfig.from_env()


__all__ = [
    'ShippingConfig',
    'get_settings',
    'LoggingConfig',
    'UpstreamConfig',
]
