#!/usr/bin/env python3
"""
Core Module for the seller console services

Shared infrastructure for the shipping service.

COMPONENTS:
    - config/: Dataclass configuration loaded from the environment
    - logger.py: Service logging setup
    - service_client_base.py: httpx base client for upstream APIs

USAGE:
    from core.config import get_settings
    from core.logger import setup_service_logger

    settings = get_settings()
    logger = setup_service_logger(settings.service_name, config=settings.logging)
"""

__version__ = "1.0.0"
