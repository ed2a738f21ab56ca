#!/usr/bin/env python3
"""
Service logger setup

One call per service process; modules keep using logging.getLogger(__name__).
"""
import logging
import sys
from typing import Optional

from core.config.logging_config import LoggingConfig


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None
) -> logging.Logger:
    """
    Configure root logging for a service and return the service logger

    Args:
        service_name: Logger name, usually the service directory name
        level: Overrides config.log_level when given
        config: Logging configuration (loaded from env when omitted)

    Returns:
        Logger named after the service
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Re-running setup (reload, tests) must not stack handlers
    for handler in list(root.handlers):
        if getattr(handler, "_service_handler", False):
            root.removeHandler(handler)

    handlers = []
    if config.enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._service_handler = True
        root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger(service_name)
