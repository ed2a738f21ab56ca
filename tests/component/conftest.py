"""
Component Test Layer Configuration

Structure:
    tests/component/
    └── shipping_service/
        ├── mocks.py              In-memory upstream client
        ├── test_shipping_service.py
        ├── test_shipping_api.py
        └── test_icona_client.py

Usage:
    pytest tests/component -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.component.shipping_service.mocks import MockIconaClient


@pytest.fixture
def mock_icona():
    """Create a fresh MockIconaClient"""
    return MockIconaClient()
