"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from workbook.types import ServiceConfig  # noqa: E402


@pytest.fixture
def service_config():
    return ServiceConfig(host="crm.example.com", api_key="test-token", timeout_ms=1000)
