"""Pytest configuration and shared fixtures."""

import pytest

from parts_finder.models.config import FinderConfig
from tests.fixtures.fakes import FakeClock

MOCK_BASE_URL = "http://mock-marketplace"


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_config():
    """Configuration pointing every upstream at the in-process mock marketplace."""
    return FinderConfig(
        ebay_app_id="test-app-id",
        ebay_endpoint=f"{MOCK_BASE_URL}/services/search/FindingService/v1",
        rockauto_api_url=MOCK_BASE_URL,
        marketplace_timeout=2.0,
        batch_timeout=5.0,
        rate_limit_tokens=50,
        max_requests_per_second=100.0,
        log_level="WARNING",
    )


@pytest.fixture
def unconfigured_config(sample_config):
    """Same configuration without eBay credentials."""
    return sample_config.model_copy(update={"ebay_app_id": ""})
