"""Common test fixtures for the Nominatim proxy tests."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from nominatim_proxy.api.app import app, get_reverse_geocoder
from nominatim_proxy.config import Settings, get_settings
from nominatim_proxy.db.database import init_cache
from nominatim_proxy.geocoding.rate_limiter import RateLimiter
from nominatim_proxy.geocoding.resolver import ReverseGeocoder
from nominatim_proxy.models.address import Address

TEST_API_KEY = "test-api-key"


@pytest.fixture
def settings(tmp_path):
    """Settings as the test environment would provide them."""
    return Settings(
        api_key=TEST_API_KEY,
        nominatim_url="https://example.com",
        user_agent="nominatim-proxy-test",
        email="nominatim@example.com",
        cache_db_path=str(tmp_path / "data" / "geodata.sqlite"),
    )


@pytest.fixture
def cache(tmp_path):
    """Fresh SQLite cache per test."""
    return init_cache(str(tmp_path / "cache.sqlite"))


@pytest.fixture
def empire_state_address():
    return Address(
        road="5th Avenue",
        city="New York",
        postcode="10118",
        country="United States",
        country_code="us",
    )


@pytest.fixture
def fetch_address(empire_state_address):
    """Stand-in for NominatimClient.fetch_address."""
    return MagicMock(return_value=empire_state_address)


@pytest.fixture
def rate_limiter():
    return RateLimiter()


@pytest.fixture
def geocoder(cache, rate_limiter, fetch_address):
    return ReverseGeocoder(
        cache=cache,
        rate_limiter=rate_limiter,
        fetch_address=fetch_address,
        min_interval_ms=0,
        max_wait_ms=1000,
    )


@pytest.fixture
def dependency_overrides(settings, geocoder):
    """Settings and resolver replaced by test doubles."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_reverse_geocoder] = lambda: geocoder
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def client(dependency_overrides):
    return TestClient(app)
