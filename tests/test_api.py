"""Tests for the FastAPI endpoints."""

import asyncio
import os
import time
from unittest.mock import AsyncMock, MagicMock, call, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from nominatim_proxy.api.app import app, lifespan
from nominatim_proxy.config import get_settings
from nominatim_proxy.exceptions import StorageError, UpstreamError
from nominatim_proxy.geocoding.geohash import encode
from nominatim_proxy.geocoding.resolver import ReverseGeocoder
from nominatim_proxy.models.address import Address

from conftest import TEST_API_KEY

AUTH = {"x-api-key": TEST_API_KEY}


class TestHealthEndpoint:

    def test_root_reports_name_and_uptime(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        message = response.text
        assert "Nominatim Proxy" in message
        assert "up since 0 hours" in message


class TestReverseValidation:

    def test_requires_api_key(self, client):
        response = client.get("/reverse?lat=1&lon=2&lang=en")

        assert response.status_code == 401

    def test_rejects_wrong_api_key(self, client):
        response = client.get("/reverse?lat=1&lon=2&lang=en", headers={"x-api-key": "wrong"})

        assert response.status_code == 401

    def test_rejects_missing_parameters(self, client):
        response = client.get("/reverse?lang=en", headers=AUTH)

        assert response.status_code == 400

    def test_rejects_missing_language(self, client):
        response = client.get("/reverse?lat=1&lon=2", headers=AUTH)

        assert response.status_code == 400

    def test_rejects_invalid_language(self, client):
        response = client.get("/reverse?lat=1&lon=2&lang=zz", headers=AUTH)

        assert response.status_code == 400
        assert "'zz'" in response.json()["detail"]

    def test_rejects_out_of_range_coordinates(self, client):
        response = client.get("/reverse?lat=91&lon=2&lang=en", headers=AUTH)

        assert response.status_code == 400

    def test_rejects_zero_coordinate(self, client):
        response = client.get("/reverse?lat=0&lon=13.4&lang=en", headers=AUTH)

        assert response.status_code == 400

    def test_unparseable_coordinates_count_as_missing(self, client):
        response = client.get("/reverse?lat=abc&lon=2&lang=en", headers=AUTH)

        assert response.status_code == 400
        assert "either 'geohash'" in response.json()["detail"]

    def test_rejects_short_geohash(self, client):
        response = client.get("/reverse?geohash=u33db&lang=en", headers=AUTH)

        assert response.status_code == 400

    def test_rejects_null_island(self, client, fetch_address):
        response = client.get("/reverse?geohash=s0000000&lang=de", headers=AUTH)

        assert response.status_code == 400
        fetch_address.assert_not_called()

    def test_rejects_invalid_geohash_character(self, client):
        response = client.get("/reverse?geohash=u33db2ma&lang=en", headers=AUTH)

        assert response.status_code == 400


class TestReverseLookup:

    def test_coordinates_lookup(self, client):
        response = client.get("/reverse?lat=40.7484&lon=-73.9857&lang=en", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "geohash": "dr5ru6j2",
            "address": {
                "road": "5th Avenue",
                "city": "New York",
                "postcode": "10118",
                "country": "United States",
                "country_code": "us",
            },
        }

    def test_geohash_lookup_hits_cache_of_coordinates_lookup(self, client, fetch_address):
        first = client.get("/reverse?lat=40.7484&lon=-73.9857&lang=en", headers=AUTH)
        second = client.get("/reverse?geohash=DR5RU6J2&lang=en", headers=AUTH)

        assert first.json() == second.json()
        fetch_address.assert_called_once()

    def test_requests_are_routed_through_resolve(self, client, geocoder):
        with patch.object(geocoder, "resolve", wraps=geocoder.resolve) as resolve:
            client.get("/reverse?lat=40.7484&lon=-73.9857&lang=en", headers=AUTH)
            client.get("/reverse?geohash=dr5ru6j2&lang=en", headers=AUTH)

        assert resolve.call_args_list == [
            call("en", latitude=40.7484, longitude=-73.9857),
            call("en", geohash="dr5ru6j2"),
        ]

    def test_geohash_wins_over_coordinates(self, client):
        response = client.get("/reverse?geohash=u33db2m3&lat=40.7484&lon=-73.9857&lang=de", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["geohash"] == "u33db2m3"

    def test_rate_limited_request(self, client, geocoder):
        geocoder.rate_limiter = AsyncMock()
        geocoder.rate_limiter.await_permit.return_value = False

        response = client.get("/reverse?geohash=u33db2m3&lang=de", headers=AUTH)

        assert response.status_code == 429

    def test_upstream_failure(self, client, fetch_address):
        fetch_address.side_effect = UpstreamError("API returned HTTP error: 500", status_code=500)

        response = client.get("/reverse?geohash=u33db2m3&lang=de", headers=AUTH)

        assert response.status_code == 502

    def test_storage_failure(self, client, geocoder):
        geocoder.cache = MagicMock()
        geocoder.cache.find_address.side_effect = StorageError("disk full")

        response = client.get("/reverse?geohash=u33db2m3&lang=de", headers=AUTH)

        assert response.status_code == 500


class TestLifespan:

    @pytest.mark.asyncio()
    async def test_builds_resolver_on_startup(self, settings):
        mock_app = MagicMock()

        with patch("nominatim_proxy.api.app.get_settings", return_value=settings):
            async with lifespan(mock_app):
                geocoder = mock_app.state.geocoder

        assert isinstance(geocoder, ReverseGeocoder)
        assert geocoder.min_interval_ms == settings.rate_limit_ms
        assert geocoder.max_wait_ms == settings.rate_limit_max_wait_ms
        assert os.path.exists(settings.cache_db_path)

    def test_requests_use_the_startup_resolver(self, settings):
        app.dependency_overrides[get_settings] = lambda: settings
        try:
            with patch("nominatim_proxy.api.app.get_settings", return_value=settings):
                with TestClient(app) as client:
                    response = client.get("/reverse?geohash=s0000000&lang=de", headers=AUTH)
                    geocoder = app.state.geocoder
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 400
        assert "Null Island" in response.json()["detail"]
        assert isinstance(geocoder, ReverseGeocoder)


class TestBurst:

    @pytest.mark.asyncio()
    async def test_cache_hit_is_served_during_a_burst_of_misses(self, dependency_overrides, geocoder, cache):
        """Misses queue for the upstream slot without holding up hits or overrunning their wait budget."""
        geocoder.min_interval_ms = 1000
        geocoder.max_wait_ms = 1500
        cache.save_address("u33db2m3", "de", Address(city="Berlin"))
        miss_urls = [f"/reverse?geohash={encode(10.0 + i * 0.5, 20.0 + i * 0.5)}&lang=en" for i in range(60)]

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test", headers=AUTH) as client:

            async def timed_get(url, delay=0.0):
                await asyncio.sleep(delay)
                started = time.monotonic()
                response = await client.get(url)
                return response, time.monotonic() - started

            results = await asyncio.gather(
                *[timed_get(url) for url in miss_urls],
                timed_get("/reverse?geohash=u33db2m3&lang=de", delay=0.05),
            )

        misses, (hit, hit_latency) = results[:-1], results[-1]

        assert hit.status_code == 200
        assert hit.json()["address"] == {"city": "Berlin"}
        assert hit_latency < 0.5

        assert {response.status_code for response, _ in misses} == {200, 429}
        rejected = [latency for response, latency in misses if response.status_code == 429]
        assert max(rejected) < 1.5 + 1.0
