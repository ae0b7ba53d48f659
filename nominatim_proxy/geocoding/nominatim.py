"""
Nominatim Module
--------------
Performs the actual reverse geocoding call against the configured Nominatim instance.
No caching, pacing or retrying happens here; the resolver takes care of that.
"""
import logging

import requests
from pydantic import ValidationError

from nominatim_proxy.config import (
    DEFAULT_REQUEST_TIMEOUT,
    PARAM_ADDRESS_DETAILS,
    PARAM_FORMAT,
    PARAM_LAYER,
    PARAM_ZOOM,
)
from nominatim_proxy.exceptions import UpstreamError
from nominatim_proxy.models.address import Address, NominatimResponse

# Get logger
logger = logging.getLogger(__name__)


class NominatimClient:

    def __init__(self, base_url, user_agent, email, timeout=DEFAULT_REQUEST_TIMEOUT):
        self.reverse_url = f"{base_url.rstrip('/')}/reverse"
        self.user_agent = user_agent
        self.email = email
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings):
        return cls(
            base_url=settings.nominatim_url,
            user_agent=settings.user_agent,
            email=settings.email,
            timeout=settings.request_timeout,
        )

    def build_params(self, latitude, longitude):
        return {
            "lat": latitude,
            "lon": longitude,
            "format": PARAM_FORMAT,
            "layer": PARAM_LAYER,
            "addressdetails": PARAM_ADDRESS_DETAILS,
            "zoom": PARAM_ZOOM,
            "email": self.email,
        }

    def fetch_address(self, latitude: float, longitude: float, language: str) -> Address:
        """
        Reverse geocode a single coordinate.

        Raises UpstreamError for transport errors, non-200 answers and
        bodies that cannot be decoded.
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Language": language,
        }

        try:
            response = requests.get(
                self.reverse_url,
                params=self.build_params(latitude, longitude),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error for coordinates ({latitude}, {longitude}): {e}")
            raise UpstreamError(f"Could not reach geocoding service: {e}") from e

        if response.status_code != 200:
            logger.error(f"API returned HTTP error {response.status_code}: {response.text}")
            raise UpstreamError(
                f"API returned HTTP error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return NominatimResponse.model_validate_json(response.text).address
        except ValidationError as e:
            logger.error(f"Unexpected response format for coordinates ({latitude}, {longitude}): {response.text}")
            raise UpstreamError(
                "Unexpected response format from geocoding service",
                status_code=response.status_code,
                body=response.text,
            ) from e
