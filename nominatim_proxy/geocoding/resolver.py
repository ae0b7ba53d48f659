"""
Resolver Module
-------------
Turns a coordinate or geohash lookup into an address, serving from the cache when possible
and otherwise querying Nominatim through the global rate limiter.

Upstream is always queried with the center of the geohash cell, never with the
raw input coordinate, so every coordinate inside one cell shares one cache entry.
"""
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from nominatim_proxy.exceptions import InvalidInputError, RateLimitedError
from nominatim_proxy.geocoding import geohash as geohash_codec
from nominatim_proxy.models.address import ReverseGeocodeResponse

# Get logger
logger = logging.getLogger(__name__)

GEOHASH_LENGTH = geohash_codec.DEFAULT_PRECISION

# The all-zero cell around (0, 0)
NULL_ISLAND_GEOHASH = "s0000000"


class ReverseGeocoder:

    def __init__(self, cache, rate_limiter, fetch_address, min_interval_ms, max_wait_ms):
        """
        Args:
            cache: LocationCache used for lookups and insert-if-absent writes
            rate_limiter: RateLimiter shared by every request of the process
            fetch_address: callable (latitude, longitude, language) -> Address
            min_interval_ms: minimum spacing between two upstream calls
            max_wait_ms: how long a request may queue for an upstream slot
        """
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.fetch_address = fetch_address
        self.min_interval_ms = min_interval_ms
        self.max_wait_ms = max_wait_ms

    async def resolve(self, language: str, geohash: Optional[str] = None,
                      latitude: Optional[float] = None, longitude: Optional[float] = None) -> ReverseGeocodeResponse:
        """Resolve either a geohash or a latitude/longitude pair, not both."""
        has_coordinates = latitude is not None and longitude is not None

        if geohash is not None and not has_coordinates:
            return await self.resolve_geohash(geohash, language)
        if geohash is None and has_coordinates:
            return await self.resolve_coordinates(latitude, longitude, language)

        raise InvalidInputError("Either a geohash or a latitude/longitude pair is required.")

    async def resolve_coordinates(self, latitude: float, longitude: float, language: str) -> ReverseGeocodeResponse:
        # Always go through the geohash for cache consistency
        return await self.resolve_geohash(geohash_codec.encode(latitude, longitude), language)

    async def resolve_geohash(self, geohash: str, language: str) -> ReverseGeocodeResponse:
        if len(geohash) != GEOHASH_LENGTH:
            raise InvalidInputError(f"Parameter 'geohash' must be {GEOHASH_LENGTH} characters.")

        geohash = geohash.lower()

        if geohash == NULL_ISLAND_GEOHASH:
            raise InvalidInputError("Parameter 'geohash' is invalid. You can't query for Null Island.")

        # SQLite and requests block, keep them off the event loop
        cached_address = await run_in_threadpool(self.cache.find_address, geohash, language)
        if cached_address is not None:
            logger.info(f"Cache hit for {geohash} ({language})")
            return ReverseGeocodeResponse(geohash=geohash, address=cached_address)

        # Make sure the geohash is decodable before asking the rate limiter for a slot
        center = geohash_codec.decode_to_center(geohash)

        if not await self.rate_limiter.await_permit(self.min_interval_ms, self.max_wait_ms):
            logger.warning("Rate limit exceeded.")
            raise RateLimitedError("Too many requests. Please try again later.")

        logger.info(f"Queried API for {geohash} ({center.latitude}|{center.longitude}) ({language})")

        address = await run_in_threadpool(self.fetch_address, center.latitude, center.longitude, language)

        # Insert-if-absent: a concurrent writer may have won, we still answer with what we fetched
        await run_in_threadpool(self.cache.save_address, geohash, language, address)

        return ReverseGeocodeResponse(geohash=geohash, address=address)
