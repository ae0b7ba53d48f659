from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
import logging
from contextlib import asynccontextmanager
from typing import Optional
import time

from nominatim_proxy import __version__
from nominatim_proxy.config import ACCEPTED_LANGUAGE_CODES, Settings, get_settings
from nominatim_proxy.db.database import init_cache
from nominatim_proxy.exceptions import InvalidInputError, RateLimitedError, UpstreamError
from nominatim_proxy.geocoding.nominatim import NominatimClient
from nominatim_proxy.geocoding.rate_limiter import RateLimiter
from nominatim_proxy.geocoding.resolver import ReverseGeocoder
from nominatim_proxy.models.address import ReverseGeocodeResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

START_TIME = time.time()


def create_reverse_geocoder(settings: Settings) -> ReverseGeocoder:
    """Wire the process-wide resolver: one cache, one rate limiter, one upstream client."""
    return ReverseGeocoder(
        cache=init_cache(settings.cache_db_path),
        rate_limiter=RateLimiter(),
        fetch_address=NominatimClient.from_settings(settings).fetch_address,
        min_interval_ms=settings.rate_limit_ms,
        max_wait_ms=settings.rate_limit_max_wait_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the resolver once, before the first request is served."""
    settings = get_settings()
    app.state.geocoder = create_reverse_geocoder(settings)
    logger.info(f"Nominatim Proxy {__version__} started, cache at {settings.cache_db_path}")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Nominatim Proxy",
    description="Caching, rate-limited reverse geocoding in front of Nominatim",
    version=__version__
)

# Wildcard CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def get_reverse_geocoder(request: Request) -> ReverseGeocoder:
    return request.app.state.geocoder


def _parse_float(value):
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def is_valid_coordinate_range(latitude, longitude):
    # An exact 0.0 is treated as a missing value rather than the equator/prime meridian
    return (
        -90.0 <= latitude <= 90.0
        and -180.0 <= longitude <= 180.0
        and latitude != 0.0
        and longitude != 0.0
    )


@app.get("/", response_class=PlainTextResponse)
def read_root():
    uptime_minutes = int(time.time() - START_TIME) // 60
    hours, minutes = divmod(uptime_minutes, 60)
    return f"Nominatim Proxy {__version__} (up since {hours} hours and {minutes} minutes)"


@app.get("/reverse", response_model=ReverseGeocodeResponse, response_model_exclude_none=True)
async def reverse(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    geohash: Optional[str] = None,
    lang: Optional[str] = None,
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    geocoder: ReverseGeocoder = Depends(get_reverse_geocoder)
):
    """
    Reverse geocode either a geohash or a 'lat' & 'lon' pair.

    Coordinates are converted to an 8 character geohash first and Nominatim is
    always asked for the center of that cell. A geohash wins when both forms
    are given.
    """
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Please provide a valid API key.")

    # Unsupported languages make Nominatim answer in its own locale,
    # which would mess up the cached dataset
    if lang is None or lang not in ACCEPTED_LANGUAGE_CODES:
        raise HTTPException(status_code=400, detail=f"Parameter 'lang' must be a valid value, but was '{lang}'.")

    latitude = _parse_float(lat)
    longitude = _parse_float(lon)

    try:
        if geohash is not None:
            return await geocoder.resolve(lang, geohash=geohash)

        if latitude is not None and longitude is not None:
            if not is_valid_coordinate_range(latitude, longitude):
                raise HTTPException(
                    status_code=400,
                    detail=f"Parameters 'lat' & 'lon' must be within valid ranges. Got {latitude}|{longitude}"
                )
            return await geocoder.resolve(lang, latitude=latitude, longitude=longitude)

        raise HTTPException(
            status_code=400,
            detail="Parameters must include either 'geohash' or a 'lat' & 'lon' pair."
        )
    except HTTPException:
        raise
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RateLimitedError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except UpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception(f"Reverse geocoding failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
