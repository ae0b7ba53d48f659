"""
Main entrypoint for the Nominatim reverse geocoding proxy.

Usage:
    Set API_KEY, NOMINATIM_URL, USER_AGENT and EMAIL (environment or .env), then run `python main.py`.
    The cache database is created at CACHE_DB_PATH (default: data/geodata.sqlite).
"""
import logging

import uvicorn

from nominatim_proxy import __version__
from nominatim_proxy.api.app import app
from nominatim_proxy.config import get_settings

logger = logging.getLogger(__name__)


def main():
    """
    Main function to run the proxy.
    """
    try:
        # The cache is opened by the app lifespan
        settings = get_settings()

        logger.info(f"[INIT] Starting server at version {__version__}")
        uvicorn.run(app, host=settings.host, port=settings.port)
        return 0
    except Exception as e:
        logger.exception(f"Starting server {__version__} failed: {str(e)}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
