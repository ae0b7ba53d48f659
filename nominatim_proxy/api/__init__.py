"""
API Module
---------
Provides the HTTP endpoints of the proxy using FastAPI.
Features include:
- Health/version information
- Reverse geocoding by coordinates or geohash, guarded by an API key
- Mapping of resolution failures to HTTP status codes
"""
