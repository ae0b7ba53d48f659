"""
Geocoding Module
--------------
Handles reverse geocoding operations to convert geographic coordinates to addresses.
Normalizes requests to geohash cache keys and paces calls to OpenStreetMap's Nominatim API.
"""
