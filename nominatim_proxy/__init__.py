"""
Nominatim Proxy
--------------
Caching, rate-limited reverse geocoding proxy in front of a Nominatim instance.
"""
__version__ = "1.0.0"
