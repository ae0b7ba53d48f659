"""
Address models as returned by Nominatim.

Address parts come from OSM tagging and are neither stable nor consistent,
so every field is optional. Only commonly emitted, actively used fields are
kept; unknown keys in upstream responses are ignored.

See https://nominatim.org/release-docs/latest/api/Output/#json
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Column order of the cache table, also the serialization order
ADDRESS_FIELDS = (
    "road", "pedestrian", "footway", "cycleway", "residential", "square", "place",
    "neighbourhood", "suburb", "city_district",
    "hamlet", "village", "town", "city", "municipality", "borough",
    "county", "state", "province", "state_district",
    "postcode",
    "country", "country_code",
)


class Address(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    # Street, e.g. "Unter den Linden", "Broadway"
    road: Optional[str] = None
    pedestrian: Optional[str] = None
    footway: Optional[str] = None
    cycleway: Optional[str] = None
    residential: Optional[str] = None
    square: Optional[str] = None
    place: Optional[str] = None

    # Sub-locality, e.g. "Prenzlauer Berg", "SoHo"
    neighbourhood: Optional[str] = None
    suburb: Optional[str] = None
    city_district: Optional[str] = None

    # Settlement
    hamlet: Optional[str] = None
    village: Optional[str] = None
    town: Optional[str] = None
    city: Optional[str] = None
    municipality: Optional[str] = None
    # e.g. "Brooklyn"
    borough: Optional[str] = None

    # Administrative, e.g. "Landkreis München", "California"
    county: Optional[str] = None
    state: Optional[str] = None
    province: Optional[str] = None
    state_district: Optional[str] = None

    postcode: Optional[str] = None

    # Localized country name and ISO 3166-1 alpha-2 code
    country: Optional[str] = None
    country_code: Optional[str] = None


class NominatimResponse(BaseModel):
    """Minimal wrapper used to decode the /reverse response."""

    model_config = ConfigDict(extra="ignore")

    address: Address


class ReverseGeocodeResponse(BaseModel):
    """What the proxy answers with: the cache key and the resolved address."""

    geohash: str
    address: Address
