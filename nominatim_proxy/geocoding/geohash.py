"""
Geohash Module
------------
Minimal geohash encoder/decoder used to turn coordinates into stable cache keys.

How it works:
- Start with the full latitude [-90, 90] and longitude [-180, 180] ranges.
- For each bit, split the current range in half.
- Alternate longitude and latitude bits (lon, lat, lon, lat...).
- Every 5 bits map to one character of the geohash base32 alphabet.

Decoding replays the bits to shrink the ranges until the final cell is known.
The returned coordinate is the center of that cell, rounded to 5 decimals so
repeated decodes always produce the same upstream request.
"""
from typing import NamedTuple

from nominatim_proxy.exceptions import InvalidInputError

# Geohash uses its own base32 alphabet (not RFC 4648).
# See https://en.wikipedia.org/wiki/Geohash#Algorithm_and_example
GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

DEFAULT_PRECISION = 8
BITS_PER_CHAR = 5
BIT_MASKS = (16, 8, 4, 2, 1)

_BASE32_LOOKUP = {char: index for index, char in enumerate(GEOHASH_BASE32)}


class GpsCoordinate(NamedTuple):
    latitude: float
    longitude: float


class _Range:
    """Numeric range that is repeatedly bisected while encoding/decoding."""

    def __init__(self, low, high):
        self.low = low
        self.high = high

    def refine_for_value(self, value):
        """
        Split the range in half and return the bit for the half containing value.
        0 means "lower half", 1 means "upper half".
        """
        mid = (self.low + self.high) / 2
        if value >= mid:
            self.low = mid
            return 1
        self.high = mid
        return 0

    def refine_for_bit(self, is_set):
        """Inverse of refine_for_value(), used while decoding."""
        mid = (self.low + self.high) / 2
        if is_set:
            self.low = mid
        else:
            self.high = mid

    def center(self):
        return _round_to_5_decimals((self.low + self.high) / 2)


def _round_to_5_decimals(value):
    return round(value * 100000.0) / 100000.0


def encode(latitude: float, longitude: float, precision: int = DEFAULT_PRECISION) -> str:
    """
    Encode latitude/longitude into a geohash of `precision` characters.

    Ranges are not checked here; callers validate coordinates beforehand.
    """
    if precision <= 0:
        raise InvalidInputError("Precision must be positive.")

    lat_range = _Range(-90.0, 90.0)
    lon_range = _Range(-180.0, 180.0)

    is_even_bit = True
    bit_index = 0
    current_bits = 0
    chars = []

    while len(chars) < precision:
        # Even bits refine longitude, odd bits refine latitude
        if is_even_bit:
            current_bits = (current_bits << 1) | lon_range.refine_for_value(longitude)
        else:
            current_bits = (current_bits << 1) | lat_range.refine_for_value(latitude)

        is_even_bit = not is_even_bit
        bit_index += 1

        if bit_index == BITS_PER_CHAR:
            chars.append(GEOHASH_BASE32[current_bits])
            bit_index = 0
            current_bits = 0

    return "".join(chars)


def decode_to_center(geohash: str) -> GpsCoordinate:
    """
    Decode a geohash to the center of its cell.

    The result is the cell center, not the coordinate that originally produced
    the geohash. Raises InvalidInputError for blank input or characters outside
    the geohash alphabet.
    """
    if not geohash or not geohash.strip():
        raise InvalidInputError("Geohash must not be blank.")

    lat_range = _Range(-90.0, 90.0)
    lon_range = _Range(-180.0, 180.0)
    is_even_bit = True

    for char in geohash.lower():
        value = _BASE32_LOOKUP.get(char)
        if value is None:
            raise InvalidInputError(f"Invalid geohash character '{char}'.")

        for mask in BIT_MASKS:
            if is_even_bit:
                lon_range.refine_for_bit(value & mask)
            else:
                lat_range.refine_for_bit(value & mask)
            is_even_bit = not is_even_bit

    return GpsCoordinate(latitude=lat_range.center(), longitude=lon_range.center())
