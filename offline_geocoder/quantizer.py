"""Spatial quantization of coordinates into cache keys."""

import math

# 3 decimal places, roughly a 100 m cell at the equator
PRECISION = 1000


def _millidegrees(value: float) -> int:
    """Round half up (towards +inf) to the nearest thousandth of a degree."""
    scaled = value * PRECISION
    if math.isinf(scaled):
        # Only reachable for magnitudes above 2**53, which are whole numbers
        return int(value) * PRECISION
    return math.floor(scaled + 0.5)


def _format_millidegrees(count: int) -> str:
    sign = "-" if count < 0 else ""
    whole, frac = divmod(abs(count), PRECISION)
    if frac == 0:
        return f"{sign}{whole}"
    digits = f"{frac:03d}".rstrip("0")
    return f"{sign}{whole}.{digits}"


def quantize(lat: float, lng: float) -> str:
    """Map a coordinate pair to its cache key, e.g. ``"26.761,83.373"``.

    Both coordinates are rounded to 3 decimals and rendered from their integer
    millidegree count, so the key never carries float noise. Points inside the
    same cell always share a key.
    """
    return f"{_format_millidegrees(_millidegrees(lat))},{_format_millidegrees(_millidegrees(lng))}"
