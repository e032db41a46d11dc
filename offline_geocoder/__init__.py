"""Offline reverse geocoding with a cache-aside resolution layer."""

__version__ = "0.1.0"
