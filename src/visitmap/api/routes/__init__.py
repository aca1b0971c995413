"""Route group exports."""

from . import addresses, geocode, health, mapview

__all__ = ["addresses", "geocode", "health", "mapview"]
