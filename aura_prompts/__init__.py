"""Aura prompt engine: prompt resolution, caching and version history."""

__version__ = "0.1.0"
