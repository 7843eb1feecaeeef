"""Neighbourly: resolves Singapore addresses to subzones and neighbourhoods."""

__version__ = "0.1.0"
