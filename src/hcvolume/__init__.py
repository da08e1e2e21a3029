"""Hetzner Cloud volume driver for Docker."""

__version__ = "0.3.0"
