"""Midnight Protocol admin action API."""

__version__ = "0.3.0"
