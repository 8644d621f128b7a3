"""Reverse proxy for Swagger UI "try it out" calls."""
from .relay import ProxyRelay

__all__ = ["ProxyRelay"]
