"""Spec fetching and location rewriting."""
from .renderer import SpecRenderer
from .rewrite import Dialect, detect_dialect, resolve_server_url, rewrite_locations

__all__ = ["Dialect", "SpecRenderer", "detect_dialect", "resolve_server_url", "rewrite_locations"]
