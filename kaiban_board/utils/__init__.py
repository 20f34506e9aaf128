"""Utility modules for Kaiban Board."""

from .config_manager import ConfigManager
from .timestamps import parse_iso, utc_now_iso

__all__ = ['ConfigManager', 'parse_iso', 'utc_now_iso']
