"""
freight_config -- runtime settings for the freight kernel.

Usage:
    from freight_config import load_settings
    from freight_kernel.db import init_engine_from_settings

    settings = load_settings()
    init_engine_from_settings(settings)
"""

from freight_config.loader import FreightSettings, load_settings, parse_settings

__all__ = ["FreightSettings", "load_settings", "parse_settings"]
