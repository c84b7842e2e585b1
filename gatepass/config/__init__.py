"""
Configuration package for the gate pass service.
"""

from gatepass.config.settings import Settings, get_settings, settings

__all__ = ['Settings', 'get_settings', 'settings']
