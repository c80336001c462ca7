"""
Configuration Module

Application configuration settings.
"""

from patient_portal.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
