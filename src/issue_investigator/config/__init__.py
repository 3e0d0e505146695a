"""Configuration loading."""

from .settings import InvestigatorSettings, get_settings, reset_settings

__all__ = [
    "InvestigatorSettings",
    "get_settings",
    "reset_settings",
]
