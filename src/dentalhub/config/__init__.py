"""Configuration module for DentalHub."""

from dentalhub.config.base import MissingSubscriptionPolicy, Settings
from dentalhub.config.loader import get_settings

__all__ = ["MissingSubscriptionPolicy", "Settings", "get_settings"]
