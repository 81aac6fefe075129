"""Configuration module for the visibility checker.

Centralized settings loaded from environment variables with pydantic-settings.
"""

from config.settings import VisibilityConfig, get_config

__all__ = ["VisibilityConfig", "get_config"]
