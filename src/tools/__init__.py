"""Configuration utilities."""

from .config_loader import (
    ConfigLoader,
    clustering_config_from_profile,
    get_config,
)

__all__ = [
    "ConfigLoader",
    "clustering_config_from_profile",
    "get_config",
]
