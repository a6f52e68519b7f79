"""
Configuration loader for map profiles and environment variables.
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv

from src.clustering.clusterer import ClusteringConfig, DEFAULT_RADIUS_M

DEFAULT_PROFILE = "default"


class ConfigLoader:
    """Load and manage configuration from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a map profile configuration.

        Args:
            profile_name: Name of the profile (default, dense-city)

        Returns:
            Dictionary with configuration values

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from MAP_PROFILE (after loading any .env file)."""
        load_dotenv()
        return os.getenv("MAP_PROFILE")

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """
        Load the profile named by MAP_PROFILE or fall back to the default one.

        Returns:
            Configuration dictionary
        """
        profile = cls.get_profile_from_env() or DEFAULT_PROFILE
        return cls.load_profile(profile)


def clustering_config_from_profile(profile: Dict[str, Any]) -> ClusteringConfig:
    """Build a ClusteringConfig from the ``clustering`` section of a profile."""
    clustering_cfg = profile.get("clustering", {}) or {}
    return ClusteringConfig(radius_m=float(clustering_cfg.get("radius_m", DEFAULT_RADIUS_M)))


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()
