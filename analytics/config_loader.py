"""
config_loader.py - Load and manage configuration from YAML file.

Club staff can adjust report limits and the database location by editing
config.yaml without modifying Python code.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config.yaml'


class ConfigLoader:
    """Load and cache configuration from config.yaml."""

    _instance = None
    _config = None

    def __new__(cls, *args, **kwargs):
        """Singleton pattern - return same instance."""
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config loader."""
        if config_path is not None:
            self.reload(config_path)
        elif self._config is None:
            self.reload()

    def reload(self, config_path: Optional[Path] = None):
        """Load config from YAML file, falling back to defaults."""
        config_path = Path(config_path or os.getenv('CLUB_STATS_CONFIG', DEFAULT_CONFIG_PATH))

        if not config_path.exists():
            logger.info("Config file not found at %s, using defaults", config_path)
            self._config = self._get_default_config()
            return

        try:
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            self._config = self._merge(self._get_default_config(), loaded)
            logger.info("Configuration loaded from %s", config_path)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Error loading config: %s. Using defaults.", e)
            self._config = self._get_default_config()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value by dot-notation path.

        Args:
            key: Path to config value (e.g., 'reports.top_scorers_limit')
            default: Default value if key not found

        Returns:
            Config value or default
        """
        parts = key.split('.')
        value = self._config

        for part in parts:
            if isinstance(value, dict):
                value = value.get(part)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def get_database_url(self) -> str:
        return self.get('database.url', 'sqlite:///./club_stats.db')

    def get_comparison_bounds(self) -> tuple:
        """(min, max) number of players accepted by comparison reports."""
        return (
            int(self.get('reports.comparison_min_players', 2)),
            int(self.get('reports.comparison_max_players', 5)),
        )

    def get_top_scorers_limit(self) -> int:
        return int(self.get('reports.top_scorers_limit', 5))

    @classmethod
    def _merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = cls._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """
        Return default configuration if YAML file not found.
        This should match config.yaml defaults.
        """
        return {
            'database': {
                'url': 'sqlite:///./club_stats.db',
            },
            'reports': {
                'comparison_min_players': 2,
                'comparison_max_players': 5,
                'top_scorers_limit': 5,
            },
            'api': {
                'title': 'Club Stats Dashboard API',
                'cors_origins': ['http://localhost:8501', 'http://127.0.0.1:8501'],
            },
        }


def get_config() -> ConfigLoader:
    """Get global config instance (singleton)."""
    return ConfigLoader()
