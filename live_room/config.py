"""
Centralized configuration management.

Values are resolved from, in increasing priority:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) System environment variables
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger

_TRUE_VALUES = {"1", "true", "yes", "on"}


class EnvironConfig:
    """
    Singleton configuration class that loads environment variables from env files
    and the process environment, providing dictionary-like access with defaults.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        root = Path(__file__).parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            self._config.update(dotenv_values(example_path))
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            self._config.update(dotenv_values(local_path))
            logger.info("Loaded and overrode environment variables from {}", local_path)

        self._config.update(os.environ)

    def __getitem__(self, key):
        """
        Get configuration value by key.

        Raises:
            KeyError: If key not found
        """
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")

        return self._config[key]

    def get(self, key, default=None):
        return self._config.get(key, default)

    def get_str(self, key: str, default: str = "") -> str:
        """Get a stripped string, falling back to default for missing or blank values."""
        value = self._config.get(key)
        if value is None:
            return default
        return str(value).strip() or default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._config.get(key)
        if value is None or not str(value).strip():
            return default
        return str(value).strip().lower() in _TRUE_VALUES

    def get_int(self, key: str, default: int) -> int:
        value = (self._config.get(key) or "").strip()
        return int(value) if value else default

    def get_float(self, key: str, default: float) -> float:
        value = (self._config.get(key) or "").strip()
        return float(value) if value else default

    def reload(self):
        """
        Reload configuration from files and environment.
        Useful for testing or when configuration files change.
        """
        self._config.clear()
        self._load_config()
        logger.info("Configuration reloaded")

    def __contains__(self, key):
        return key in self._config

    def __iter__(self):
        return iter(self._config)

    def keys(self):
        return self._config.keys()

    def items(self):
        return self._config.items()


config = EnvironConfig()
