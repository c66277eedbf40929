"""Configuration management for schemaguard.

This module handles loading configuration from YAML files and environment variables.
Environment variables take precedence over YAML configuration.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

from ..utils.exceptions import ConfigurationError

# sqlglot dialect names accepted as the primary dialect
KNOWN_DIALECTS = (
    "postgres",
    "mysql",
    "sqlite",
    "duckdb",
    "bigquery",
    "snowflake",
    "tsql",
    "oracle",
)


class Settings:
    """Singleton configuration manager for the application."""

    _instance: Optional['Settings'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls):
        """Ensure only one instance of Settings exists."""
        if cls._instance is None:
            cls._instance = super(Settings, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        """Initialize configuration by loading from YAML and environment."""
        load_dotenv()

        config_path = Path(__file__).parent / "config.yaml"
        if config_path.exists():
            with open(config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}
        else:
            self._config = {}

        self._apply_env_overrides()
        self._validate_config()

    def _apply_env_overrides(self) -> None:
        """Override configuration with environment variables."""
        # Logging overrides
        if level := os.getenv("SCHEMAGUARD_LOG_LEVEL"):
            self._config.setdefault("logging", {})["level"] = level
        if log_file := os.getenv("SCHEMAGUARD_LOG_FILE"):
            self._config.setdefault("logging", {})["log_file"] = log_file

        # Validation overrides
        if dialect := os.getenv("SCHEMAGUARD_PRIMARY_DIALECT"):
            self._config.setdefault("validation", {})["primary_dialect"] = dialect

        # Schema overrides
        if encoding := os.getenv("SCHEMAGUARD_SCHEMA_ENCODING"):
            self._config.setdefault("schema", {})["encoding"] = encoding

    def _validate_config(self) -> None:
        """Validate that configured values are usable."""
        dialect = str(self.get("validation.primary_dialect", "postgres")).lower()
        if dialect not in KNOWN_DIALECTS:
            raise ConfigurationError(
                f"Unsupported primary dialect: {dialect}. "
                f"Expected one of: {', '.join(KNOWN_DIALECTS)}"
            )

        level = str(self.get("logging.level", "INFO")).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log level: {level}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'validation.primary_dialect').

        Args:
            key_path: Dot-separated path to configuration value
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section.

        Args:
            section: Top-level section name (e.g., 'validation', 'schema')

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to configuration value
            value: Value to set
        """
        keys = key_path.split('.')
        config = self._config

        for key in keys[:-1]:
            config = config.setdefault(key, {})

        config[keys[-1]] = value

    def reload(self) -> None:
        """Reload configuration from file and environment."""
        self._initialize()


# Global settings instance
settings = Settings()
