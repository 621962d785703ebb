"""
config_manager.py

Configuration management for the event publishing client.
Loads and validates settings from a YAML file with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} and ${VAR_NAME:default} syntax)
- Cached settings for global access
- Type-safe configuration with Pydantic models
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "EVENTGRID_CONFIG_PATH"


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class PublisherSettings(BaseModel):
    """Topic endpoint, credentials and delivery settings."""
    topic_endpoint: Optional[str] = Field(default=None, description="Absolute URL of the topic endpoint")
    authentication_key: Optional[str] = Field(default=None, description="Topic access key")
    timeout_seconds: float = Field(default=10.0, gt=0.0, description="Per-request timeout")
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class LoggingSettings(BaseModel):
    """Logging settings."""
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="json or text")
    log_file: Optional[str] = Field(default=None)
    log_rotation: str = Field(default="10MB")


class Settings(BaseModel):
    """Root configuration model."""
    publisher: PublisherSettings = Field(default_factory=PublisherSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager
# =============================================================================

class ConfigManager:
    """
    Configuration manager that loads and caches settings.

    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    """

    _settings: Optional[Settings] = None

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, uses
                $EVENTGRID_CONFIG_PATH or config/settings.yaml.

        Returns:
            Settings object with validated configuration

        Raises:
            FileNotFoundError: If configuration file not found
            ValueError: If configuration is invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is None:
            config_path = os.getenv(CONFIG_PATH_ENV, "config/settings.yaml")

        config_path_obj = Path(config_path)
        if not config_path_obj.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ValueError(f"Invalid YAML configuration: {e}") from e

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            cls._settings = Settings(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ValueError(f"Invalid configuration: {e}") from e

        logger.info("Configuration loaded and validated successfully")
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        """Get cached settings, loading from the default path if needed."""
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """Drop cached settings and load them again."""
        cls._settings = None
        return cls.load_config(config_path)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """Get application settings."""
    return ConfigManager.get_settings()
