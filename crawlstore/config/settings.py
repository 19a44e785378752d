"""
Configuration management for the crawl state storage.

Uses pydantic-settings to load configuration from environment variables
and YAML files with proper validation.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.types import DEFAULT_PREFIX, StorageConfig


class StorageSettings(BaseSettings):
    """
    Main settings class that loads configuration from environment variables
    and configuration files.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWLSTORE_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Environment
    environment: str = Field("dev", description="Environment name (dev/devlocal/staging/prod)")
    backend: str = Field("redis", description="Store backend (redis/memory)")

    # Redis Configuration
    redis_url: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    redis_password: Optional[str] = None
    redis_max_connections: int = Field(20, ge=1, le=1000)
    redis_socket_timeout: float = Field(5.0, gt=0)

    # Key space
    prefix: str = Field(DEFAULT_PREFIX, description="Key namespace shared by one logical crawl")

    # Visited markers
    visited_ttl_seconds: float = Field(0, ge=0, description="Retention of visited markers, 0 disables expiry")

    # Cancellation scope
    timeout_seconds: Optional[float] = Field(None, gt=0, description="Deadline for all storage calls")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    json_logs: bool = Field(True, description="Whether to output JSON format logs")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["dev", "devlocal", "staging", "prod"]
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid_backends = ["redis", "memory"]
        if v.lower() not in valid_backends:
            raise ValueError(f"Invalid backend: {v}. Must be one of {valid_backends}")
        return v.lower()

    @model_validator(mode="after")
    def validate_backend_for_environment(self) -> "StorageSettings":
        """The memory backend cannot share state between workers"""
        if self.environment in ["staging", "prod"] and self.backend == "memory":
            raise ValueError(f"memory backend is not allowed in {self.environment} environment")
        return self

    def to_storage_config(self) -> StorageConfig:
        """Convert to StorageConfig instance"""
        return StorageConfig(
            prefix=self.prefix,
            visited_ttl_seconds=self.visited_ttl_seconds,
            timeout_seconds=self.timeout_seconds,
        )


def _expand_env_variables(obj: Any) -> Any:
    """Recursively expand environment variables in configuration values."""
    if isinstance(obj, str):
        # Match ${VAR_NAME} or ${VAR_NAME:default_value} patterns
        def replace_env_var(match):
            var_with_default = match.group(1)
            if ":" in var_with_default:
                var_name, default_value = var_with_default.split(":", 1)
                return os.getenv(var_name, default_value)
            else:
                return os.getenv(var_with_default, match.group(0))  # Return original if not found

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, obj)
    elif isinstance(obj, dict):
        return {key: _expand_env_variables(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_variables(item) for item in obj]
    else:
        return obj


def load_config_from_yaml(file_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable expansion.

    Args:
        file_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration values with env vars expanded

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML file is malformed
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
        return _expand_env_variables(config)


def get_config_file_path(environment: str) -> Path:
    """Get the path to the configuration file for the given environment."""
    config_dir = Path(__file__).parent
    return config_dir / f"{environment}.yaml"


def load_settings(
    environment: Optional[str] = None, config_file: Optional[Path] = None, **overrides: Any
) -> StorageSettings:
    """
    Load storage settings from environment variables and configuration files.

    Args:
        environment: Environment name. If None, read from CRAWLSTORE_ENVIRONMENT
        config_file: Path to configuration file. If None, use default path
        **overrides: Additional configuration overrides

    Returns:
        Configured StorageSettings instance

    Raises:
        ValueError: If configuration is invalid
        FileNotFoundError: If required configuration file is missing
    """
    if environment is None:
        environment = os.getenv("CRAWLSTORE_ENVIRONMENT", "dev")

    config_data: Dict[str, Any] = {}

    if config_file:
        config_data = load_config_from_yaml(config_file)
    else:
        default_config_file = get_config_file_path(environment)
        if default_config_file.exists():
            config_data = load_config_from_yaml(default_config_file)

    config_data["environment"] = environment
    config_data.update(overrides)

    return StorageSettings(**config_data)


# Global settings instance (lazy-loaded)
_settings: Optional[StorageSettings] = None


def get_cached_settings() -> StorageSettings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings_cache() -> None:
    """Reset the cached settings instance (useful for testing)"""
    global _settings
    _settings = None
