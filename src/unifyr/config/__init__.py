"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)
from .transform import TransformConfig, get_transform_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "TransformConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_storage_config",
    "get_transform_config",
    "optional_int_env",
    "require_env_vars",
]
