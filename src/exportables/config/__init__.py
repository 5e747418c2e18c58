"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .rebuild import CollisionPolicy, RebuildConfig, get_rebuild_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CollisionPolicy",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RebuildConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_rebuild_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
